"""Periodic deletion of expired and used OTP records.

Housekeeping only: expired or used codes already fail verification, so a late
or skipped sweep never affects correctness. Overlapping runs are harmless
because deleting rows that are already gone is a no-op.
"""

import asyncio
import os
import logging
from typing import Callable
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from noteswift.auth.otp import OTPIssuer
from noteswift.database.otp_repository import OTPRepository

load_dotenv()

logger = logging.getLogger(__name__)

OTP_SWEEP_INTERVAL_SECONDS = float(os.getenv("OTP_SWEEP_INTERVAL_SECONDS", "3600"))


def sweep_once(session_factory: Callable[[], Session]) -> int:
    """Run one sweep in a fresh session. Returns number of rows deleted."""
    db = session_factory()
    try:
        return OTPIssuer(OTPRepository(db), sender=None).sweep()
    finally:
        db.close()


async def run_otp_sweeper(
    session_factory: Callable[[], Session],
    interval_seconds: float = OTP_SWEEP_INTERVAL_SECONDS,
) -> None:
    """Sweep forever on a fixed interval until cancelled.

    The blocking DB work runs in a worker thread so request handling on the
    event loop is never held up. Failures are logged and the loop continues.
    """
    logger.info(f"OTP sweeper started (interval={interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(sweep_once, session_factory)
        except Exception as e:
            logger.error(f"Error cleaning up expired OTPs: {type(e).__name__}: {str(e)}")
