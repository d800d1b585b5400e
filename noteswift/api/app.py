"""FastAPI web application for NoteSwift."""

import asyncio
import os
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from dotenv import load_dotenv

from noteswift.api import auth_routes, note_routes
from noteswift.auth.google_oauth import GoogleOAuthClient
from noteswift.auth.jwt import TokenService
from noteswift.auth.otp_sweeper import run_otp_sweeper
from noteswift.database.database import SessionLocal, init_db
from noteswift.errors import NoteSwiftError, ServiceUnavailableError, ValidationError, field_errors
from noteswift.integrations.email import EmailSender, build_email_sender

load_dotenv()

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"
API_ROOT = "/api"
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
OTP_SWEEP_ENABLED = os.getenv("OTP_SWEEP_ENABLED", "True").lower() == "true"


def _cors_origins(raw: str):
    return [o.strip() for o in (raw or "*").split(",") if o.strip()]


async def _noteswift_error_handler(request: Request, exc: NoteSwiftError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(errors=field_errors(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_response())


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}")
    error = ServiceUnavailableError()
    return JSONResponse(status_code=error.status_code, content=error.to_response())


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    *,
    email_sender: Optional[EmailSender] = None,
    google_client: Optional[GoogleOAuthClient] = None,
    token_service: Optional[TokenService] = None,
    init_database: bool = True,
    start_sweeper: Optional[bool] = None,
) -> FastAPI:
    """Build the application with explicitly constructed collaborators.

    Args:
        email_sender: Transport for OTP emails (defaults to EMAIL_BACKEND)
        google_client: Google OAuth client (defaults to env configuration)
        token_service: Session token service (defaults to env configuration)
        init_database: Create/migrate the schema on startup
        start_sweeper: Run the hourly OTP sweep (defaults to OTP_SWEEP_ENABLED)
    """
    run_sweeper = OTP_SWEEP_ENABLED if start_sweeper is None else start_sweeper

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_database:
            init_db()
        sweeper_task = None
        if run_sweeper:
            sweeper_task = asyncio.create_task(run_otp_sweeper(SessionLocal))
        try:
            yield
        finally:
            if sweeper_task is not None:
                sweeper_task.cancel()
                try:
                    await sweeper_task
                except asyncio.CancelledError:
                    logger.info("OTP sweeper stopped")

    app = FastAPI(
        title="NoteSwift API",
        description="Personal notes with email OTP and Google sign-in",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.state.email_sender = email_sender or build_email_sender()
    app.state.google_client = google_client or GoogleOAuthClient()
    app.state.token_service = token_service or TokenService()

    origins = _cors_origins(CORS_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NoteSwiftError, _noteswift_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(auth_routes.router, prefix=API_ROOT)
    app.include_router(note_routes.router, prefix=API_ROOT)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": API_VERSION}

    return app


app = create_app()
