"""Tests for signup, login, resend and Google sign-in flows."""

import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from noteswift.auth.google_oauth import ExternalIdentity
from noteswift.errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AccountNotVerifiedError,
    EmailDeliveryError,
    InvalidAssertionError,
    InvalidOTPError,
    ServiceUnavailableError,
    ValidationError,
)
from noteswift.models.signup import SignupData
from noteswift.models.user import PLACEHOLDER_DATE_OF_BIRTH


def _signup_data(email="new@example.com", name="New Person", dob="1990-06-15"):
    return SignupData(name=name, dateOfBirth=dob, email=email)


class TestSignup:

    def test_start_signup_sends_code_and_echoes_details(self, auth_service, email_sender):
        started = auth_service.start_signup(_signup_data())

        assert started.message == "Verification code sent to your email"
        assert started.email == "new@example.com"
        assert started.temp_data.to_client() == {
            "name": "New Person",
            "dateOfBirth": "1990-06-15",
            "email": "new@example.com",
        }
        assert len(email_sender.codes_for("new@example.com")) == 1

    def test_start_signup_existing_email(self, auth_service, verified_user, otp_count, email_sender):
        with pytest.raises(AccountAlreadyExistsError):
            auth_service.start_signup(_signup_data(email="ann@example.com"))

        assert otp_count("ann@example.com") == 0
        assert email_sender.sent == []

    def test_complete_signup_creates_verified_user(self, auth_service, email_sender, token_service, user_repository):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")

        result = auth_service.complete_signup("new@example.com", code, started.temp_data.to_client())

        assert result.message == "Email verified successfully"
        assert result.user.is_email_verified is True
        assert result.user.name == "New Person"
        assert result.user.date_of_birth == "1990-06-15"
        assert token_service.verify(result.token).user_id == result.user.id
        assert user_repository.get_by_email("new@example.com").id == result.user.id

    def test_complete_signup_wrong_code_creates_nothing(self, auth_service, email_sender, user_repository):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(InvalidOTPError):
            auth_service.complete_signup("new@example.com", wrong, started.temp_data.to_client())

        assert user_repository.get_by_email("new@example.com") is None

    def test_complete_signup_twice_reports_existing_account(self, auth_service, email_sender):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")
        temp = started.temp_data.to_client()

        auth_service.complete_signup("new@example.com", code, temp)
        with pytest.raises(AccountAlreadyExistsError):
            auth_service.complete_signup("new@example.com", code, temp)

    def test_signup_code_cannot_be_redeemed_again(self, auth_service, email_sender, otp_issuer):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new.com")

        auth_service.complete_signup("new.com", code, started.temp_data.to_client())

        assert otp_issuer.redeem("new.com", code) is None
        # The account now exists, so the spent code must not work for login either.
        with pytest.raises(InvalidOTPError):
            auth_service.complete_login("new.com", code)

    def test_complete_signup_expired_code(self, auth_service, email_sender, otp_clock):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")
        otp_clock.advance(minutes=11)

        with pytest.raises(InvalidOTPError):
            auth_service.complete_signup("new@example.com", code, started.temp_data.to_client())

    def test_complete_signup_requires_temp_data(self, auth_service):
        with pytest.raises(ValidationError) as excinfo:
            auth_service.complete_signup("new@example.com", "123456", None)
        assert excinfo.value.errors[0]["field"] == "tempData"

    def test_complete_signup_revalidates_temp_data(self, auth_service, email_sender):
        auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")
        tampered = {"name": "Kid", "dateOfBirth": "2024-01-01", "email": "new@example.com"}

        with pytest.raises(ValidationError) as excinfo:
            auth_service.complete_signup("new@example.com", code, tampered)

        assert excinfo.value.errors[0]["field"] == "tempData.dateOfBirth"
        assert "13" in excinfo.value.errors[0]["message"]

    def test_complete_signup_temp_data_must_match_email(self, auth_service, email_sender, user_repository):
        started = auth_service.start_signup(_signup_data())
        code = email_sender.last_code_for("new@example.com")
        other = dict(started.temp_data.to_client(), email="someone@example.com")

        with pytest.raises(ValidationError):
            auth_service.complete_signup("new@example.com", code, other)

        assert user_repository.get_by_email("someone@example.com") is None
        # The code was not spent by the rejected attempt.
        result = auth_service.complete_signup("new@example.com", code, started.temp_data.to_client())
        assert result.user.email == "new@example.com"

    def test_email_failure_is_reported_as_service_error(self, auth_service, email_sender, otp_count):
        email_sender.fail_with = EmailDeliveryError("relay refused")

        with pytest.raises(ServiceUnavailableError) as excinfo:
            auth_service.start_signup(_signup_data())

        assert excinfo.value.message == "Failed to send verification email"
        assert "relay" not in excinfo.value.message
        assert otp_count("new@example.com") == 0

    def test_store_failure_is_reported_as_service_error(self, auth_service):
        with patch.object(
            auth_service.users, "get_by_email", side_effect=OperationalError("SELECT", {}, Exception("db gone"))
        ):
            with pytest.raises(ServiceUnavailableError) as excinfo:
                auth_service.start_signup(_signup_data())

        assert excinfo.value.status_code == 500
        assert "db gone" not in excinfo.value.message


class TestLogin:

    def test_start_login_sends_code(self, auth_service, verified_user, email_sender):
        email = auth_service.start_login("ANN@example.com")

        assert email == "ann@example.com"
        assert len(email_sender.codes_for("ann@example.com")) == 1

    def test_start_login_unknown_email(self, auth_service, email_sender):
        with pytest.raises(AccountNotFoundError):
            auth_service.start_login("ghost@example.com")
        assert email_sender.sent == []

    def test_start_login_unverified_account_issues_no_code(self, auth_service, unverified_user, otp_count):
        with pytest.raises(AccountNotVerifiedError):
            auth_service.start_login("bob@example.com")

        assert otp_count("bob@example.com") == 0

    def test_complete_login_issues_token_for_existing_user(self, auth_service, verified_user, email_sender, token_service):
        auth_service.start_login("ann@example.com")
        code = email_sender.last_code_for("ann@example.com")

        result = auth_service.complete_login("ann@example.com", code)

        assert result.message == "Login successful"
        assert result.user.id == verified_user.id
        claims = token_service.verify(result.token)
        assert claims.user_id == verified_user.id
        assert claims.email == "ann@example.com"

    def test_complete_login_code_cannot_be_replayed(self, auth_service, verified_user, email_sender):
        auth_service.start_login("ann@example.com")
        code = email_sender.last_code_for("ann@example.com")

        auth_service.complete_login("ann@example.com", code)
        with pytest.raises(InvalidOTPError):
            auth_service.complete_login("ann@example.com", code)

    def test_code_is_bound_to_its_email(self, auth_service, verified_user, email_sender, user_repository):
        user_repository.create("carl@example.com", "Carl", "1980-02-02", is_email_verified=True)
        auth_service.start_login("ann@example.com")
        code = email_sender.last_code_for("ann@example.com")

        with pytest.raises(InvalidOTPError):
            auth_service.complete_login("carl@example.com", code)

    def test_resend_keeps_earlier_code_valid(self, auth_service, verified_user, email_sender):
        auth_service.start_login("ann@example.com")
        auth_service.resend_otp("ann@example.com")
        first, second = email_sender.codes_for("ann@example.com")

        assert auth_service.complete_login("ann@example.com", first).user.id == verified_user.id
        if first != second:
            assert auth_service.complete_login("ann@example.com", second).user.id == verified_user.id


class TestGoogleSignIn:

    def test_first_sign_in_creates_verified_user(self, auth_service, google_client, user_with_google_id):
        google_client.assertions["tok"] = ExternalIdentity(subject="g-1", email="Gina@Example.com", name="Gina")

        result = auth_service.login_with_google_assertion("tok")

        assert result.message == "Google authentication successful"
        assert result.user.email == "gina@example.com"
        assert result.user.google_id == "g-1"
        assert result.user.is_email_verified is True
        assert result.user.date_of_birth == PLACEHOLDER_DATE_OF_BIRTH
        assert user_with_google_id("g-1").id == result.user.id

    def test_sign_in_links_existing_email_account(self, auth_service, google_client, verified_user):
        google_client.assertions["tok"] = ExternalIdentity(subject="g-ann", email="ann@example.com", name="Ann G")

        result = auth_service.login_with_google_assertion("tok")

        assert result.user.id == verified_user.id
        assert result.user.google_id == "g-ann"
        assert result.user.name == "Ann"

    def test_repeat_sign_in_returns_same_user(self, auth_service, google_client):
        google_client.assertions["tok"] = ExternalIdentity(subject="g-1", email="gina@example.com", name="Gina")

        first = auth_service.login_with_google_assertion("tok")
        second = auth_service.login_with_google_assertion("tok")

        assert first.user.id == second.user.id

    def test_different_google_subject_replaces_link(self, auth_service, google_client, user_with_google_id):
        google_client.assertions["a"] = ExternalIdentity(subject="g-1", email="gina@example.com", name="Gina")
        google_client.assertions["b"] = ExternalIdentity(subject="g-2", email="gina@example.com", name="Gina")

        first = auth_service.login_with_google_assertion("a")
        second = auth_service.login_with_google_assertion("b")

        assert second.user.id == first.user.id
        assert second.user.google_id == "g-2"
        assert user_with_google_id("g-1") is None

    def test_code_exchange_uses_same_account_logic(self, auth_service, google_client, verified_user):
        google_client.codes["auth-code"] = ExternalIdentity(subject="g-ann", email="ann@example.com", name="Ann")

        result = auth_service.login_with_google_code("auth-code")

        assert result.user.id == verified_user.id

    def test_rejected_assertion_creates_nothing(self, auth_service, user_with_google_id):
        with pytest.raises(InvalidAssertionError):
            auth_service.login_with_google_assertion("forged")
        assert user_with_google_id("forged") is None

    def test_google_sign_in_links_unverified_email_account(self, auth_service, google_client, unverified_user):
        google_client.assertions["tok"] = ExternalIdentity(subject="g-bob", email="bob@example.com", name="Bob")

        result = auth_service.login_with_google_assertion("tok")

        assert result.user.id == unverified_user.id
        assert result.user.google_id == "g-bob"
