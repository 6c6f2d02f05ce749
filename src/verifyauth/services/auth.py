"""Authentication service: password hashing, credential checks and session tokens."""

import logging
from datetime import UTC, datetime, timedelta
from functools import lru_cache

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from verifyauth.config import settings
from verifyauth.models import User
from verifyauth.services.validation import ValidationResult, normalize_email

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for account and authentication errors."""

    pass


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Deliberately does not say which."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class UnverifiedAccountError(AuthError):
    """Credentials are correct but the account has not been verified yet."""

    def __init__(self, user: User) -> None:
        super().__init__("Verify your account first!")
        self.user = user


class RegistrationError(AuthError):
    """Registration input failed validation."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("; ".join(result.full_messages()))
        self.result = result


class DuplicateEmailError(AuthError):
    """Another account already uses this email address."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email {email} has already been taken")
        self.email = email


class InvalidVerificationCodeError(AuthError):
    """Submitted verification code does not match the stored one."""

    def __init__(self) -> None:
        super().__init__("Code invalid!")


class AlreadyVerifiedError(AuthError):
    """The account is already verified and has no pending code."""

    def __init__(self, user: User) -> None:
        super().__init__("Account already verified. Log in.")
        self.user = user


class InvalidSessionError(AuthError):
    """Session token is missing, malformed, expired or points to nobody."""

    pass


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_digest: str) -> bool:
    """Check a password against a stored bcrypt digest."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_digest.encode("utf-8"))
    except ValueError:
        # Malformed digest or over-long password
        return False


@lru_cache
def _dummy_digest() -> str:
    return hash_password("dummy-password-for-timing")


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    """Look up a user by email and check the password.

    Raises:
        InvalidCredentialsError: unknown email or wrong password
        UnverifiedAccountError: correct credentials, account not verified
    """
    stmt = select(User).where(User.email == normalize_email(email))
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()

    if user is None:
        # Spend the same bcrypt time as a real check so response timing
        # does not reveal whether the email exists.
        verify_password(password, _dummy_digest())
        logger.info("Login failed: unknown email")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_digest):
        logger.info(f"Login failed: wrong password for user {user.id}")
        raise InvalidCredentialsError()

    if not user.verified:
        logger.info(f"Login refused: user {user.id} is not verified")
        raise UnverifiedAccountError(user)

    return user


def create_session_token(user: User) -> str:
    """Create a signed session token for a user."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "exp": now + timedelta(days=settings.session_expiration_days),
        "iat": now,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> dict:
    """Decode and validate a session token."""
    try:
        return jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise InvalidSessionError(f"Invalid session token: {e}") from e


async def get_session_user(session: AsyncSession, token: str) -> User:
    """Resolve a session token to its user."""
    payload = decode_session_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidSessionError("Invalid session token: missing user ID")

    user = await session.get(User, user_id)
    if user is None:
        raise InvalidSessionError("User not found")

    return user
