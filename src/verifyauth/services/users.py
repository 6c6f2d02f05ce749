"""Account lifecycle: registration, code confirmation and code resend."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from verifyauth.models import User
from verifyauth.services.auth import (
    AlreadyVerifiedError,
    DuplicateEmailError,
    InvalidVerificationCodeError,
    RegistrationError,
    hash_password,
)
from verifyauth.services.email import EmailService
from verifyauth.services.validation import RegistrationForm, normalize_email, validate_registration
from verifyauth.services.verification import codes_match, generate_verification_code

logger = logging.getLogger(__name__)


async def get_user(session: AsyncSession, user_id: str, *, for_update: bool = False) -> User | None:
    """Load a user by ID.

    With ``for_update`` the row is locked until the transaction ends so that
    concurrent confirm/resend requests for one user are applied one at a time,
    and attributes of an instance already in the session are reloaded from
    the locked row.
    """
    stmt = select(User).where(User.id == user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == normalize_email(email))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def send_verification_email(email_service: EmailService, user: User) -> bool:
    """Mail the user's current verification code."""
    if not user.verification_code:
        raise ValueError(f"User {user.id} has no pending verification code")

    sent = await email_service.send_verification_code(
        to=user.email,
        name=user.name,
        code=user.verification_code,
        verify_url=email_service.verification_url(user.id),
    )
    if not sent:
        logger.warning(f"Verification email to user {user.id} was not delivered")
    return sent


async def register_user(
    session: AsyncSession,
    email_service: EmailService,
    form: RegistrationForm,
) -> User:
    """Validate the form, create an unverified user and mail its code.

    Raises:
        RegistrationError: the form failed validation
        DuplicateEmailError: the email is already registered
    """
    result = validate_registration(form)
    if not result.ok:
        raise RegistrationError(result)

    email = normalize_email(form.email)
    user = User(
        name=form.name.strip(),
        email=email,
        password_digest=hash_password(form.password),
        verification_code=generate_verification_code(),
        verified=False,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        # The unique index on users.email decides concurrent registrations
        await session.rollback()
        raise DuplicateEmailError(email) from e

    logger.info(f"Registered user {user.id}")
    await send_verification_email(email_service, user)
    return user


async def confirm_verification(session: AsyncSession, user: User, submitted_code: str) -> User:
    """Mark the user verified if the submitted code matches.

    Raises:
        InvalidVerificationCodeError: the code does not match; nothing changes
    """
    if not codes_match(user.verification_code, submitted_code):
        logger.info(f"Rejected verification code for user {user.id}")
        raise InvalidVerificationCodeError()

    user.verified = True
    user.verification_code = None
    session.add(user)
    await session.commit()
    logger.info(f"Verified user {user.id}")
    return user


async def resend_verification_code(
    session: AsyncSession,
    email_service: EmailService,
    user: User,
) -> User:
    """Replace the user's pending code with a fresh one and mail it.

    Raises:
        AlreadyVerifiedError: the account no longer needs a code
    """
    if user.verified:
        raise AlreadyVerifiedError(user)

    user.verification_code = generate_verification_code()
    session.add(user)
    await session.commit()
    logger.info(f"Issued new verification code for user {user.id}")
    await send_verification_email(email_service, user)
    return user
