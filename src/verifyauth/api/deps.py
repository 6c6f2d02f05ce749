"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from verifyauth.config import settings
from verifyauth.database import get_session
from verifyauth.models import User
from verifyauth.services.auth import InvalidSessionError, get_session_user
from verifyauth.services.email import EmailService, email_service
from verifyauth.services.users import get_user

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_email_service() -> EmailService:
    """The process-wide email service; overridden in tests."""
    return email_service


EmailServiceDep = Annotated[EmailService, Depends(get_email_service)]


async def get_current_user_optional(request: Request, session: SessionDep) -> User | None:
    """Resolve the session cookie to a user, or None if absent or invalid.

    The user is also stored on ``request.state`` so templates can show it.
    """
    token = request.cookies.get(settings.session_cookie_name)
    user = None
    if token:
        try:
            user = await get_session_user(session, token)
        except InvalidSessionError as e:
            # Expected for expired tokens and deleted users
            logger.debug(f"Ignoring session cookie: {e}")
    request.state.current_user = user
    return user


CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]


async def get_user_or_404(user_id: str, session: SessionDep, _current: CurrentUserOptional) -> User:
    """Load the user named in the path or raise 404."""
    user = await get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def get_user_for_update_or_404(
    user_id: str, session: SessionDep, _current: CurrentUserOptional
) -> User:
    """Like ``get_user_or_404`` but row-locks the user for the rest of the request."""
    user = await get_user(session, user_id, for_update=True)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


PathUser = Annotated[User, Depends(get_user_or_404)]
LockedPathUser = Annotated[User, Depends(get_user_for_update_or_404)]
