"""SQLModel database models."""

from verifyauth.models.user import User, UserRead

__all__ = [
    "User",
    "UserRead",
]
