"""User model."""

from datetime import UTC, datetime

from nanoid import generate as nanoid_generate
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _now() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    """A registered account.

    ``verification_code`` holds the pending 6-digit code and is cleared once
    ``verified`` flips to true. The password is only ever stored as a bcrypt
    digest.
    """

    __tablename__ = "users"

    # 21-char URL-safe nanoid, also used in /users/{id} paths
    id: str = Field(default_factory=nanoid_generate, primary_key=True, max_length=21)
    name: str = Field(max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    password_digest: str = Field(max_length=255)
    verification_code: str | None = Field(default=None, max_length=6)
    verified: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=_now,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    updated_at: datetime = Field(
        default_factory=_now,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"onupdate": _now},
    )


class UserRead(SQLModel):
    """Public view of a user, safe to render."""

    id: str
    name: str
    email: str
    verified: bool
    created_at: datetime
