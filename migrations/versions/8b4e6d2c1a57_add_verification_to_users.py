"""add_verification_to_users

Revision ID: 8b4e6d2c1a57
Revises: 3f1c2a9b7d10
Create Date: 2025-02-09 17:27:34.000000

Add the pending verification code and the verified flag to users.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8b4e6d2c1a57"
down_revision: str | None = "3f1c2a9b7d10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("users", sa.Column("verification_code", sa.String(length=6), nullable=True))
    op.add_column(
        "users",
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_column("users", "verified")
    op.drop_column("users", "verification_code")
