"""feat: users, user_lists and user_list_contributors tables

Revision ID: 5b1f0c2a9d47
Revises:
Create Date: 2025-07-18 10:12:44.120391

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1f0c2a9d47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Identities are written by the auth side; created here so the FKs resolve.
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("firebase_uid", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("username", sa.String(30), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("profile_picture", sa.Text, nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("timezone", sa.String(100), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        if_not_exists=True,
    )

    op.create_table(
        "user_lists",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Index("ix_user_lists_owner_id", "owner_id"),
    )

    # No unique (list_id, contributor_id): duplicate adds are allowed on purpose.
    op.create_table(
        "user_list_contributors",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("list_id", sa.Integer, sa.ForeignKey("user_lists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contributor_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Index("ix_user_list_contributors_list_id", "list_id"),
        sa.Index("ix_user_list_contributors_contributor_id", "contributor_id"),
    )


def downgrade() -> None:
    op.drop_table("user_list_contributors")
    op.drop_table("user_lists")
    # users is shared with the auth side and left in place
