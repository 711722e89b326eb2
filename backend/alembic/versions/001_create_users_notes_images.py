"""Create users, notes and note_images tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema for NOTE_STORE=sql.
How:   String(36) ids minted by the application (uuid4), TIMESTAMP WITH
       TIME ZONE for all timestamps, cascading deletes from users down.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "username",
            sa.String(64),
            nullable=False,
            comment="URL segment in /users/{username}",
        ),
        sa.Column("name", sa.String(255), nullable=True, comment="Display name, optional"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "notes",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(36), nullable=False),
        # Limits match the editor rules so the database never truncates
        sa.Column("title", sa.String(1000), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    # Notes list: WHERE owner_id = ? ORDER BY updated_at DESC
    op.create_index("idx_notes_owner_updated", "notes", ["owner_id", "updated_at"])

    op.create_table(
        "note_images",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("note_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(255), nullable=False),
        sa.Column(
            "file_path",
            sa.String(255),
            nullable=False,
            comment="Relative path from STORAGE_ROOT",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_note_images_note_id", "note_images", ["note_id"])


def downgrade() -> None:
    """Drop everything. All notes and image metadata are lost; files stay on disk."""
    op.drop_index("ix_note_images_note_id", table_name="note_images")
    op.drop_table("note_images")
    op.drop_index("idx_notes_owner_updated", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
