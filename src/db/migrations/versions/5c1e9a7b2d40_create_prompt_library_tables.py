"""
Create users, prompts, tags, prompt_tags, prompt_versions and attachments tables.

Revision ID: 5c1e9a7b2d40
Revises:
Create Date: 2026-10-16 09:12:44.118305
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7b2d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("username", sa.String(length=100), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("role", sa.String(length=20), server_default="user", nullable=False),
        sa.Column("otp_secret", sa.String(length=64), nullable=True),
        sa.Column(
            "otp_required_for_login", sa.Boolean(), server_default=sa.false(), nullable=False,
        ),
        sa.Column("consumed_timestep", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_created_at"), "users", ["created_at"], unique=False)

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("usage_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tags_slug"), "tags", ["slug"], unique=True)
    op.create_index(op.f("ix_tags_usage_count"), "tags", ["usage_count"], unique=False)
    op.create_index(op.f("ix_tags_created_at"), "tags", ["created_at"], unique=False)
    op.create_index("uq_tags_name_lower", "tags", [sa.text("lower(name)")], unique=True)

    op.create_table(
        "prompts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("visibility", sa.String(length=20), server_default="private", nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("ai_provider", sa.String(length=20), server_default="both", nullable=False),
        sa.Column("usage_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("like_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_prompts_user_id"), "prompts", ["user_id"], unique=False)
    op.create_index(op.f("ix_prompts_slug"), "prompts", ["slug"], unique=True)
    op.create_index(op.f("ix_prompts_visibility"), "prompts", ["visibility"], unique=False)
    op.create_index(op.f("ix_prompts_category"), "prompts", ["category"], unique=False)
    op.create_index(op.f("ix_prompts_created_at"), "prompts", ["created_at"], unique=False)
    op.create_index(
        "ix_prompts_user_id_created_at", "prompts", ["user_id", "created_at"], unique=False,
    )

    op.create_table(
        "prompt_tags",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prompt_id", sa.Integer(), nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["prompt_id"], ["prompts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prompt_id", "tag_id", name="uq_prompt_tags_prompt_id_tag_id"),
    )
    op.create_index(op.f("ix_prompt_tags_prompt_id"), "prompt_tags", ["prompt_id"], unique=False)
    op.create_index(op.f("ix_prompt_tags_tag_id"), "prompt_tags", ["tag_id"], unique=False)

    op.create_table(
        "prompt_versions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prompt_id", sa.Integer(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("changed_by_id", sa.Integer(), nullable=True),
        sa.Column("change_description", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["prompt_id"], ["prompts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["changed_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "prompt_id", "version_number", name="uq_prompt_versions_prompt_id_version_number",
        ),
    )
    op.create_index(
        op.f("ix_prompt_versions_prompt_id"), "prompt_versions", ["prompt_id"], unique=False,
    )
    op.create_index(
        op.f("ix_prompt_versions_changed_by_id"),
        "prompt_versions",
        ["changed_by_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_prompt_versions_created_at"), "prompt_versions", ["created_at"], unique=False,
    )

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prompt_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=True),
        sa.Column("byte_size", sa.BigInteger(), nullable=False),
        sa.Column(
            "checksum", sa.String(length=64), nullable=False, comment="SHA-256 hex digest",
        ),
        sa.Column("storage_key", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["prompt_id"], ["prompts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_key"),
    )
    op.create_index(op.f("ix_attachments_prompt_id"), "attachments", ["prompt_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_attachments_prompt_id"), table_name="attachments")
    op.drop_table("attachments")
    op.drop_index(op.f("ix_prompt_versions_created_at"), table_name="prompt_versions")
    op.drop_index(op.f("ix_prompt_versions_changed_by_id"), table_name="prompt_versions")
    op.drop_index(op.f("ix_prompt_versions_prompt_id"), table_name="prompt_versions")
    op.drop_table("prompt_versions")
    op.drop_index(op.f("ix_prompt_tags_tag_id"), table_name="prompt_tags")
    op.drop_index(op.f("ix_prompt_tags_prompt_id"), table_name="prompt_tags")
    op.drop_table("prompt_tags")
    op.drop_index("ix_prompts_user_id_created_at", table_name="prompts")
    op.drop_index(op.f("ix_prompts_created_at"), table_name="prompts")
    op.drop_index(op.f("ix_prompts_category"), table_name="prompts")
    op.drop_index(op.f("ix_prompts_visibility"), table_name="prompts")
    op.drop_index(op.f("ix_prompts_slug"), table_name="prompts")
    op.drop_index(op.f("ix_prompts_user_id"), table_name="prompts")
    op.drop_table("prompts")
    op.drop_index("uq_tags_name_lower", table_name="tags")
    op.drop_index(op.f("ix_tags_created_at"), table_name="tags")
    op.drop_index(op.f("ix_tags_usage_count"), table_name="tags")
    op.drop_index(op.f("ix_tags_slug"), table_name="tags")
    op.drop_table("tags")
    op.drop_index(op.f("ix_users_created_at"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
