"""Initial social network schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def _account_fk(column: str, table: str, ondelete: str = "CASCADE") -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column],
        ["accounts.id"],
        name=op.f(f"fk_{table}_{column}_accounts"),
        ondelete=ondelete,
    )


def upgrade() -> None:
    """Apply the initial schema migration."""
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.String(length=512), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_accounts"),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
    )

    op.create_table(
        "follows",
        sa.Column("follower_id", sa.Uuid(), nullable=False),
        sa.Column("followee_id", sa.Uuid(), nullable=False),
        _created_at(),
        _account_fk("follower_id", "follows"),
        _account_fk("followee_id", "follows"),
        sa.PrimaryKeyConstraint("follower_id", "followee_id", name="pk_follows"),
    )
    op.create_index("ix_follows_followee_id", "follows", ["followee_id"], unique=False)

    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("hashed_token", sa.String(length=64), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        _account_fk("account_id", "sessions"),
        sa.PrimaryKeyConstraint("id", name="pk_sessions"),
        sa.UniqueConstraint("hashed_token", name="uq_sessions_hashed_token"),
    )
    op.create_index(
        "ix_sessions_account_id_expires_at", "sessions", ["account_id", "expires_at"], unique=False
    )

    op.create_table(
        "daily_topics",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        _created_at(),
        _updated_at(),
        _account_fk("created_by", "daily_topics", ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id", name="pk_daily_topics"),
    )
    op.create_index(
        "ix_daily_topics_scheduled_date", "daily_topics", ["scheduled_date"], unique=False
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        _created_at(),
        _account_fk("owner_id", "groups"),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
    )

    op.create_table(
        "group_memberships",
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_group_memberships_group_id_groups"),
            ondelete="CASCADE",
        ),
        _account_fk("account_id", "group_memberships"),
        sa.PrimaryKeyConstraint("group_id", "account_id", name="pk_group_memberships"),
    )
    op.create_index(
        "ix_group_memberships_account_id", "group_memberships", ["account_id"], unique=False
    )

    op.create_table(
        "group_invitations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("inviter_id", sa.Uuid(), nullable=False),
        sa.Column("invitee_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        _created_at(),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_group_invitations_group_id_groups"),
            ondelete="CASCADE",
        ),
        _account_fk("inviter_id", "group_invitations"),
        _account_fk("invitee_id", "group_invitations"),
        sa.PrimaryKeyConstraint("id", name="pk_group_invitations"),
    )
    op.create_index(
        "ix_group_invitations_group_id_invitee_id",
        "group_invitations",
        ["group_id", "invitee_id"],
        unique=False,
    )

    op.create_table(
        "threads",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.String(length=500), nullable=False),
        sa.Column("visibility", sa.String(length=16), nullable=False, server_default="public"),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=True),
        sa.Column("group_id", sa.Uuid(), nullable=True),
        sa.Column("topic_id", sa.Uuid(), nullable=True),
        _created_at(),
        _updated_at(),
        _account_fk("author_id", "threads"),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["threads.id"],
            name=op.f("fk_threads_parent_id_threads"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_threads_group_id_groups"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["topic_id"],
            ["daily_topics.id"],
            name=op.f("fk_threads_topic_id_daily_topics"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_threads"),
    )
    op.create_index(
        "ix_threads_author_id_created_at", "threads", ["author_id", "created_at"], unique=False
    )
    op.create_index(
        "ix_threads_group_id_created_at", "threads", ["group_id", "created_at"], unique=False
    )

    op.create_table(
        "thread_reactions",
        sa.Column("thread_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=8), nullable=False),
        sa.ForeignKeyConstraint(
            ["thread_id"],
            ["threads.id"],
            name=op.f("fk_thread_reactions_thread_id_threads"),
            ondelete="CASCADE",
        ),
        _account_fk("account_id", "thread_reactions"),
        sa.PrimaryKeyConstraint("thread_id", "account_id", name="pk_thread_reactions"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recipient_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.String(length=64), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _account_fk("recipient_id", "notifications"),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
    )
    op.create_index(
        "ix_notifications_recipient_id_created_at",
        "notifications",
        ["recipient_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    """Revert the initial schema migration."""
    op.drop_index("ix_notifications_recipient_id_created_at", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("thread_reactions")
    op.drop_index("ix_threads_group_id_created_at", table_name="threads")
    op.drop_index("ix_threads_author_id_created_at", table_name="threads")
    op.drop_table("threads")
    op.drop_index("ix_group_invitations_group_id_invitee_id", table_name="group_invitations")
    op.drop_table("group_invitations")
    op.drop_index("ix_group_memberships_account_id", table_name="group_memberships")
    op.drop_table("group_memberships")
    op.drop_table("groups")
    op.drop_index("ix_daily_topics_scheduled_date", table_name="daily_topics")
    op.drop_table("daily_topics")
    op.drop_index("ix_sessions_account_id_expires_at", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_follows_followee_id", table_name="follows")
    op.drop_table("follows")
    op.drop_table("accounts")
