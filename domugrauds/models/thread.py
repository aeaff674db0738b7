"""Thread and reaction ORM models."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from domugrauds.db.base import Base, TimestampMixin


class Thread(Base, TimestampMixin):
    """Short text post, optionally a reply, a group post, or a topic response."""

    __tablename__ = "threads"
    __table_args__ = (
        Index("ix_threads_author_id_created_at", "author_id", "created_at"),
        Index("ix_threads_group_id_created_at", "group_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    author_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(String(500), nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="public")
    attachments: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=True
    )
    group_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True
    )
    topic_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("daily_topics.id", ondelete="SET NULL"), nullable=True
    )


class ThreadReaction(Base):
    """One like or dislike per account per thread."""

    __tablename__ = "thread_reactions"

    thread_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), primary_key=True
    )
    account_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    kind: Mapped[str] = mapped_column(String(8), nullable=False)
