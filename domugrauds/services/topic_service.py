"""Daily topic administration and current-topic resolution."""

from __future__ import annotations

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.db.base import utcnow
from domugrauds.errors import ConflictError, InvalidInputError, NotFoundError
from domugrauds.models.account import Account
from domugrauds.models.topic import DailyTopic

logger = structlog.get_logger(__name__)

ACTIVATION_CONFLICT_DETAIL = "Another topic was activated at the same time. Please retry."


class TopicService:
    """Service for daily topics; at most one topic is active at any time."""

    async def list_topics(self, db_session: AsyncSession) -> list[DailyTopic]:
        """List every topic, newest first."""
        statement = select(DailyTopic).order_by(DailyTopic.created_at.desc(), DailyTopic.id)
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def get_current_topic(
        self, db_session: AsyncSession, on_date: date | None = None
    ) -> DailyTopic | None:
        """Return the topic scheduled for a date, else the active topic, else None."""
        target_date = on_date or utcnow().date()
        scheduled = await db_session.execute(
            select(DailyTopic)
            .where(DailyTopic.scheduled_date == target_date)
            .order_by(DailyTopic.created_at.desc())
            .limit(1)
        )
        topic = scheduled.scalar_one_or_none()
        if topic is not None:
            return topic
        active = await db_session.execute(
            select(DailyTopic).where(DailyTopic.is_active.is_(True)).limit(1)
        )
        return active.scalar_one_or_none()

    async def create_topic(
        self,
        db_session: AsyncSession,
        actor: Account,
        title: str,
        description: str = "",
        is_active: bool = False,
        scheduled_date: date | None = None,
    ) -> DailyTopic:
        """Create a topic; activating it deactivates every other topic atomically."""
        title = self._validate_title(title)
        topic = DailyTopic(
            title=title,
            description=description.strip(),
            is_active=False,
            scheduled_date=scheduled_date,
            created_by=actor.id,
        )
        try:
            db_session.add(topic)
            await db_session.flush()
            if is_active:
                await self._activate(db_session, topic)
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError(ACTIVATION_CONFLICT_DETAIL) from exc
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("topic_created", topic_id=str(topic.id), is_active=topic.is_active)
        return topic

    async def update_topic(
        self,
        db_session: AsyncSession,
        topic_id: UUID,
        title: str,
        description: str = "",
        is_active: bool = False,
        scheduled_date: date | None = None,
    ) -> DailyTopic:
        """Replace a topic's fields; activation happens in the same transaction."""
        topic = await db_session.get(DailyTopic, topic_id)
        if topic is None:
            raise NotFoundError("Topic not found.")
        topic.title = self._validate_title(title)
        topic.description = description.strip()
        topic.scheduled_date = scheduled_date
        try:
            if is_active:
                await self._activate(db_session, topic)
            else:
                topic.is_active = False
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError(ACTIVATION_CONFLICT_DETAIL) from exc
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("topic_updated", topic_id=str(topic.id), is_active=topic.is_active)
        return topic

    async def delete_topic(self, db_session: AsyncSession, topic_id: UUID) -> None:
        """Delete a topic."""
        if await db_session.get(DailyTopic, topic_id) is None:
            raise NotFoundError("Topic not found.")
        try:
            await db_session.execute(delete(DailyTopic).where(DailyTopic.id == topic_id))
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("topic_deleted", topic_id=str(topic_id))

    async def _activate(self, db_session: AsyncSession, topic: DailyTopic) -> None:
        """Deactivate all other topics, then activate this one, without committing.

        The partial unique index on active topics rejects a concurrent
        activation that slipped past the deactivating UPDATE.
        """
        await db_session.execute(
            update(DailyTopic)
            .where(DailyTopic.id != topic.id, DailyTopic.is_active.is_(True))
            .values(is_active=False)
        )
        topic.is_active = True
        await db_session.flush()
        logger.info("topic_activated", topic_id=str(topic.id))

    @staticmethod
    def _validate_title(title: str) -> str:
        cleaned = title.strip()
        if not cleaned:
            raise InvalidInputError("Title is required.")
        return cleaned
