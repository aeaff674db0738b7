"""Thread creation, feeds, reactions, and deletion with push fan-out."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.realtime import PushEventType, PushHub
from domugrauds.errors import ForbiddenError, InvalidInputError, NotFoundError
from domugrauds.models.account import Account, Follow
from domugrauds.models.group import Group, GroupMembership
from domugrauds.models.thread import Thread, ThreadReaction
from domugrauds.models.topic import DailyTopic
from domugrauds.schemas.thread import ThreadOut
from domugrauds.services.account_service import role_satisfies
from domugrauds.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

MAX_CONTENT_LENGTH = 500
VISIBILITIES = frozenset({"public", "followers", "group"})


class ThreadService:
    """Service for thread lifecycle and reactions."""

    def __init__(self, notification_service: NotificationService, push_hub: PushHub) -> None:
        self._notification_service = notification_service
        self._push_hub = push_hub

    async def create_thread(
        self,
        db_session: AsyncSession,
        author: Account,
        content: str,
        visibility: str = "public",
        attachments: list[str] | None = None,
        parent_id: UUID | None = None,
        group_id: UUID | None = None,
        topic_id: UUID | None = None,
    ) -> ThreadOut:
        """Validate and persist a thread, then notify and push it."""
        content = content.strip()
        if not content:
            raise InvalidInputError("Content is required.")
        if len(content) > MAX_CONTENT_LENGTH:
            raise InvalidInputError(
                f"Content must be at most {MAX_CONTENT_LENGTH} characters long."
            )
        if visibility not in VISIBILITIES:
            raise InvalidInputError("Invalid visibility.")

        parent: Thread | None = None
        if parent_id is not None:
            parent = await db_session.get(Thread, parent_id)
            if parent is None:
                raise NotFoundError("Thread not found.")
            await self._ensure_visible(db_session, author.id, parent)
            if parent.group_id is not None:
                # Replies stay in the parent's group.
                group_id = parent.group_id
        if group_id is not None:
            if await db_session.get(Group, group_id) is None:
                raise NotFoundError("Group not found.")
            if not await self._is_member(db_session, group_id, author.id):
                raise ForbiddenError("You must be a member of this group to post.")
            visibility = "group"
        elif visibility == "group":
            raise InvalidInputError("Group threads require a group.")

        if topic_id is not None and await db_session.get(DailyTopic, topic_id) is None:
            raise NotFoundError("Topic not found.")

        thread = Thread(
            author_id=author.id,
            content=content,
            visibility=visibility,
            attachments=list(attachments or []),
            parent_id=parent_id,
            group_id=group_id,
            topic_id=topic_id,
        )
        db_session.add(thread)
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "thread_created",
            thread_id=str(thread.id),
            author_id=str(author.id),
            group_id=str(group_id) if group_id else None,
        )

        if parent is not None:
            await self._notification_service.notify_unless_self(
                db_session,
                actor_id=author.id,
                recipient_id=parent.author_id,
                notification_type="comment",
                message=f"{author.display_name} replied to your thread",
                related_id=str(thread.id),
            )

        view = (await self._build_views(db_session, [thread]))[0]
        await self._publish(db_session, thread, "thread_created", _dump(view))
        return view

    async def get_thread(self, db_session: AsyncSession, thread_id: UUID) -> ThreadOut:
        """Fetch one thread view."""
        thread = await db_session.get(Thread, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found.")
        return (await self._build_views(db_session, [thread]))[0]

    async def list_threads(
        self,
        db_session: AsyncSession,
        viewer: Account,
        limit: int = 20,
        offset: int = 0,
        author_id: UUID | None = None,
        group_id: UUID | None = None,
        parent_id: UUID | None = None,
    ) -> list[ThreadOut]:
        """List threads visible to the viewer, newest first."""
        statement = select(Thread)
        parent: Thread | None = None
        if parent_id is not None:
            parent = await db_session.get(Thread, parent_id)
            if parent is None:
                raise NotFoundError("Thread not found.")
            await self._ensure_visible(db_session, viewer.id, parent)
            statement = statement.where(Thread.parent_id == parent_id).order_by(
                Thread.created_at.asc(), Thread.id
            )
        else:
            statement = statement.where(Thread.parent_id.is_(None)).order_by(
                Thread.created_at.desc(), Thread.id
            )

        if parent is not None and parent.group_id is not None:
            statement = statement.where(Thread.group_id == parent.group_id)
        elif group_id is not None:
            group = await db_session.get(Group, group_id)
            if group is None:
                raise NotFoundError("Group not found.")
            if group.is_private and not await self._is_member(db_session, group_id, viewer.id):
                raise ForbiddenError("This group is private.")
            statement = statement.where(Thread.group_id == group_id)
        else:
            statement = statement.where(
                Thread.group_id.is_(None), self._visible_to(viewer.id)
            )
        if author_id is not None:
            statement = statement.where(Thread.author_id == author_id)

        result = await db_session.execute(statement.limit(limit).offset(offset))
        return await self._build_views(db_session, list(result.scalars().all()))

    async def search_threads(
        self, db_session: AsyncSession, viewer: Account, query: str, limit: int = 20
    ) -> list[ThreadOut]:
        """Search visible non-group threads by content substring."""
        term = query.strip().lower()
        if not term:
            raise InvalidInputError("Search query is required.")
        statement = (
            select(Thread)
            .where(
                Thread.group_id.is_(None),
                self._visible_to(viewer.id),
                func.lower(Thread.content).like(f"%{term}%"),
            )
            .order_by(Thread.created_at.desc(), Thread.id)
            .limit(limit)
        )
        result = await db_session.execute(statement)
        return await self._build_views(db_session, list(result.scalars().all()))

    async def react(
        self, db_session: AsyncSession, account: Account, thread_id: UUID, action: str
    ) -> ThreadOut:
        """Apply like/unlike/dislike/undislike; repeating an action is a no-op."""
        thread = await db_session.get(Thread, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found.")
        if action not in {"like", "unlike", "dislike", "undislike"}:
            raise InvalidInputError("Invalid action.")
        await self._ensure_visible(db_session, account.id, thread)

        account_id = account.id
        existing = await db_session.get(ThreadReaction, (thread_id, account_id))
        changed = False
        if action in {"like", "dislike"}:
            if existing is None:
                db_session.add(ThreadReaction(thread_id=thread_id, account_id=account_id, kind=action))
                changed = True
            elif existing.kind != action:
                existing.kind = action
                changed = True
        elif existing is not None and existing.kind == action.removeprefix("un"):
            await db_session.delete(existing)
            changed = True

        if changed:
            try:
                await db_session.flush()
            except IntegrityError:
                # Concurrent identical reaction; the row already exists.
                await db_session.rollback()
                changed = False
            else:
                await db_session.commit()

        thread = await db_session.get(Thread, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found.")
        view = (await self._build_views(db_session, [thread]))[0]
        if changed:
            logger.info(
                "thread_reaction_changed",
                thread_id=str(thread_id),
                account_id=str(account_id),
                action=action,
            )
            await self._publish(db_session, thread, "thread_updated", _dump(view))
            if action == "like":
                actor = await db_session.get(Account, account_id)
                display_name = actor.display_name if actor is not None else "Someone"
                await self._notification_service.notify_unless_self(
                    db_session,
                    actor_id=account_id,
                    recipient_id=thread.author_id,
                    notification_type="like",
                    message=f"{display_name} liked your thread",
                    related_id=str(thread_id),
                )
        return view

    async def delete_thread(self, db_session: AsyncSession, actor: Account, thread_id: UUID) -> None:
        """Delete a thread as its author or an admin."""
        thread = await db_session.get(Thread, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found.")
        if thread.author_id != actor.id and not role_satisfies(actor.role, "admin"):
            raise ForbiddenError("You can only delete your own threads.")

        payload = {"id": str(thread.id), "groupId": str(thread.group_id) if thread.group_id else None}
        try:
            await db_session.execute(delete(Thread).where(Thread.id == thread_id))
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("thread_deleted", thread_id=str(thread_id), actor_id=str(actor.id))
        await self._publish(db_session, thread, "thread_deleted", payload)

    @staticmethod
    def _visible_to(viewer_id: UUID):
        follows_author = (
            select(Follow.followee_id)
            .where(Follow.follower_id == viewer_id, Follow.followee_id == Thread.author_id)
            .exists()
        )
        return or_(
            Thread.visibility == "public",
            Thread.author_id == viewer_id,
            and_(Thread.visibility == "followers", follows_author),
        )

    async def _ensure_visible(
        self, db_session: AsyncSession, viewer_id: UUID, thread: Thread
    ) -> None:
        """Raise ForbiddenError unless the viewer may read the thread."""
        if thread.author_id == viewer_id:
            return
        if thread.group_id is not None:
            group = await db_session.get(Group, thread.group_id)
            if group is not None and group.is_private and not await self._is_member(
                db_session, thread.group_id, viewer_id
            ):
                raise ForbiddenError("This group is private.")
            return
        if thread.visibility == "followers":
            follow = await db_session.get(Follow, (viewer_id, thread.author_id))
            if follow is None:
                raise ForbiddenError("This thread is only visible to followers.")

    async def _is_member(self, db_session: AsyncSession, group_id: UUID, account_id: UUID) -> bool:
        membership = await db_session.get(GroupMembership, (group_id, account_id))
        return membership is not None

    async def _build_views(self, db_session: AsyncSession, threads: list[Thread]) -> list[ThreadOut]:
        """Attach author summaries, reaction sets, and reply counts."""
        if not threads:
            return []
        thread_ids = [thread.id for thread in threads]
        author_ids = {thread.author_id for thread in threads}

        authors_result = await db_session.execute(select(Account).where(Account.id.in_(author_ids)))
        authors = {account.id: account for account in authors_result.scalars().all()}

        reactions: dict[UUID, dict[str, list[str]]] = defaultdict(
            lambda: {"like": [], "dislike": []}
        )
        reactions_result = await db_session.execute(
            select(ThreadReaction).where(ThreadReaction.thread_id.in_(thread_ids))
        )
        for reaction in reactions_result.scalars().all():
            reactions[reaction.thread_id][reaction.kind].append(str(reaction.account_id))

        replies_result = await db_session.execute(
            select(Thread.parent_id, func.count())
            .where(Thread.parent_id.in_(thread_ids))
            .group_by(Thread.parent_id)
        )
        reply_counts = {parent_id: int(count) for parent_id, count in replies_result.all()}

        views: list[ThreadOut] = []
        for thread in threads:
            author = authors.get(thread.author_id)
            views.append(
                ThreadOut(
                    id=thread.id,
                    author_id=thread.author_id,
                    author_username=author.username if author else "deleted",
                    author_display_name=author.display_name if author else "Deleted user",
                    author_avatar=author.avatar if author else None,
                    content=thread.content,
                    visibility=thread.visibility,
                    attachments=list(thread.attachments or []),
                    parent_id=thread.parent_id,
                    group_id=thread.group_id,
                    topic_id=thread.topic_id,
                    likes=reactions[thread.id]["like"],
                    dislikes=reactions[thread.id]["dislike"],
                    reply_count=reply_counts.get(thread.id, 0),
                    created_at=thread.created_at,
                    updated_at=thread.updated_at,
                )
            )
        return views

    async def _publish(
        self,
        db_session: AsyncSession,
        thread: Thread,
        event_type: PushEventType,
        payload: dict,
    ) -> None:
        """Route a thread event by audience: group room, followers, or everyone."""
        if thread.group_id is not None:
            await self._push_hub.send_to_group(thread.group_id, event_type, payload)
            return
        if thread.visibility == "followers":
            result = await db_session.execute(
                select(Follow.follower_id).where(Follow.followee_id == thread.author_id)
            )
            recipients = {thread.author_id, *result.scalars().all()}
            for recipient_id in recipients:
                await self._push_hub.send_to_account(recipient_id, event_type, payload)
            return
        await self._push_hub.broadcast(event_type, payload)


def _dump(view: ThreadOut) -> dict:
    return view.model_dump(mode="json", by_alias=True)
