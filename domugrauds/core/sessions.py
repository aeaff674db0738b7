"""Database-backed session records that make signed tokens revocable."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from hashlib import sha256
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.models.session import Session

logger = structlog.get_logger(__name__)


class SessionService:
    """Service for session creation, lookup, and revocation."""

    def __init__(self, session_ttl_seconds: int) -> None:
        self._session_ttl_seconds = session_ttl_seconds

    async def create_session(
        self,
        db_session: AsyncSession,
        account_id: UUID,
        raw_token: str,
        ip_address: str,
        user_agent: str,
    ) -> Session:
        """Persist a session row keyed by the token hash."""
        session_row = Session(
            account_id=account_id,
            hashed_token=self.hash_token(raw_token),
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=datetime.now(UTC) + timedelta(seconds=self._session_ttl_seconds),
        )
        try:
            db_session.add(session_row)
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "session_created",
            account_id=str(account_id),
            session_id=str(session_row.id),
            ip_address=ip_address,
        )
        return session_row

    async def get_live_session(self, db_session: AsyncSession, raw_token: str) -> Session | None:
        """Return the unexpired session for a token, if one exists."""
        statement = select(Session).where(
            Session.hashed_token == self.hash_token(raw_token),
            Session.expires_at > datetime.now(UTC),
        )
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def revoke_session(self, db_session: AsyncSession, raw_token: str) -> bool:
        """Delete the session for a token; unknown tokens are not an error."""
        statement = delete(Session).where(Session.hashed_token == self.hash_token(raw_token))
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        revoked = bool(result.rowcount)
        logger.info("session_revoked", revoked=revoked)
        return revoked

    async def revoke_account_sessions(self, db_session: AsyncSession, account_id: UUID) -> int:
        """Delete every session belonging to an account."""
        statement = delete(Session).where(Session.account_id == account_id)
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("account_sessions_revoked", account_id=str(account_id), count=result.rowcount)
        return int(result.rowcount or 0)

    async def purge_expired(self, db_session: AsyncSession) -> int:
        """Delete sessions whose expiry has passed."""
        statement = delete(Session).where(Session.expires_at <= datetime.now(UTC))
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("expired_sessions_purged", count=result.rowcount)
        return int(result.rowcount or 0)

    @staticmethod
    def hash_token(raw_token: str) -> str:
        """Hash token with SHA-256 for persistent storage."""
        return sha256(raw_token.encode("utf-8")).hexdigest()
