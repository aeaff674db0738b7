"""Credential and session orchestration: login, logout, authenticate, authorize."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.jwt import JWTService, TokenValidationError
from domugrauds.core.sessions import SessionService
from domugrauds.errors import ForbiddenError, UnauthorizedError
from domugrauds.models.account import Account
from domugrauds.services.account_service import AccountService, role_satisfies

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """Account plus the raw signed token bound to its new session row."""

    account: Account
    token: str


class AuthService:
    """Binds signed tokens to revocable session rows."""

    def __init__(
        self,
        account_service: AccountService,
        jwt_service: JWTService,
        session_service: SessionService,
    ) -> None:
        self._account_service = account_service
        self._jwt_service = jwt_service
        self._session_service = session_service

    @property
    def session_ttl_seconds(self) -> int:
        """Return the lifetime shared by tokens and session rows."""
        return self._jwt_service.session_token_ttl_seconds

    async def start_session(
        self,
        db_session: AsyncSession,
        account: Account,
        ip_address: str,
        user_agent: str,
    ) -> IssuedSession:
        """Issue a signed token for an account and persist its session row."""
        token = self._jwt_service.issue_session_token(
            account_id=str(account.id),
            email=account.email,
            username=account.username,
        )
        await self._session_service.create_session(
            db_session=db_session,
            account_id=account.id,
            raw_token=token,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return IssuedSession(account=account, token=token)

    async def login(
        self,
        db_session: AsyncSession,
        email: str,
        password: str,
        ip_address: str,
        user_agent: str,
    ) -> IssuedSession:
        """Verify credentials and start a new session."""
        account = await self._account_service.authenticate_credentials(
            db_session=db_session,
            email=email,
            password=password,
        )
        if account is None:
            logger.warning("login_failed", ip_address=ip_address)
            raise UnauthorizedError("Invalid email or password.", code="invalid_credentials")
        issued = await self.start_session(db_session, account, ip_address, user_agent)
        logger.info("login_succeeded", account_id=str(account.id), ip_address=ip_address)
        return issued

    async def logout(self, db_session: AsyncSession, token: str | None) -> None:
        """Revoke the session for a token; succeeds even when nothing matches."""
        if not token:
            return
        try:
            await self._session_service.revoke_session(db_session=db_session, raw_token=token)
        except SQLAlchemyError:
            logger.exception("logout_revoke_failed")

    async def authenticate(self, db_session: AsyncSession, token: str | None) -> Account | None:
        """Resolve a token to its account, or None when any check fails."""
        if not token:
            return None
        try:
            claims = self._jwt_service.verify_token(token)
        except TokenValidationError as exc:
            logger.info("token_rejected", reason=exc.code)
            return None

        session_row = await self._session_service.get_live_session(
            db_session=db_session, raw_token=token
        )
        if session_row is None:
            logger.info("token_rejected", reason="session_missing")
            return None
        try:
            subject = UUID(str(claims["sub"]))
        except ValueError:
            return None
        if session_row.account_id != subject:
            logger.warning(
                "token_session_mismatch",
                session_id=str(session_row.id),
                subject=str(subject),
            )
            return None
        return await self._account_service.get_account(db_session, subject)

    async def require_account(self, db_session: AsyncSession, token: str | None) -> Account:
        """Resolve a token to its account or raise an authentication error."""
        account = await self.authenticate(db_session, token)
        if account is None:
            raise UnauthorizedError("Authentication required.")
        return account

    @staticmethod
    def authorize(account: Account, required_role: str) -> Account:
        """Raise unless the account's role meets the required role."""
        if not role_satisfies(account.role, required_role):
            raise ForbiddenError("Insufficient permissions.")
        return account
