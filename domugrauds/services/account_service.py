"""Account registration, lookup, profile, and admin management services."""

from __future__ import annotations

import re
from uuid import UUID

import structlog
from passlib.context import CryptContext
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.errors import ConflictError, InvalidInputError, NotFoundError
from domugrauds.models.account import Account, Follow
from domugrauds.models.session import Session

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3
ROLE_RANK = {"member": 0, "admin": 1}


class AccountService:
    """Service responsible for account persistence and password verification."""

    def __init__(self, bcrypt_rounds: int = 12) -> None:
        self._password_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=bcrypt_rounds
        )

    async def register(
        self,
        db_session: AsyncSession,
        username: str,
        display_name: str,
        email: str,
        password: str,
        bio: str | None = None,
        avatar: str | None = None,
    ) -> Account:
        """Validate and persist a new member account."""
        username = username.strip()
        display_name = display_name.strip()
        email = email.strip().lower()
        if not username or not display_name or not email or not password:
            raise InvalidInputError("All fields are required.")
        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError("Invalid email format.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )
        if len(username) < MIN_USERNAME_LENGTH:
            raise InvalidInputError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters long."
            )
        if await self.get_account_by_email(db_session, email) is not None:
            raise ConflictError("User with this email already exists.")
        if await self.get_account_by_username(db_session, username) is not None:
            raise ConflictError("Username already taken.")

        account = Account(
            username=username,
            display_name=display_name,
            email=email,
            password_hash=self.hash_password(password),
            bio=bio,
            avatar=avatar,
            role="member",
        )
        db_session.add(account)
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError("User with this email or username already exists.") from exc
        await db_session.commit()
        logger.info("account_registered", account_id=str(account.id), username=username)
        return account

    async def get_account(self, db_session: AsyncSession, account_id: UUID) -> Account | None:
        """Fetch an account by id."""
        return await db_session.get(Account, account_id)

    async def require_account(self, db_session: AsyncSession, account_id: UUID) -> Account:
        """Fetch an account by id or raise when it does not exist."""
        account = await self.get_account(db_session, account_id)
        if account is None:
            raise NotFoundError("User not found.")
        return account

    async def get_account_by_email(self, db_session: AsyncSession, email: str) -> Account | None:
        """Fetch an account by case-insensitive email."""
        statement = select(Account).where(func.lower(Account.email) == email.strip().lower())
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def get_account_by_username(
        self, db_session: AsyncSession, username: str
    ) -> Account | None:
        """Fetch an account by case-insensitive username."""
        statement = select(Account).where(
            func.lower(Account.username) == username.strip().lower()
        )
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def authenticate_credentials(
        self,
        db_session: AsyncSession,
        email: str,
        password: str,
    ) -> Account | None:
        """Authenticate email/password credentials for login."""
        account = await self.get_account_by_email(db_session, email)
        if account is None:
            self._password_context.dummy_verify()
            return None
        if not self.verify_password(password=password, password_hash=account.password_hash):
            return None
        return account

    async def get_relations(
        self, db_session: AsyncSession, account_id: UUID
    ) -> tuple[list[str], list[str]]:
        """Return (following, followers) id lists for an account."""
        following_result = await db_session.execute(
            select(Follow.followee_id).where(Follow.follower_id == account_id)
        )
        followers_result = await db_session.execute(
            select(Follow.follower_id).where(Follow.followee_id == account_id)
        )
        following = [str(value) for value in following_result.scalars().all()]
        followers = [str(value) for value in followers_result.scalars().all()]
        return following, followers

    async def update_profile(
        self,
        db_session: AsyncSession,
        account: Account,
        username: str | None = None,
        display_name: str | None = None,
        bio: str | None = None,
        avatar: str | None = None,
    ) -> Account:
        """Apply a partial profile update for the account owner."""
        if username is not None:
            username = username.strip()
            if len(username) < MIN_USERNAME_LENGTH:
                raise InvalidInputError(
                    f"Username must be at least {MIN_USERNAME_LENGTH} characters long."
                )
            if username.lower() != account.username.lower():
                existing = await self.get_account_by_username(db_session, username)
                if existing is not None:
                    raise ConflictError("Username already taken.")
            account.username = username
        if display_name is not None:
            display_name = display_name.strip()
            if not display_name:
                raise InvalidInputError("Display name cannot be empty.")
            account.display_name = display_name
        if bio is not None:
            account.bio = bio
        if avatar is not None:
            account.avatar = avatar
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError("Username already taken.") from exc
        await db_session.commit()
        logger.info("account_updated", account_id=str(account.id))
        return account

    async def search_accounts(
        self, db_session: AsyncSession, query: str, limit: int = 20
    ) -> list[Account]:
        """Search accounts by username or display name substring."""
        term = query.strip().lower()
        if not term:
            raise InvalidInputError("Search query is required.")
        pattern = f"%{term}%"
        statement = (
            select(Account)
            .where(
                or_(
                    func.lower(Account.username).like(pattern),
                    func.lower(Account.display_name).like(pattern),
                )
            )
            .order_by(Account.username)
            .limit(limit)
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def list_accounts(
        self, db_session: AsyncSession, query: str | None = None, limit: int = 100
    ) -> list[Account]:
        """List accounts for administration, optionally filtered."""
        statement = select(Account).order_by(Account.created_at.desc()).limit(limit)
        if query and query.strip():
            pattern = f"%{query.strip().lower()}%"
            statement = statement.where(
                or_(
                    func.lower(Account.username).like(pattern),
                    func.lower(Account.display_name).like(pattern),
                    func.lower(Account.email).like(pattern),
                )
            )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def list_by_ids(self, db_session: AsyncSession, account_ids: list[UUID]) -> list[Account]:
        """Fetch accounts for a set of ids."""
        if not account_ids:
            return []
        result = await db_session.execute(select(Account).where(Account.id.in_(account_ids)))
        return list(result.scalars().all())

    async def delete_account(
        self, db_session: AsyncSession, actor: Account, account_id: UUID
    ) -> None:
        """Delete a member account along with its sessions and owned content."""
        if actor.id == account_id:
            raise InvalidInputError("You cannot delete your own account.")
        target = await self.get_account(db_session, account_id)
        if target is None:
            raise NotFoundError("User not found.")
        if target.role == "admin":
            raise InvalidInputError("Cannot delete admin users.")

        try:
            await db_session.execute(delete(Session).where(Session.account_id == account_id))
            await db_session.execute(delete(Account).where(Account.id == account_id))
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "account_deleted",
            account_id=str(account_id),
            actor_id=str(actor.id),
        )

    async def promote_to_admin(self, db_session: AsyncSession, email: str) -> Account:
        """Grant the admin role to an existing account."""
        account = await self.get_account_by_email(db_session, email)
        if account is None:
            raise NotFoundError("User not found.")
        if account.role != "admin":
            account.role = "admin"
            await db_session.flush()
            await db_session.commit()
            logger.info("account_promoted", account_id=str(account.id))
        return account

    def hash_password(self, password: str) -> str:
        """Generate a bcrypt hash for the provided password."""
        return str(self._password_context.hash(password))

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a plaintext password against the stored bcrypt hash."""
        return bool(self._password_context.verify(password, password_hash))


def role_satisfies(role: str, required_role: str) -> bool:
    """Return whether a role meets or exceeds the required role."""
    return ROLE_RANK.get(role, -1) >= ROLE_RANK.get(required_role, len(ROLE_RANK))
