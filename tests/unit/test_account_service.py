"""Unit tests for account validation, password checks, and role ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from domugrauds.errors import ForbiddenError, InvalidInputError
from domugrauds.models.account import Account
from domugrauds.services.account_service import AccountService, role_satisfies
from domugrauds.services.auth_service import AuthService


@dataclass
class _FakeResult:
    """Simple scalar result stub for async session tests."""

    account: Account | None

    def scalar_one_or_none(self) -> Account | None:
        """Return the configured scalar value."""
        return self.account


class _FakeSession:
    """Minimal async session stub returning a fixed account."""

    def __init__(self, account: Account | None) -> None:
        self._account = account

    async def execute(self, _statement: object) -> _FakeResult:
        """Mimic AsyncSession.execute for unit tests."""
        return _FakeResult(account=self._account)


@pytest.fixture
def account_service() -> AccountService:
    """Account service with cheap hashing."""
    return AccountService(bcrypt_rounds=4)


def _build_account(service: AccountService, password: str, role: str = "member") -> Account:
    now = datetime.now(UTC)
    return Account(
        id=uuid4(),
        username="alice",
        email="alice@example.com",
        display_name="Alice",
        password_hash=service.hash_password(password),
        role=role,
        created_at=now,
        updated_at=now,
    )


def test_password_hash_round_trip(account_service: AccountService) -> None:
    """Hashes are bcrypt and verify only the original password."""
    password_hash = account_service.hash_password("secret1")

    assert password_hash.startswith("$2")
    assert password_hash != "secret1"
    assert account_service.verify_password("secret1", password_hash) is True
    assert account_service.verify_password("secret2", password_hash) is False


@pytest.mark.asyncio
async def test_authenticate_credentials_accepts_correct_password(
    account_service: AccountService,
) -> None:
    """Matching credentials return the account."""
    account = _build_account(account_service, "secret1")

    result = await account_service.authenticate_credentials(
        _FakeSession(account), "alice@example.com", "secret1"  # type: ignore[arg-type]
    )

    assert result is account


@pytest.mark.asyncio
async def test_authenticate_credentials_rejects_wrong_password(
    account_service: AccountService,
) -> None:
    """A wrong password returns None."""
    account = _build_account(account_service, "secret1")

    result = await account_service.authenticate_credentials(
        _FakeSession(account), "alice@example.com", "nope"  # type: ignore[arg-type]
    )

    assert result is None


@pytest.mark.asyncio
async def test_authenticate_credentials_unknown_email(account_service: AccountService) -> None:
    """An unknown email returns None after a dummy hash check."""
    result = await account_service.authenticate_credentials(
        _FakeSession(None), "ghost@example.com", "secret1"  # type: ignore[arg-type]
    )

    assert result is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("fields", "message"),
    [
        (
            {"username": "alice", "display_name": "", "email": "a@x.com", "password": "secret1"},
            "All fields are required.",
        ),
        (
            {"username": "alice", "display_name": "A", "email": "a@x", "password": "secret1"},
            "Invalid email format.",
        ),
        (
            {"username": "alice", "display_name": "A", "email": "a@x.com", "password": "12345"},
            "Password must be at least 6 characters long.",
        ),
        (
            {"username": " ab ", "display_name": "A", "email": "a@x.com", "password": "secret1"},
            "Username must be at least 3 characters long.",
        ),
    ],
)
async def test_register_validates_before_touching_the_database(
    account_service: AccountService, fields: dict[str, str], message: str
) -> None:
    """Field rules fail fast with InvalidInputError."""
    with pytest.raises(InvalidInputError) as exc_info:
        await account_service.register(_FakeSession(None), **fields)  # type: ignore[arg-type]

    assert exc_info.value.detail == message
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_search_requires_a_query(account_service: AccountService) -> None:
    """Blank search terms are rejected."""
    with pytest.raises(InvalidInputError):
        await account_service.search_accounts(_FakeSession(None), "   ")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_delete_account_refuses_self(account_service: AccountService) -> None:
    """Admins cannot delete their own account."""
    admin = _build_account(account_service, "secret1", role="admin")

    with pytest.raises(InvalidInputError):
        await account_service.delete_account(_FakeSession(None), admin, admin.id)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("role", "required", "expected"),
    [
        ("member", "member", True),
        ("admin", "member", True),
        ("admin", "admin", True),
        ("member", "admin", False),
        ("unknown", "member", False),
        ("admin", "superuser", False),
    ],
)
def test_role_satisfies(role: str, required: str, expected: bool) -> None:
    """Roles are ranked and unknown roles never satisfy a requirement."""
    assert role_satisfies(role, required) is expected


def test_authorize_raises_forbidden_for_insufficient_role(
    account_service: AccountService,
) -> None:
    """Members are refused admin operations."""
    member = _build_account(account_service, "secret1")

    with pytest.raises(ForbiddenError) as exc_info:
        AuthService.authorize(member, "admin")

    assert exc_info.value.status_code == 403
    assert AuthService.authorize(member, "member") is member
