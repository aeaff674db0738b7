"""CLI entrypoints for operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

import uvicorn

from domugrauds.config import configure_structlog, get_settings
from domugrauds.core.sessions import SessionService
from domugrauds.db.session import Database
from domugrauds.errors import NotFoundError
from domugrauds.services.account_service import AccountService


async def _run_purge_sessions() -> int:
    """Delete expired session rows."""
    settings = get_settings()
    database = Database(settings.database)
    session_service = SessionService(session_ttl_seconds=settings.jwt.session_token_ttl_seconds)
    try:
        async with database.session_factory() as db_session:
            purged = await session_service.purge_expired(db_session)
    finally:
        await database.dispose()
    print(json.dumps({"purged_sessions": purged}))
    return 0


async def _run_promote_admin(email: str) -> int:
    """Grant the admin role to the account registered under an email."""
    settings = get_settings()
    database = Database(settings.database)
    try:
        async with database.session_factory() as db_session:
            account = await AccountService().promote_to_admin(db_session, email)
    except NotFoundError as exc:
        print(json.dumps({"error": exc.detail, "code": exc.code}))
        return 1
    finally:
        await database.dispose()
    print(json.dumps({"account_id": str(account.id), "role": account.role}))
    return 0


def _run_realtime(host: str | None, port: int | None) -> int:
    """Serve the application, including the `/ws` push endpoint, with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "domugrauds.main:create_app",
        factory=True,
        host=host or settings.realtime.host,
        port=port or settings.realtime.port,
        log_config=None,
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m domugrauds.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("purge-sessions", help="Delete expired sessions.")

    promote_parser = subcommands.add_parser("promote-admin", help="Grant the admin role.")
    promote_parser.add_argument("email")

    realtime_parser = subcommands.add_parser("realtime", help="Serve the push endpoint.")
    realtime_parser.add_argument("--host", default=None)
    realtime_parser.add_argument("--port", type=int, default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_structlog(get_settings())
    if args.command == "purge-sessions":
        return asyncio.run(_run_purge_sessions())
    if args.command == "promote-admin":
        return asyncio.run(_run_promote_admin(args.email))
    if args.command == "realtime":
        return _run_realtime(host=args.host, port=args.port)
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
