"""todogate CLI — run the server and manage the database.

Usage:
    todogate serve                       # Run the API with uvicorn
    todogate check-config                # Report missing TODOGATE_* settings
    todogate init-db                     # Create tables (dev; use alembic in prod)
    todogate set-role alice@x.io admin   # Grant a role (e.g. admin)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys

import click

from todogate.config import settings


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_database_url() -> str:
    if not settings.database_url:
        click.secho("Error: TODOGATE_DATABASE_URL is not set", fg="red", err=True)
        sys.exit(1)
    return settings.database_url


@click.group()
def cli():
    """todogate — session-gated todo API."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: TODOGATE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TODOGATE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "todogate.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("check-config")
def check_config():
    """Report which mandatory settings are missing. Exit 1 if any are."""
    for key, value in (
        ("TODOGATE_DATABASE_URL", settings.database_url),
        ("TODOGATE_AUTH_SECRET", settings.auth_secret),
        ("TODOGATE_APP_URL", settings.app_url),
    ):
        state = click.style("SET", fg="green") if value else click.style("MISSING", fg="red")
        click.echo(f"{key:<24} {state}")

    missing = settings.missing_config()
    if missing:
        click.secho(
            "Public endpoints will serve; todos/auth will answer 503.",
            fg="yellow",
        )
        sys.exit(1)


@cli.command("init-db")
def init_db():
    """Create all tables directly from the models."""
    from todogate.db.engine import build_engine
    from todogate.db.models import Base

    async def _create():
        engine = build_engine(_require_database_url())
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    _run(_create())
    click.secho("Tables created.", fg="green")


@cli.command("set-role")
@click.argument("email")
@click.argument("role")
def set_role(email: str, role: str):
    """Set a user's role (e.g. grant admin for /admin/* routes)."""
    from todogate.auth.credentials import CredentialService
    from todogate.db.engine import build_engine, build_session_factory

    async def _set() -> bool:
        engine = build_engine(_require_database_url())
        try:
            creds = CredentialService(
                build_session_factory(engine),
                secret=settings.auth_secret or "",
                base_url=settings.app_url or "",
            )
            return await creds.set_role(email, role)
        finally:
            await engine.dispose()

    if not _run(_set()):
        click.secho(f"No user with email {email}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"{email} is now '{role}'", fg="green")


if __name__ == "__main__":
    cli()
