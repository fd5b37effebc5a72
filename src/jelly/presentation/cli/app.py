"""Jelly CLI application using Typer.

Command-line utilities for deployment and operations: secret generation,
schema management, the queue worker and the API server.
"""

import asyncio
import secrets
import signal
from datetime import timedelta

import typer
import uvicorn
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jelly.application.jobs import MailLinks, QueueWorker, WorkerOptions
from jelly.application.jobs.handlers import RESET_WINDOW
from jelly.domain.jobs import BackoffPolicy
from jelly.domain.shared.time import utc_now
from jelly.infrastructure.email import EmailService
from jelly.infrastructure.persistence.sqlalchemy.init_db import (
    create_engine_from_settings,
    create_tables,
    describe_database_url,
    drop_tables,
)
from jelly.infrastructure.persistence.sqlalchemy.repositories import SessionScope
from jelly_config import configure_logging, get_settings

app = typer.Typer(
    name="jelly",
    help="Jelly - accounts, sign-in and email worker CLI",
    no_args_is_help=True,
)
console = Console()


secrets_app = typer.Typer(
    name="secrets",
    help="Secret generation utilities",
    no_args_is_help=True,
)
db_app = typer.Typer(name="db", help="Database schema management", no_args_is_help=True)
worker_app = typer.Typer(name="worker", help="Background job worker", no_args_is_help=True)
queue_app = typer.Typer(name="queue", help="Job queue maintenance", no_args_is_help=True)
app.add_typer(secrets_app)
app.add_typer(db_app)
app.add_typer(worker_app)
app.add_typer(queue_app)


@secrets_app.command("generate")
def generate_secrets() -> None:
    """Generate secure secrets for Jelly configuration.

    Copy the output to your .env file.
    """
    console.print("\n[bold green]Jelly Secret Generation[/bold green]")
    console.print("=" * 60)
    console.print(
        "\nGenerated secrets for your [bold].env[/bold] configuration file:\n"
    )

    # 64 bytes for HS256 session signing
    console.print(f"[cyan]SECRET_KEY[/cyan]={secrets.token_urlsafe(64)}")
    console.print(f"[cyan]POSTGRES_PASSWORD[/cyan]={secrets.token_urlsafe(32)}")

    console.print("\n" + "=" * 60)
    console.print(
        "[yellow]Keep these secrets secure and never commit them "
        "to version control![/yellow]"
    )
    console.print(
        "[dim]Copy the above values to your config/.env (Docker) or "
        "config/.env.dev (local) file.[/dim]\n"
    )


@db_app.command("init")
def init_db(
    drop: bool = typer.Option(
        False,
        "--drop",
        help="Drop all tables first (destroys data)",
    ),
) -> None:
    """Create missing tables."""
    settings = get_settings()
    configure_logging(settings.log_level)
    target = describe_database_url(settings.database_url)

    if drop and not typer.confirm(f"Drop all tables in {target}?"):
        raise typer.Abort()

    async def _run() -> None:
        engine = create_engine_from_settings()
        try:
            if drop:
                await drop_tables(engine)
            await create_tables(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print(f"[green]Schema ready[/green] on {target}")


def _build_worker(session_maker: async_sessionmaker[AsyncSession]) -> QueueWorker:
    settings = get_settings()
    return QueueWorker(
        repositories_factory=lambda: SessionScope(session_maker),
        email_sender=EmailService(settings),
        links=MailLinks.from_settings(settings),
        policy=BackoffPolicy.from_settings(settings),
        options=WorkerOptions.from_settings(settings),
    )


@worker_app.command("run")
def run_worker(
    once: bool = typer.Option(
        False,
        "--once",
        help="Process a single batch and exit",
    ),
) -> None:
    """Poll the job queue and deliver emails until interrupted."""
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _run() -> None:
        engine = create_engine_from_settings()
        session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        worker = _build_worker(session_maker)
        try:
            if once:
                result = await worker.run_once()
                console.print(
                    f"Claimed {result.claimed}: {result.done} done, "
                    f"{result.retried} retried, {result.failed} failed"
                )
                return

            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop_event.set)
            console.print(
                f"[green]Worker {worker.worker_id} polling[/green] "
                f"{describe_database_url(settings.database_url)}"
            )
            await worker.run_forever(stop_event)
        finally:
            await engine.dispose()

    asyncio.run(_run())


@queue_app.command("purge")
def purge_queue(
    days: int = typer.Option(7, "--days", min=0, help="Keep done jobs this many days"),
) -> None:
    """Delete finished jobs older than ``--days`` and long-expired tokens.

    Tokens and OAuth states go one day after they expire.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _run() -> tuple[int, int, int]:
        engine = create_engine_from_settings()
        session_maker = async_sessionmaker(engine, class_=AsyncSession)
        now = utc_now()
        try:
            async with SessionScope(session_maker) as repos:
                jobs = await repos.job_queue().purge_done(now - timedelta(days=days))
                tokens = await repos.token_repository().cleanup_expired(now - RESET_WINDOW)
                states = await repos.oauth_state_repository().cleanup_expired(
                    now - RESET_WINDOW,
                )
                await repos.commit()
            return jobs, tokens, states
        finally:
            await engine.dispose()

    jobs, tokens, states = asyncio.run(_run())
    console.print(f"Removed [bold]{jobs}[/bold] finished job(s)")
    console.print(
        f"Removed [bold]{tokens}[/bold] expired token(s) and "
        f"[bold]{states}[/bold] expired OAuth state(s)",
    )


@queue_app.command("stats")
def queue_stats() -> None:
    """Show how many jobs are in each state."""
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _run() -> dict:
        engine = create_engine_from_settings()
        session_maker = async_sessionmaker(engine, class_=AsyncSession)
        try:
            async with SessionScope(session_maker) as repos:
                return await repos.job_queue().count_by_status()
        finally:
            await engine.dispose()

    counts = asyncio.run(_run())
    table = Table(title="Job queue")
    table.add_column("Status")
    table.add_column("Jobs", justify="right")
    for status, count in counts.items():
        table.add_row(status.name.lower(), str(count))
    console.print(table)


@app.command("api")
def run_api(
    host: str | None = typer.Option(None, help="Bind address (default API_HOST)"),
    port: int | None = typer.Option(None, help="Port (default API_PORT)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Serve the HTTP API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "jelly.presentation.api.app:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
    )


def cli() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli()
