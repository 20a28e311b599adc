"""Chime CLI — main entry point."""

import logging

import click

from chime.cli.status import health


@click.group()
@click.version_option(package_name="chime")
def cli():
    """Chime — scheduled Telegram reminder delivery."""
    from chime.config import get_settings

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(health)


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to API_PORT)")
def serve(host: str | None, port: int | None):
    """Serve the cron trigger and health API with uvicorn."""
    import uvicorn

    from chime.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "chime.api.app:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def tick():
    """Run a single delivery tick now and print its summary."""
    import asyncio

    from rich.console import Console
    from rich.table import Table

    from chime.core.ticks import run_tick

    console = Console()
    result = asyncio.run(run_tick())

    table = Table(title=f"Tick {result.tick_id}", show_header=True)
    table.add_column("Claimed", justify="right")
    table.add_column("Sent", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Duration (ms)", justify="right")
    table.add_row(
        str(result.claimed),
        str(result.sent),
        str(result.failed),
        str(result.skipped),
        str(result.duration_ms),
    )
    console.print(table)

    if not result.ok:
        console.print(f"[bold red]Tick failed:[/bold red] {result.error}")
        raise SystemExit(1)


@cli.command("requeue-failed")
def requeue_failed():
    """Re-activate failed reminders whose retry window has opened."""
    import asyncio
    from datetime import UTC, datetime

    from chime.core.dispatcher import ClaimDispatcher

    count = asyncio.run(ClaimDispatcher().requeue_failed(datetime.now(UTC)))
    click.echo(f"Requeued {count} failed reminder(s).")


@cli.command("release-stale")
@click.option(
    "--older-than",
    default=None,
    type=int,
    help="Claim age in seconds (defaults to CLAIM_TIMEOUT_SECONDS)",
)
def release_stale(older_than: int | None):
    """Hand reminders stuck in processing back to the queue."""
    import asyncio
    from datetime import UTC, datetime, timedelta

    from chime.config import get_settings
    from chime.core.dispatcher import ClaimDispatcher

    seconds = older_than if older_than is not None else get_settings().claim_timeout_seconds
    cutoff = datetime.now(UTC) - timedelta(seconds=seconds)
    count = asyncio.run(ClaimDispatcher().release_stale_claims(cutoff))
    click.echo(f"Released {count} stale claim(s).")


if __name__ == "__main__":
    cli()
