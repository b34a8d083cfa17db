"""Command-line interface for Plateshare."""

from __future__ import annotations

from typing import Optional

import typer

from plateshare.config import get_settings
from plateshare.db.repository import init_database
from plateshare.logging_utils import configure_logging
from plateshare.notifications.reminders import ExpiryReminder
from plateshare.notifications.service import NotificationService

app = typer.Typer(help="Plateshare food-donation marketplace commands.")


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


@app.command("init-db")
def init_db() -> None:
    """Create the database schema if it does not exist yet."""

    typer.echo(f"Database ready at {init_database()}")


@app.command("notify-expiring")
def notify_expiring(
    window_hours: Optional[int] = typer.Option(
        None,
        "--window-hours",
        min=1,
        help="Override the reminder window (hours).",
    ),
) -> None:
    """
    Send one round of expiring-listing reminders to restaurants.
    """

    settings = get_settings()
    reminder = ExpiryReminder(
        NotificationService(enabled=settings.notifications_enabled),
        window_hours=window_hours or settings.expiry_reminder_window_hours,
    )
    sent = reminder.run_once()
    typer.echo(f"Sent {sent} reminder(s).")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the HTTP API under uvicorn."""

    from plateshare.server.run import serve as run_server

    run_server(host=host, port=port, reload=reload)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m plateshare`."""
    app(prog_name="plateshare", args=argv)


if __name__ == "__main__":
    main()
