"""Helpers shared by the application's Flask CLI command groups."""

from __future__ import annotations

import logging

import click
from flask import current_app


def configure_verbosity(verbose: bool, *loggers: str) -> None:
    """Raise logging verbosity for ``loggers`` when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    for name in loggers:
        logging.getLogger(name).setLevel(level)


def echo_summary(summary: dict[str, dict[str, int]]) -> None:
    """Pretty-print a tabular summary of ``{table: {created, existing}}`` counters."""
    click.echo("Seed summary:")
    if not summary:
        click.echo("  (no changes)")
        return
    width = max(len(name) for name in summary)
    for table, counters in sorted(summary.items()):
        created = counters.get("created", 0)
        existing = counters.get("existing", 0)
        click.echo(f"  {table.ljust(width)}  created={created:>2}  existing={existing:>2}")


def ensure_non_production(command: str) -> None:
    """Abort ``command`` when the app runs with production settings."""
    config = current_app.config
    app_env = str(config.get("APP_ENV", "")).lower()
    if app_env == "production" and not (config.get("DEBUG") or config.get("TESTING")):
        raise click.UsageError(f"The 'flask {command}' command is restricted to non-production environments.")
