"""Maintenance commands for stored session tokens."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from app.core.extensions import get_token_store

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Inspect and clean up session tokens."""


@tokens_cli.command("prune")
@with_appcontext
def prune_command() -> None:
    """Drop expired tokens for every account."""
    removed = get_token_store().sweep_expired()
    LOGGER.info("tokens.pruned", extra={"removed": removed})
    click.echo(f"Removed {removed} expired token(s).")


@tokens_cli.command("list")
@click.argument("account_id", type=int)
@with_appcontext
def list_command(account_id: int) -> None:
    """Show the live tokens of ACCOUNT_ID, oldest first."""
    views = get_token_store().list_tokens(account_id)
    if not views:
        click.echo("No active tokens.")
        return
    for view in views:
        last_used = view.last_used_at.isoformat() if view.last_used_at else "-"
        click.echo(
            f"{view.token[:12]}...  created={view.created_at.isoformat()}"
            f"  expires={view.expires_at.isoformat()}  last_used={last_used}"
        )


@tokens_cli.command("revoke")
@click.argument("account_id", type=int)
@with_appcontext
def revoke_command(account_id: int) -> None:
    """Revoke every session token of ACCOUNT_ID."""
    removed = get_token_store().revoke_all(account_id)
    LOGGER.info("tokens.revoked", extra={"account_id": account_id, "removed": removed})
    click.echo(f"Revoked {removed} token(s) for account {account_id}.")
