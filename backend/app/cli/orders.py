"""Operator commands for moving orders through their lifecycle."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from app.core.extensions import get_account_locks, get_cache
from app.services._shared.errors import ServiceError
from app.services.orders.service import OrderService


def _service() -> OrderService:
    cfg = current_app.config
    return OrderService(
        cache=get_cache(),
        locks=get_account_locks(),
        lock_timeout=float(cfg.get("ACCOUNT_LOCK_TIMEOUT", 10)),
        currency=cfg.get("STORE_CURRENCY", "USD"),
    )


@click.group("orders")
def orders_cli() -> None:
    """Manage orders from the command line."""


@orders_cli.command("set-status")
@click.argument("order_id", type=int)
@click.argument("status")
@click.option("--note", default=None, help="Customer-visible note recorded with the change.")
@with_appcontext
def set_status_command(order_id: int, status: str, note: str | None) -> None:
    """Move ORDER_ID to STATUS (e.g. processing, completed, wc-on-hold)."""
    try:
        order = _service().transition(order_id, status, note=note)
    except ServiceError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"Order {order.id} is now {order.status_label}.")


@orders_cli.command("statuses")
def statuses_command() -> None:
    """List the known order statuses."""
    for status in OrderService.list_statuses():
        click.echo(f"{status.slug:<12} {status.label}")
