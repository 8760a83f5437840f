"""CLI tests for the ``tokens`` and ``orders`` command groups."""

from __future__ import annotations

from datetime import timedelta

from app.models.order import Order, OrderStatus
from tests.factories.order import OrderFactory


def test_tokens_prune(app, stores, freeze_time):
    with freeze_time("2024-01-01 00:00:00"):
        stores.tokens.issue(1, ttl=timedelta(minutes=1), max_tokens=5)
        stores.tokens.issue(2, ttl=timedelta(days=1), max_tokens=5)
    with freeze_time("2024-01-01 01:00:00"):
        result = app.test_cli_runner().invoke(args=["tokens", "prune"])

    assert result.exit_code == 0, result.output
    assert "Removed 1 expired token(s)." in result.output


def test_tokens_list_and_revoke(app, stores):
    runner = app.test_cli_runner()
    assert "No active tokens." in runner.invoke(args=["tokens", "list", "7"]).output

    stores.tokens.issue(7, ttl=timedelta(days=1), max_tokens=5)
    stores.tokens.issue(7, ttl=timedelta(days=1), max_tokens=5)

    result = runner.invoke(args=["tokens", "revoke", "7"])
    assert "Revoked 2 token(s) for account 7." in result.output
    assert stores.tokens.list_tokens(7) == []


def test_orders_set_status(app, session):
    order = OrderFactory()
    session.commit()
    order_id = order.id

    result = app.test_cli_runner().invoke(
        args=["orders", "set-status", str(order_id), "wc-processing", "--note", "Packed"]
    )

    assert result.exit_code == 0, result.output
    assert f"Order {order_id} is now Processing." in result.output
    session.expire_all()
    assert session.get(Order, order_id).status is OrderStatus.PROCESSING


def test_orders_set_status_rejects_bad_transition(app, session):
    order = OrderFactory(status=OrderStatus.CANCELLED)
    session.commit()

    result = app.test_cli_runner().invoke(args=["orders", "set-status", str(order.id), "completed"])

    assert result.exit_code != 0
    assert "Cannot change order status" in result.output


def test_orders_statuses(app):
    result = app.test_cli_runner().invoke(args=["orders", "statuses"])
    assert "pending" in result.output
    assert "Pending payment" in result.output
