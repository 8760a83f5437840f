"""Flask CLI commands for seeding demo accounts and catalog data."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from app.core.extensions import db
from app.seeds import seed_data

from ._common import configure_verbosity, echo_summary, ensure_non_production

LOGGER = logging.getLogger(__name__)


def _run(step, verbose: bool) -> dict[str, dict[str, int]]:
    try:
        return step(db, verbose=verbose)
    except SQLAlchemyError as exc:
        db.session.rollback()
        LOGGER.exception("seed.failed")
        raise click.ClickException(f"Seeding failed: {exc}") from exc


@click.group("seed")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for seeding.")
@click.pass_context
def seed_cli(ctx: click.Context, verbose: bool) -> None:
    """Populate the database with development fixtures."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_verbosity(verbose, "app.seeds", __name__)


@seed_cli.command("run")
@click.option(
    "--only",
    type=click.Choice(["accounts", "catalog"]),
    default=None,
    help="Seed a single fixture group.",
)
@click.pass_context
@with_appcontext
def run_command(ctx: click.Context, only: str | None) -> None:
    """Insert demo accounts, products, variations and coupons (idempotent)."""
    ensure_non_production("seed run")
    verbose = bool(ctx.obj.get("verbose", False))
    step = {
        None: seed_data.run_all,
        "accounts": seed_data.seed_accounts,
        "catalog": seed_data.seed_catalog,
    }[only]
    echo_summary(_run(step, verbose))


@seed_cli.command("fresh")
@click.option("--yes", is_flag=True, help="Skip the destructive confirmation prompt.")
@click.pass_context
@with_appcontext
def fresh_command(ctx: click.Context, yes: bool) -> None:
    """Drop every table, recreate the schema and seed all fixtures."""
    ensure_non_production("seed fresh")
    if not yes:
        click.confirm("This will DROP all application tables and recreate them. Continue?", abort=True)
    LOGGER.info("Recreating database schema...")
    db.session.remove()
    db.drop_all()
    db.create_all()
    echo_summary(_run(seed_data.run_all, bool(ctx.obj.get("verbose", False))))
