# Overview: Flask CLI command group for bootstrap, inspection, and the end-of-day sweep.

# backend/clubpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Club bootstrap/inspection:
# - python -m flask club init [--reset-tables]
#   Create the schema, seed default settings and generate tables.
# - python -m flask club tables
#   List tables with status, rate and open session.
# - python -m flask club summary --date 2024-06-10
#   Print the daily summary (expected takings) for a date.
# - python -m flask club auto-close
#   Auto-close yesterday if it has sessions and no closure (run after midnight).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models.catalog import DEFAULT_SETTINGS
from .services import closure_service
from .services.catalog_service import load_settings, save_settings
from .services.ledger_service import TransactionLedger
from .services.table_service import generate_tables, load_tables, save_tables
from .storage import STORAGE_KEYS, SqlKeyValueStore
from .time_utils import business_date, now_ms
from .validation import ValidationError


@click.group('club')
def club_group():
    """Club bootstrap and reporting commands."""


@club_group.command('init')
@click.option('--reset-tables', is_flag=True, help='Regenerate tables from the enabled activities')
@with_appcontext
def init_club(reset_tables):
    """
    Initialize the club: schema, default settings, tables.

    Idempotent. Existing settings and tables are kept unless --reset-tables
    is given; resetting refuses to run while any session is open.
    """
    click.echo("START Initializing club...")

    db.create_all()
    store = SqlKeyValueStore()

    if store.get(STORAGE_KEYS["SETTINGS"]) is None:
        save_settings(store, DEFAULT_SETTINGS)
        click.echo("PASS Seeded default settings")
    else:
        click.echo("PASS Using existing settings")

    if reset_tables:
        open_sessions = [table for table in load_tables(store) if table.session is not None]
        if open_sessions:
            click.echo(f"FAIL {len(open_sessions)} table(s) have open sessions; close them first")
            return
        save_tables(store, generate_tables(load_settings(store)))
        click.echo("PASS Regenerated tables")

    tables = load_tables(store)
    click.echo(f"PASS {len(tables)} tables ready")
    click.echo("DONE Club initialized")


@club_group.command('tables')
@with_appcontext
def list_tables_cli():
    """List tables with status and open session."""
    tables = load_tables(SqlKeyValueStore())
    if not tables:
        click.echo("No tables configured.")
        return

    for table in tables:
        line = f"{table.id:>3}  {table.number:<28} {table.status:<12} {table.hourly_rate:>8}/h"
        if table.session is not None:
            line += f"  {table.session.customer_name} (session {table.session.id})"
        click.echo(line)


@club_group.command('summary')
@click.option('--date', 'date', default=None, help='YYYY-MM-DD (default: today, UTC)')
@with_appcontext
def summary_cli(date):
    """Print the daily summary for a date."""
    date = date or business_date(now_ms())
    try:
        summary = TransactionLedger(SqlKeyValueStore()).daily_summary(date)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return
    currency = current_app.config["CLUB_CURRENCY"]

    click.echo(f"Daily summary for {summary.date}")
    click.echo(f"  Sessions:        {summary.total_sessions}")
    click.echo(f"  Gross revenue:   {summary.gross_revenue} {currency}")
    click.echo(f"  Discounts:       {summary.total_discounts} {currency}")
    click.echo(f"  Net revenue:     {summary.net_revenue} {currency}")
    click.echo(f"  Expected cash:   {summary.expected_cash} {currency}")
    click.echo(f"  Expected card:   {summary.expected_card} {currency}")
    click.echo(f"  Expected UPI:    {summary.expected_upi} {currency}")
    if summary.emergency_pin_usage_count:
        click.echo(f"  Emergency PIN:   {summary.emergency_pin_usage_count} checkout(s)")


@club_group.command('auto-close')
@with_appcontext
def auto_close_cli():
    """Auto-close yesterday (UTC) if it has sessions and no closure."""
    closure = closure_service.auto_close_previous_day(store=SqlKeyValueStore())
    if closure is None:
        click.echo("Nothing to close.")
        return
    click.echo(
        f"WARN  Auto-closed {closure.date}: {closure.total_sessions} sessions, "
        f"expected cash {closure.expected_cash}, card {closure.expected_card}. "
        "Manual reconciliation required."
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(club_group)
