# Overview: Flask CLI command groups for schema bootstrap, operator commands and the reminder pass.

# backend/orderflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to orderflow (PowerShell: $env:FLASK_APP="orderflow").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create missing tables (use `flask db upgrade` for managed databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Operator commands:
# - python -m flask orders show 1234
# - python -m flask orders paid 1234
# - python -m flask orders cancel 1234 --mode full        (or --mode only_hide)
# - python -m flask orders restore 1234
# - python -m flask orders unhide 1234
# - python -m flask orders resend-qr 1234
# - python -m flask orders track 1234 9876543210 AWB123
# - python -m flask orders today
# - python -m flask orders day 2026-10-18
# - python -m flask orders delete-today [--yes]
#   Shows the preview, then deletes today's paid rows and marks their orders deleted.
#
# Scheduler:
# - python -m flask scheduler tick [--at 2026-10-19T03:30:00Z]
#   One reminder pass over pending orders (same as GET /cron-check).
# - python -m flask scheduler night-summary

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import operator_service, reminder_scheduler
from .services.order_state import LifecycleError
from .services.order_store import OrderNotFoundError, StaleOrderError
from .time_utils import parse_iso_datetime


def _echo_reply(reply):
    prefix = "PASS" if reply.ok else "WARN"
    click.echo(f"{prefix} {reply.message}")


def _run(fn, *args, **kwargs):
    try:
        reply = fn(*args, **kwargs)
    except (OrderNotFoundError, LifecycleError, StaleOrderError, ValueError) as e:
        raise click.ClickException(str(e))
    _echo_reply(reply)
    return reply


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Schema is up to date.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete.")


@click.group('orders')
def orders_group():
    """Operator commands for orders and paid lists."""


@orders_group.command('show')
@click.argument('order_id')
@with_appcontext
def show_order_cli(order_id):
    """Show one order."""
    _run(operator_service.show_order, order_id)


@orders_group.command('paid')
@click.argument('order_id')
@with_appcontext
def mark_paid_cli(order_id):
    """Mark an order as paid."""
    _run(operator_service.mark_paid, order_id)


@orders_group.command('cancel')
@click.argument('order_id')
@click.option('--mode', type=click.Choice(sorted(operator_service.VALID_CANCEL_MODES)), default='full', show_default=True)
@with_appcontext
def cancel_order_cli(order_id, mode):
    """Cancel an order (full, restorable) or only hide it from today's list."""
    _run(operator_service.cancel, order_id, mode)


@orders_group.command('restore')
@click.argument('order_id')
@with_appcontext
def restore_order_cli(order_id):
    """Restore an order to its state before a full cancel."""
    _run(operator_service.restore, order_id)


@orders_group.command('unhide')
@click.argument('order_id')
@with_appcontext
def unhide_order_cli(order_id):
    _run(operator_service.unhide, order_id)


@orders_group.command('resend-qr')
@click.argument('order_id')
@with_appcontext
def resend_qr_cli(order_id):
    _run(operator_service.resend_qr, order_id)


@orders_group.command('track')
@click.argument('order_id')
@click.argument('phone')
@click.argument('tracking_id')
@with_appcontext
def track_order_cli(order_id, phone, tracking_id):
    """Record tracking and complete a paid order."""
    _run(operator_service.track, order_id, phone, tracking_id)


@orders_group.command('today')
@with_appcontext
def list_today_cli():
    """Today's paid orders (hidden orders skipped)."""
    _run(operator_service.list_today)


@orders_group.command('day')
@click.argument('day')
@with_appcontext
def list_by_day_cli(day):
    """Paid orders for an ISO date."""
    try:
        parsed = operator_service.parse_day(day)
    except ValueError as e:
        raise click.ClickException(str(e))
    _run(operator_service.list_by_day, parsed)


@orders_group.command('delete-today')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def delete_today_cli(yes):
    """Delete today's paid rows and mark their orders deleted."""
    preview = _run(operator_service.delete_today_preview)
    if not preview.data.get("order_ids"):
        return
    if not yes:
        click.confirm("WARN Delete these rows?", abort=True)
    _run(operator_service.delete_today_confirm)


@click.group('scheduler')
def scheduler_group():
    """Reminder pass and summaries."""


@scheduler_group.command('tick')
@click.option('--at', 'at', default=None, help='Evaluate thresholds at this ISO-8601 instant (UTC if naive)')
@with_appcontext
def scheduler_tick_cli(at):
    """Run one reminder pass."""
    try:
        now = parse_iso_datetime(at)
    except ValueError:
        raise click.ClickException(f"--at must be an ISO-8601 datetime, got {at!r}")
    result = reminder_scheduler.run_reminder_pass(now)
    click.echo(
        f"PASS checked={result.checked} updated={result.updated} "
        f"stale={result.stale} failed={result.failed} cancelled={','.join(result.cancelled) or '-'}"
    )


@scheduler_group.command('night-summary')
@with_appcontext
def night_summary_cli():
    _echo_reply(operator_service.night_summary())


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(scheduler_group)
