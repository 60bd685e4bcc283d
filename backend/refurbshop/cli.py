# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/refurbshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Counters:
# - python -m flask counters show
#   Show the next value of each counter (orders, inventory, devices).
#
# Orders:
# - python -m flask orders pending [--older-than-hours 24]
#   List pending (reserved, unpaid) orders.
# - python -m flask orders release <order_id> [--note "Customer never paid"]
#   Cancel a pending order and relist its items.
#
# Shipping:
# - python -m flask shipping show
#   Print the storefront shipping table.
# - python -m flask shipping set-rate Tablet 15.00
#   Set the flat rate for a category (use "default" for the fallback rate).
# - python -m flask shipping set-free-threshold 200
#   Orders at or above this subtotal ship free (0 disables).

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .errors import ShopError
from .extensions import db
from .models import Counter
from .money import to_money
from .services import order_service
from .services.sequence_service import SEQUENCE_SEEDS, peek
from .services.shipping_service import ShippingConfig, get_shipping_config, save_shipping_config
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


@click.group('counters')
def counters_group():
    """Sequence counter inspection."""


@counters_group.command('show')
@with_appcontext
def show_counters():
    """Show the next value each counter will hand out."""
    names = set(SEQUENCE_SEEDS) | {c.name for c in db.session.query(Counter).all()}
    for name in sorted(names):
        click.echo(f"{name:<12} next={peek(name)}")


@click.group('orders')
def orders_group():
    """Order inspection and reservation release."""


@orders_group.command('pending')
@click.option('--older-than-hours', type=int, default=None, help='Only orders reserved more than N hours ago')
@with_appcontext
def list_pending(older_than_hours):
    """List pending orders (items still reserved)."""
    older_than = None
    if older_than_hours is not None:
        older_than = utcnow() - timedelta(hours=older_than_hours)

    orders = order_service.list_pending_orders(older_than=older_than)
    if not orders:
        click.echo("No pending orders.")
        return

    for order in orders:
        click.echo(
            f"#{order.order_number}  {order.id}  {order.customer_email}  "
            f"items={len(order.lines)}  total={order.total_aud}  created={order.created_at}"
        )


@orders_group.command('release')
@click.argument('order_id')
@click.option('--note', default=None, help='Reason recorded in the ledger')
@with_appcontext
def release(order_id, note):
    """Cancel a pending order and relist its items."""
    try:
        order = order_service.release_order(order_id, note=note)
    except ShopError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Released order #{order.order_number}; {len(order.lines)} item(s) relisted")


@click.group('shipping')
def shipping_group():
    """Storefront shipping table."""


@shipping_group.command('show')
@with_appcontext
def show_shipping():
    config = get_shipping_config()
    click.echo(f"default rate:   {config.default_rate}")
    click.echo(f"free threshold: {config.free_threshold}")
    for category, rate in sorted(config.rates.items()):
        click.echo(f"{category:<14} {rate}")


@shipping_group.command('set-rate')
@click.argument('category')
@click.argument('rate')
@with_appcontext
def set_rate(category, rate):
    """Set the flat rate for CATEGORY ("default" sets the fallback rate)."""
    try:
        amount = to_money(rate)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='rate')

    config = get_shipping_config()
    if category == "default":
        updated = ShippingConfig(config.rates, amount, config.free_threshold)
    else:
        updated = ShippingConfig({**config.rates, category: amount}, config.default_rate, config.free_threshold)
    save_shipping_config(updated)
    db.session.commit()
    click.echo(f"PASS Shipping rate for {category} set to {amount}")


@shipping_group.command('set-free-threshold')
@click.argument('amount')
@with_appcontext
def set_free_threshold(amount):
    try:
        threshold = to_money(amount)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='amount')

    config = get_shipping_config()
    save_shipping_config(ShippingConfig(config.rates, config.default_rate, threshold))
    db.session.commit()
    click.echo(f"PASS Free shipping threshold set to {threshold}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(counters_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(shipping_group)
