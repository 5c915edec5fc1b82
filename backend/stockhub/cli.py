# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockhub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Locations:
# - python -m flask locations init
#   Create the default locations (Warehouse is primary) when none exist.
# - python -m flask locations list [--active]
#   List locations with type, active and primary flags.
#
# Products:
# - python -m flask products list
#   List products with total and per-location stock.
#
# Ledger:
# - python -m flask ledger stats [--product-id 1]
#   Units moved per transaction type.
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import ledger_service, location_service, products_service


@click.group('locations')
def locations_group():
    """Location registry commands."""


@locations_group.command('init')
@with_appcontext
def init_locations():
    """Create the default locations if the registry is empty."""
    created = location_service.initialize_default_locations()
    if not created:
        click.echo("SKIP Locations already exist")
        return
    for location in created:
        primary = " (primary)" if location.is_primary else ""
        click.echo(f"PASS Created location: {location.name} [{location.type}]{primary} (ID: {location.id})")


@locations_group.command('list')
@click.option('--active', 'active_only', is_flag=True, help='Only active locations')
@with_appcontext
def list_locations(active_only):
    """List all locations."""
    locations = location_service.list_locations(active_only=active_only)
    if not locations:
        click.echo("No locations found. Run 'python -m flask locations init'.")
        return

    click.echo(f"{'ID':<5} {'Name':<25} {'Type':<12} {'Active':<7} {'Primary':<7}")
    click.echo("-" * 60)
    for location in locations:
        click.echo(
            f"{location.id:<5} {location.name:<25} {location.type:<12} "
            f"{'yes' if location.is_active else 'no':<7} {'yes' if location.is_primary else 'no':<7}"
        )


@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('list')
@with_appcontext
def list_products():
    """List products with their stock."""
    products = products_service.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<5} {'SKU':<20} {'Name':<30} {'Total':>7}  Locations")
    click.echo("-" * 90)
    for p in products:
        per_location = ", ".join(f"{row.location_id}:{row.quantity}" for row in p.stock_rows) or "-"
        bundle = " [bundle]" if p.is_bundle else ""
        click.echo(f"{p.id:<5} {p.sku:<20} {p.name[:30]:<30} {p.total_quantity:>7}  {per_location}{bundle}")


@click.group('ledger')
def ledger_group():
    """Inventory transaction ledger commands."""


@ledger_group.command('stats')
@click.option('--product-id', type=int, default=None, help='Limit to one product')
@with_appcontext
def ledger_stats(product_id):
    """Units moved per transaction type."""
    stats = ledger_service.get_transaction_stats(product_id)
    scope = f"product {product_id}" if product_id is not None else "all products"
    click.echo(f"Ledger statistics for {scope}:")
    for key, value in stats.items():
        click.echo(f"  {key}: {value}")


@click.group('system')
def system_group():
    """System maintenance commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the transaction ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask locations init' to seed locations.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(locations_group)
    app.cli.add_command(products_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(system_group)
