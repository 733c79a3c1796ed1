# Overview: Flask CLI command groups for bootstrap, backup, and offline queue maintenance.

# backend/icepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the admin user and a starter catalogue.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List staff with role and active status.
#
# Backup:
# - python -m flask backup export --out backup.json [--start 2026-01-01] [--end 2026-01-31]
#   Write a full backup bundle to a file.
# - python -m flask backup import backup.json
#   Restore products, customers and discounts from a bundle.
#
# Offline queue:
# - python -m flask queue status
#   Count pending and failed operations.
# - python -m flask queue replay
#   Replay pending operations oldest first.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .models.auth import ROLE_ADMIN
from .models.catalog import CATEGORY_ICE, CATEGORY_GAS, CATEGORY_WATER
from .models.system import QUEUE_STATUS_PENDING, QUEUE_STATUS_FAILED
from .services import backup_service, offline_queue_service, product_service, user_service
from .time_utils import parse_iso_datetime


STARTER_PRODUCTS = [
    {"category": CATEGORY_ICE, "name": "น้ำแข็งหลอดเล็ก", "unit": "ถุง", "price_cents": 2500, "cost_cents": 1500, "melt_rate_percent": 5},
    {"category": CATEGORY_ICE, "name": "น้ำแข็งบด", "unit": "ถุง", "price_cents": 2000, "cost_cents": 1200, "melt_rate_percent": 8},
    {"category": CATEGORY_GAS, "name": "แก๊ส 15 กก.", "unit": "ถัง", "price_cents": 38000, "cost_cents": 33000, "deposit_amount_cents": 150000},
    {"category": CATEGORY_GAS, "name": "แก๊ส 4 กก.", "unit": "ถัง", "price_cents": 15000, "cost_cents": 12500, "deposit_amount_cents": 80000},
    {"category": CATEGORY_WATER, "name": "น้ำดื่ม 600 มล. (แพ็ค 12)", "unit": "แพ็ค", "price_cents": 6000, "cost_cents": 4200},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-name', default='admin', help='Name of the first admin user')
@click.option('--no-products', is_flag=True, help='Skip the starter catalogue')
@with_appcontext
def init_system(admin_name, no_products):
    """
    Create tables, the first admin user and a starter catalogue.

    Safe to run repeatedly: existing users and products are left alone.
    """
    click.echo("START Initializing shop database...")
    db.create_all()

    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin is None:
        admin = user_service.create_user({"name": admin_name, "role": ROLE_ADMIN})
        click.echo(f"PASS Created admin user: {admin.name} (ID: {admin.id})")
    else:
        click.echo(f"PASS Using existing admin user: {admin.name} (ID: {admin.id})")

    if no_products:
        click.echo("SKIP Starter catalogue")
    elif db.session.query(Product).count():
        click.echo("SKIP Products already exist")
    else:
        for data in STARTER_PRODUCTS:
            product = product_service.create_product(data, user_id=admin.id)
            click.echo(f"  + [{product.category}] {product.name}")
        click.echo(f"PASS Created {len(STARTER_PRODUCTS)} starter products")

    click.echo("DONE")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """Staff inspection."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 50)
    click.echo(f"{'ID':<5} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("=" * 50)
    for user in users:
        click.echo(f"{user.id:<5} {user.name:<25} {user.role:<10} {'Yes' if user.is_active else 'No'}")


@click.group('backup')
def backup_group():
    """Backup export and restore."""


@backup_group.command('export')
@click.option('--out', 'out_path', required=True, type=click.Path(dir_okay=False, writable=True))
@click.option('--start', default=None, help='ISO date/datetime; limits sales and stock history')
@click.option('--end', default=None, help='ISO date/datetime; limits sales and stock history')
@with_appcontext
def export_backup(out_path, start, end):
    try:
        start_dt = parse_iso_datetime(start)
        end_dt = parse_iso_datetime(end)
    except ValueError as e:
        raise click.BadParameter(str(e))

    bundle = backup_service.create_backup(start=start_dt, end=end_dt)
    with open(out_path, "w", encoding="utf-8") as fh:
        json.dump(bundle, fh, ensure_ascii=False, indent=2)

    summary = bundle["summary"]
    click.echo(
        f"PASS Wrote {out_path}: {summary['productsCount']} products, "
        f"{summary['salesCount']} sales, {summary['customersCount']} customers"
    )


@backup_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_backup(path):
    with open(path, encoding="utf-8") as fh:
        try:
            bundle = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Not a backup file: {e}")

    result = backup_service.import_backup(bundle)
    imported = result.imported
    click.echo(
        f"Imported {imported['products']} products, {imported['customers']} customers, "
        f"{imported['discounts']} discounts"
    )
    for error in result.errors:
        click.echo(f"  FAIL {error}")
    if not result.success:
        raise click.ClickException("Import failed")


@click.group('queue')
def queue_group():
    """Offline operation queue."""


@queue_group.command('status')
@with_appcontext
def queue_status():
    pending = len(offline_queue_service.list_operations(QUEUE_STATUS_PENDING))
    failed = offline_queue_service.list_operations(QUEUE_STATUS_FAILED)
    click.echo(f"Pending: {pending}  Failed: {len(failed)}")
    for op in failed:
        click.echo(f"  #{op.id} {op.type}: {op.last_error}")


@queue_group.command('replay')
@with_appcontext
def queue_replay():
    summary = offline_queue_service.replay()
    click.echo(
        f"Processed {summary['processed']}: {summary['succeeded']} ok, "
        f"{summary['failed']} failed, {summary['remaining']} still pending"
    )
    for error in summary["errors"]:
        click.echo(f"  #{error['id']} {error['type']}: {error['error']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(backup_group)
    app.cli.add_command(queue_group)
