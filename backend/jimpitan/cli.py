# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/jimpitan/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and the default admin/admin123 and petugas/petugas123 users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
# - python -m flask users create --name "Budi" --username budi --password "rahasia" --role operator
#
# Customers:
# - python -m flask customers list
# - python -m flask customers create --blok "A1" --name "Pak RT"
# - python -m flask customers reconcile [--fix]
#   Compare total_deposits with the sum of active transactions (and repair).

import click
from flask.cli import with_appcontext

from .errors import JimpitanError
from .extensions import db
from .models import ROLE_ADMIN, ROLE_OPERATOR
from .services import customer_service, user_service
from .services.auth_service import get_live_user_by_username


DEFAULT_USERS = (
    # name, username, password, role
    ("Administrator", "admin", "admin123", ROLE_ADMIN),
    ("Petugas", "petugas", "petugas123", ROLE_OPERATOR),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database and default users. Idempotent.

    SECURITY: Change the default passwords immediately in production!
    """
    click.echo("START Initializing jimpitan...")
    db.create_all()

    for name, username, password, role in DEFAULT_USERS:
        if get_live_user_by_username(username):
            click.echo(f"PASS User '{username}' already exists")
            continue
        user = user_service.create_user(name=name, role=role, username=username, password=password)
        click.echo(f"PASS Created {role} user: {username} ({user.id})")

    click.echo("DONE Default credentials: admin/admin123, petugas/petugas123")


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
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all active users."""
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<10} {'Username':<20} {'Name':<30} {'Role'}")
    click.echo("=" * 80)
    for user in users:
        click.echo(f"{user.id:<10} {user.username:<20} {user.name:<30} {user.role}")
    click.echo("=" * 80 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'operator', 'petugas']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, username, password, role):
    """Create a new user (min 6 character password)."""
    try:
        user = user_service.create_user(name=name, role=role, username=username, password=password)
    except JimpitanError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.username} ({user.id}) with role '{user.role}'")


@click.group('customers')
def customers_group():
    """Customer inspection and repair commands."""


@customers_group.command('list')
@with_appcontext
def list_customers():
    """List active customers with their totals."""
    customers = customer_service.list_customers()
    if not customers:
        click.echo("No customers found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<10} {'Blok':<10} {'Name':<30} {'QR':<12} {'Total':>12}")
    click.echo("=" * 80)
    for c in customers:
        click.echo(f"{c.id:<10} {c.blok:<10} {c.name:<30} {c.qr_hash:<12} {c.total_deposits:>12}")
    click.echo("=" * 80 + "\n")


@customers_group.command('create')
@click.option('--blok', prompt=True, help='Block / unit label')
@click.option('--name', prompt=True, help='Resident name')
@with_appcontext
def create_customer_cli(blok, name):
    try:
        customer = customer_service.create_customer(blok, name)
    except JimpitanError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created customer {customer.id} (qr {customer.qr_hash})")


@customers_group.command('reconcile')
@click.option('--fix', is_flag=True, help='Overwrite drifted totals with recomputed sums')
@with_appcontext
def reconcile_cli(fix):
    """Check total_deposits against the sum of active transactions."""
    drift = customer_service.reconcile_balances(fix=fix)
    if not drift:
        click.echo("PASS All customer totals match their transactions.")
        return

    for row in drift:
        click.echo(
            f"{'FIXED' if fix else 'DRIFT'} {row['customer_id']}: "
            f"recorded={row['recorded']} expected={row['expected']}"
        )
    if not fix:
        click.echo("Run with --fix to repair.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(customers_group)
