"""CLI command tests."""

from jimpitan.extensions import db
from jimpitan.models import Customer, User
from jimpitan.services import transaction_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "Created admin user: admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "already exists" in result.output

    usernames = sorted(u.username for u in db.session.query(User).all())
    assert usernames == ["admin", "petugas"]


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "Budi", "--username", "budi",
        "--password", "rahasia", "--role", "petugas",
    ])
    assert result.exit_code == 0, result.output
    assert "role 'operator'" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "budi" in result.output


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "Budi", "--username", "budi",
        "--password", "123", "--role", "operator",
    ])
    assert result.exit_code != 0
    assert "at least 6 characters" in result.output


def test_customers_reconcile(app, customer, admin_user):
    transaction_service.submit_transaction(customer.id, admin_user.id, 1500)
    row = db.session.get(Customer, customer.id)
    row.total_deposits = 99
    db.session.commit()

    runner = app.test_cli_runner()
    result = runner.invoke(args=["customers", "reconcile"])
    assert "DRIFT CUST-001: recorded=99 expected=1500" in result.output

    result = runner.invoke(args=["customers", "reconcile", "--fix"])
    assert "FIXED CUST-001" in result.output

    result = runner.invoke(args=["customers", "reconcile"])
    assert "All customer totals match" in result.output


def test_customers_create(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["customers", "create", "--blok", "C3", "--name", "Bu Ani"])
    assert result.exit_code == 0, result.output
    assert "CUST-001" in result.output
