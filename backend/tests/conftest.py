"""
Pytest fixtures for jimpitan backend tests.

Provides test database setup, default staff accounts, customers and a
test client.
"""

import pytest
from jimpitan import create_app
from jimpitan.config import TestingConfig
from jimpitan.extensions import db
from jimpitan.services import customer_service, user_service


ADMIN_PASSWORD = "admin123"
OPERATOR_PASSWORD = "petugas123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """USR-001, admin."""
    return user_service.create_user(
        name="Administrator", role="admin", username="admin", password=ADMIN_PASSWORD
    )


@pytest.fixture(scope='function')
def operator_user(db_session, admin_user):
    """USR-002, operator (petugas)."""
    return user_service.create_user(
        name="Budi", role="petugas", username="budi", password=OPERATOR_PASSWORD
    )


@pytest.fixture(scope='function')
def other_operator(db_session, operator_user):
    """USR-003, a second operator."""
    return user_service.create_user(
        name="Siti", role="operator", username="siti", password=OPERATOR_PASSWORD
    )


@pytest.fixture(scope='function')
def customer(db_session):
    """CUST-001."""
    return customer_service.create_customer("A1", "Pak Slamet")


@pytest.fixture(scope='function')
def second_customer(db_session, customer):
    """CUST-002."""
    return customer_service.create_customer("B2", "Bu Wati")


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def operator_headers(client, operator_user):
    return auth_headers(get_auth_token(client, "budi", OPERATOR_PASSWORD))
