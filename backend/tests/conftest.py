"""
Pytest fixtures for the bakery back-office tests.

Every test gets its own application with a fresh in-memory SQLite database.
StaticPool keeps a single DBAPI connection, so the namespaces attached while
provisioning tenants stay visible to later requests in the same test.
"""

import pytest
from sqlalchemy.pool import StaticPool

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import User
from backoffice.roles import RoleName
from backoffice.services import auth_service

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_ENGINE_OPTIONS": {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    },
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "SECRET_KEY": "test-secret",
    "JWT_SECRET_KEY": "test-jwt-secret",
    "BCRYPT_ROUNDS": 4,
    "REGISTRATION_REQUIRES_APPROVAL": False,
    "PAYMENT_SECRET_KEY": "test-payment-secret",
    "MAIL_SERVER": None,
    "OPERATOR_EMAIL": None,
}

DEFAULT_PASSWORD = "secret1"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app(dict(TEST_CONFIG))

    with app.app_context():
        db.create_all()
        auth_service.ensure_default_roles()
        db.session.commit()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def app_ctx(app):
    """Application context for calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def owner_headers(client):
    """Store Owner of the bakery "Acme" (alice / secret1)."""
    body = register_tenant(client, "Acme", "alice")
    return auth_headers(body["token"])


@pytest.fixture(scope='function')
def other_owner_headers(client):
    """Store Owner of a second bakery, "Beta"."""
    body = register_tenant(client, "Beta", "bob")
    return auth_headers(body["token"])


@pytest.fixture(scope='function')
def super_admin_headers(app, client):
    """Platform operator with the global Super Admin role."""
    with app.app_context():
        user = User(
            username="root",
            email="root@platform.test",
            password_hash=auth_service.hash_password(DEFAULT_PASSWORD),
            is_approved=True,
        )
        db.session.add(user)
        db.session.flush()
        auth_service.assign_role(user, RoleName.SUPER_ADMIN)
        db.session.commit()
    return auth_headers(get_auth_token(client, "root", DEFAULT_PASSWORD))


def register_tenant(client, business_name: str, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Register a bakery through the API and return the response body."""
    response = client.post('/api/auth/register', json={
        'businessName': business_name,
        'username': username,
        'email': f'{username}@{business_name.lower()}.test',
        'password': password,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def add_staff(client, owner_headers: dict, username: str, *roles: RoleName) -> dict:
    """Add a staff member to the owner's bakery and return auth headers for them."""
    response = client.post('/api/users/add-staff', json={
        'username': username,
        'email': f'{username}@staff.test',
        'password': DEFAULT_PASSWORD,
        'roles': [r.value for r in roles],
    }, headers=owner_headers)
    assert response.status_code == 201, response.get_json()
    return auth_headers(get_auth_token(client, username, DEFAULT_PASSWORD))


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def create_ingredient(client, headers, name: str, cost_price="1.00", **fields) -> dict:
    payload = {"ingredient_name": name, "unit_of_measure": "kg", "cost_price": cost_price}
    payload.update(fields)
    response = client.post('/api/ingredients', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def create_recipe(client, headers, name: str, lines) -> dict:
    """``lines`` is a list of (ingredient_id, quantity) pairs."""
    response = client.post('/api/recipes', json={
        'recipe_name': name,
        'ingredients': [{'ingredient_id': i, 'quantity': q} for i, q in lines],
    }, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def create_product(client, headers, name: str, unit_price="5.00", **fields) -> dict:
    payload = {"product_name": name, "unit_price": unit_price}
    payload.update(fields)
    response = client.post('/api/products', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()
