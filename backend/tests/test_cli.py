"""Flask CLI command groups."""

from backoffice.extensions import db
from backoffice.models import Tenant
from backoffice.services import namespace_service


def _provision(runner, name="Acme", username="alice"):
    return runner.invoke(args=[
        "tenants", "provision",
        "--name", name,
        "--username", username,
        "--email", f"{username}@{name.lower()}.test",
        "--password", "secret1",
    ])


def test_init_roles_is_idempotent(app):
    runner = app.test_cli_runner()
    for _ in range(2):
        result = runner.invoke(args=["system", "init-roles"])
        assert result.exit_code == 0, result.output
    assert "Store Owner" in result.output
    assert "Super Admin" in result.output


def test_create_super_admin(app, client):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "system", "create-super-admin",
        "--username", "ops",
        "--email", "ops@platform.test",
        "--password", "secret1",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created Super Admin 'ops'" in result.output

    resp = client.post("/api/auth/login", json={"username": "ops", "password": "secret1"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["roles"] == ["Super Admin"]

    again = runner.invoke(args=[
        "system", "create-super-admin",
        "--username", "ops",
        "--email", "other@platform.test",
        "--password", "secret1",
    ])
    assert again.exit_code != 0
    assert "already exists" in again.output


def test_provision_and_list(app):
    runner = app.test_cli_runner()

    result = _provision(runner)
    assert result.exit_code == 0, result.output
    assert "PASS Provisioned 'Acme'" in result.output

    listed = runner.invoke(args=["tenants", "list"])
    assert listed.exit_code == 0
    assert "Acme" in listed.output
    assert "owner=alice" in listed.output


def test_provision_rejects_duplicate_name(app):
    runner = app.test_cli_runner()
    assert _provision(runner).exit_code == 0
    result = _provision(runner, username="bob")
    assert result.exit_code != 0


def test_list_without_tenants(app):
    result = app.test_cli_runner().invoke(args=["tenants", "list"])
    assert "No tenants found." in result.output


def test_approve_unknown_token(app):
    result = app.test_cli_runner().invoke(args=["tenants", "approve", "nope"])
    assert result.exit_code != 0


def test_drop_requires_confirmation(app):
    runner = app.test_cli_runner()
    _provision(runner)
    with app.app_context():
        namespace = db.session.query(Tenant.namespace).scalar()

    result = runner.invoke(args=["tenants", "drop", namespace])
    assert result.exit_code != 0
    assert "--yes" in result.output


def test_drop_removes_tenant_and_namespace(app):
    runner = app.test_cli_runner()
    _provision(runner)
    with app.app_context():
        namespace = db.session.query(Tenant.namespace).scalar()

    result = runner.invoke(args=["tenants", "drop", namespace, "--yes"])

    assert result.exit_code == 0, result.output
    with app.app_context():
        assert db.session.query(Tenant).count() == 0
        with db.engine.connect() as conn:
            assert namespace not in namespace_service.attached_namespaces(conn)


def test_drop_rejects_invalid_identifier(app):
    result = app.test_cli_runner().invoke(args=["tenants", "drop", "acme; DROP TABLE users", "--yes"])
    assert result.exit_code != 0
