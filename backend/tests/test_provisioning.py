# Overview: Pytest coverage for tenant provisioning atomicity and the approval variant.

"""
Tenant Provisioner tests.

A tenant, its owner and its namespace appear together or not at all:
- duplicate display names, usernames and emails fail with 409 and leave no
  namespace behind
- a failure part-way through table creation leaves no tenant row, no user
  row and no namespace
- the approval variant provisions only when the single-use token is presented
"""

import pytest
from sqlalchemy.exc import OperationalError

from backoffice.errors import ConflictError
from backoffice.extensions import db
from backoffice.models import RegistrationApproval, Tenant, User
from backoffice.services import namespace_service, provisioning_service
from backoffice.services.provisioning_service import OwnerCandidate

from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token, register_tenant


def _counts(app):
    with app.app_context():
        with db.engine.connect() as conn:
            namespaces = namespace_service.attached_namespaces(conn)
        return (
            db.session.query(Tenant).count(),
            db.session.query(User).count(),
            namespaces,
        )


class TestRegistration:

    def test_register_provisions_tenant_owner_and_namespace(self, app, client):
        body = register_tenant(client, "Acme", "alice")

        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["roles"] == ["Store Owner"]
        assert body["tenant"]["name"] == "Acme"

        tenants, users, namespaces = _counts(app)
        assert (tenants, users) == (1, 1)
        assert len(namespaces) == 1
        with app.app_context():
            tenant = db.session.query(Tenant).one()
            assert tenant.namespace == namespaces[0]
            assert tenant.owner_user_id == body["user"]["id"]
            assert db.session.get(User, tenant.owner_user_id).tenant_id == tenant.id

    def test_owner_can_log_in(self, client):
        register_tenant(client, "Acme", "alice")
        token = get_auth_token(client, "alice", DEFAULT_PASSWORD)
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.get_json()["roles"] == ["Store Owner"]
        assert me.get_json()["namespaceId"].startswith("tenant_acme_")

    def test_duplicate_display_name_conflicts_without_orphan(self, app, client):
        register_tenant(client, "Acme", "alice")

        resp = client.post("/api/auth/register", json={
            "businessName": "Acme",
            "username": "mallory",
            "email": "mallory@acme.test",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 409
        assert "error" in resp.get_json()

        tenants, users, namespaces = _counts(app)
        assert (tenants, users, len(namespaces)) == (1, 1, 1)

    def test_duplicate_username_conflicts(self, app, client):
        register_tenant(client, "Acme", "alice")
        resp = client.post("/api/auth/register", json={
            "businessName": "Other",
            "username": "alice",
            "email": "alice2@other.test",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 409
        assert _counts(app)[0] == 1

    @pytest.mark.parametrize("payload,fragment", [
        ({"username": "alice", "email": "a@a.test", "password": "secret1"}, "businessName"),
        ({"businessName": "Acme", "username": "al", "email": "a@a.test", "password": "secret1"}, "Username"),
        ({"businessName": "Acme", "username": "alice", "email": "nope", "password": "secret1"}, "email"),
        ({"businessName": "Acme", "username": "alice", "email": "a@a.test", "password": "short"}, "Password"),
    ])
    def test_invalid_registration_is_400(self, app, client, payload, fragment):
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 400
        assert fragment in resp.get_json()["error"]
        assert _counts(app)[:2] == (0, 0)


class TestProvisioningFailures:

    def test_failure_mid_ddl_leaves_nothing_behind(self, app, client, monkeypatch):
        real_create_table = namespace_service.create_table
        created = []

        def failing_create_table(conn, table):
            if len(created) == 5:
                raise OperationalError("CREATE TABLE", {}, Exception("disk I/O error"))
            real_create_table(conn, table)
            created.append(table.name)

        monkeypatch.setattr(namespace_service, "create_table", failing_create_table)

        resp = client.post("/api/auth/register", json={
            "businessName": "Acme",
            "username": "alice",
            "email": "alice@acme.test",
            "password": DEFAULT_PASSWORD,
        })

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Could not provision bakery"}
        assert len(created) == 5

        tenants, users, namespaces = _counts(app)
        assert (tenants, users, namespaces) == (0, 0, [])

    def test_integrity_race_past_precheck_is_409_without_orphan(self, app, client, monkeypatch):
        register_tenant(client, "Acme", "alice")
        # Simulate a concurrent registration that slipped past the pre-check.
        monkeypatch.setattr(provisioning_service, "check_conflicts", lambda name, owner: None)

        with app.app_context():
            owner = OwnerCandidate.from_registration({
                "username": "alice",
                "email": "alice@elsewhere.test",
                "password": DEFAULT_PASSWORD,
            })
            with pytest.raises(ConflictError):
                provisioning_service.provision("Elsewhere", owner)

        tenants, users, namespaces = _counts(app)
        assert (tenants, users, len(namespaces)) == (1, 1, 1)

    def test_failed_provisioning_can_be_retried(self, app, client, monkeypatch):
        def always_fail(conn, table):
            raise OperationalError("CREATE TABLE", {}, Exception("boom"))

        monkeypatch.setattr(namespace_service, "create_table", always_fail)
        first = client.post("/api/auth/register", json={
            "businessName": "Acme",
            "username": "alice",
            "email": "alice@acme.test",
            "password": DEFAULT_PASSWORD,
        })
        assert first.status_code == 500

        monkeypatch.undo()
        register_tenant(client, "Acme", "alice")
        assert _counts(app)[0] == 1


class TestApprovalVariant:

    @pytest.fixture
    def approval_app(self, app):
        app.config["REGISTRATION_REQUIRES_APPROVAL"] = True
        return app

    def _register(self, client):
        return client.post("/api/auth/register", json={
            "businessName": "Acme",
            "username": "alice",
            "email": "alice@acme.test",
            "password": DEFAULT_PASSWORD,
        })

    def _pending_token(self, app, monkeypatch, client):
        captured = {}

        def capture(**kwargs):
            captured.update(kwargs)
            return True

        monkeypatch.setattr(
            provisioning_service.notification_service, "notify_pending_registration", capture
        )
        resp = self._register(client)
        assert resp.status_code == 202
        return captured["approval_url"].rsplit("/", 1)[1]

    def test_pending_registration_cannot_log_in(self, approval_app, client, monkeypatch):
        self._pending_token(approval_app, monkeypatch, client)

        resp = client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Account pending approval"

        tenants, users, namespaces = _counts(approval_app)
        assert (tenants, users, namespaces) == (0, 1, [])

    def test_only_token_hash_is_stored(self, approval_app, client, monkeypatch):
        token = self._pending_token(approval_app, monkeypatch, client)
        with approval_app.app_context():
            approval = db.session.query(RegistrationApproval).one()
            assert approval.token_hash != token
            assert len(approval.token_hash) == 64

    def test_approve_provisions_and_token_is_single_use(self, approval_app, client, monkeypatch):
        token = self._pending_token(approval_app, monkeypatch, client)

        resp = client.post(f"/api/auth/approve/{token}")
        assert resp.status_code == 200
        assert resp.get_json()["tenant"]["name"] == "Acme"

        login = client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        assert login.status_code == 200
        assert login.get_json()["user"]["roles"] == ["Store Owner"]

        again = client.get(f"/api/auth/approve/{token}")
        assert again.status_code == 404

        tenants, users, namespaces = _counts(approval_app)
        assert (tenants, users, len(namespaces)) == (1, 1, 1)

    def test_unknown_token_is_404(self, approval_app, client):
        assert client.get("/api/auth/approve/not-a-real-token").status_code == 404

    def test_duplicate_pending_business_name_conflicts(self, approval_app, client, monkeypatch):
        self._pending_token(approval_app, monkeypatch, client)
        resp = client.post("/api/auth/register", json={
            "businessName": "Acme",
            "username": "mallory",
            "email": "mallory@acme.test",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 409
