# Overview: Pytest coverage for namespace identifiers and namespace DDL on SQLite.

import pytest
from sqlalchemy import create_engine

from backoffice.extensions import db
from backoffice.services import namespace_service
from backoffice.services.namespace_service import InvalidNamespaceError, NamespaceName


class TestNamespaceName:
    """Only [A-Za-z0-9_] identifiers of 1-63 characters are accepted."""

    @pytest.mark.parametrize("value", [
        "tenant_acme_1700000000000_a1b2c3",
        "Bakery42",
        "x",
        "a" * 63,
    ])
    def test_accepts_safe_identifiers(self, value):
        assert NamespaceName(value) == value

    @pytest.mark.parametrize("value", [
        "",
        "a" * 64,
        "acme; DROP SCHEMA public",
        'acme"',
        "acme-bakery",
        "acme bakery",
        "café",
        "public",
        "MAIN",
        "tenant",
    ])
    def test_rejects_unsafe_or_reserved(self, value):
        with pytest.raises(InvalidNamespaceError):
            NamespaceName(value)

    def test_rejects_non_strings(self):
        with pytest.raises(InvalidNamespaceError):
            NamespaceName(42)

    def test_revalidating_is_identity(self):
        name = NamespaceName("tenant_acme")
        assert NamespaceName(name) is name


class TestDerive:
    def test_slug_timestamp_and_suffix(self):
        name = namespace_service.derive("Acme Bakery & Co.")
        parts = name.split("_")
        assert parts[0] == "tenant"
        assert parts[1] == "acmebakeryco"
        assert parts[2].isdigit()
        assert len(parts[3]) == 6

    def test_hostile_display_name_still_yields_safe_identifier(self):
        name = namespace_service.derive('"; DROP TABLE users; --')
        assert namespace_service.NAMESPACE_PATTERN.fullmatch(name)

    def test_empty_slug_is_skipped(self):
        name = namespace_service.derive("!!!")
        assert name.startswith("tenant_")
        assert len(name.split("_")) == 3

    def test_long_names_fit_identifier_limit(self):
        name = namespace_service.derive("x" * 500)
        assert len(name) <= namespace_service.MAX_NAMESPACE_LENGTH

    def test_same_name_twice_gives_distinct_namespaces(self):
        assert namespace_service.derive("Acme") != namespace_service.derive("Acme")


class TestSqliteNamespaces:
    def test_create_materialize_and_drop(self, app_ctx):
        name = namespace_service.derive("Unit")
        with db.engine.connect() as conn:
            namespace_service.create_namespace(conn, name)
            assert namespace_service.namespace_exists(conn, name)

            tables = namespace_service.materialize_tables(conn, name)
            conn.commit()
            assert len(tables) == 12
            assert "products" in tables and "restocks" in tables

            namespace_service.drop_namespace(conn, name)
            conn.commit()
            assert not namespace_service.namespace_exists(conn, name)

    def test_drop_missing_namespace_is_ignored(self, app_ctx):
        with db.engine.connect() as conn:
            namespace_service.drop_namespace(conn, NamespaceName("tenant_never_created"))
            assert namespace_service.attached_namespaces(conn) == []

    def test_in_memory_namespaces_cannot_be_reattached(self, app_ctx):
        with db.engine.connect() as conn:
            assert namespace_service.reattach_namespace(conn, NamespaceName("tenant_gone")) is False

    def test_search_path_is_postgres_only(self, app_ctx):
        with db.engine.connect() as conn:
            # No-op on SQLite; must not raise.
            namespace_service.set_search_path(conn, NamespaceName("tenant_x"))
            namespace_service.set_search_path(conn, None)

    def test_namespace_dir_for_file_databases(self, tmp_path):
        db_file = tmp_path / "main.sqlite3"
        assert namespace_service.sqlite_namespace_dir(":memory:") is None
        assert namespace_service.sqlite_namespace_dir(None) is None
        assert namespace_service.sqlite_namespace_dir(str(db_file)) == str(tmp_path / "namespaces")
        assert namespace_service.sqlite_namespace_dir(str(db_file), "/data/ns") == "/data/ns"

    def test_drop_is_seen_by_other_pooled_connections(self, app_ctx, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'main.sqlite3'}")
        name = namespace_service.derive("Shared")
        try:
            with engine.connect() as owner, engine.connect() as other:
                namespace_service.create_namespace(owner, name)
                namespace_service.materialize_tables(owner, name)
                owner.commit()

                assert namespace_service.reattach_namespace(other, name)
                assert namespace_service.namespace_exists(other, name)

                namespace_service.drop_namespace(owner, name)
                owner.commit()

                assert not namespace_service.namespace_exists(owner, name)
                assert not namespace_service.namespace_exists(other, name)
                assert namespace_service.reattach_namespace(other, name) is False
        finally:
            engine.dispose()
