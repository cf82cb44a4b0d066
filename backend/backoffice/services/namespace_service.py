# Overview: Tenant namespace identifiers and the DDL that creates, selects and drops namespaces.

"""
Namespace primitives.

A namespace is where one tenant's business tables live:

- PostgreSQL: a schema. Selection also sets ``search_path`` on the
  connection.
- SQLite: an attached database (``ATTACH DATABASE ... AS <namespace>``),
  in-memory when the main database is in-memory, otherwise a file next to it.

Namespace identifiers cannot be sent as bound parameters, so every statement
here interpolates a ``NamespaceName``. That type only ever holds
``[A-Za-z0-9_]`` and is the single guard against identifier injection; it is
built once at provisioning and afterwards only re-validated, never re-derived
from user text.
"""
from __future__ import annotations

import os
import re
import secrets
import time

from flask import current_app
from sqlalchemy import text

from ..models.base import TenantModel, TENANT_SCHEMA

NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
MAX_NAMESPACE_LENGTH = 63
NAMESPACE_PREFIX = "tenant"

# Names the database already uses for itself.
RESERVED_NAMESPACES = frozenset({"public", "main", "temp", "information_schema", "pg_catalog", TENANT_SCHEMA})


class InvalidNamespaceError(ValueError):
    """Raised when a string is not an acceptable namespace identifier."""


class NamespaceName(str):
    """
    A namespace identifier that passed the allow-list.

    Constructing one is the only way to obtain a value the DDL helpers accept.
    """
    __slots__ = ()

    def __new__(cls, value):
        if isinstance(value, NamespaceName):
            return value
        if not isinstance(value, str):
            raise InvalidNamespaceError("Namespace must be a string")
        if not value or len(value) > MAX_NAMESPACE_LENGTH:
            raise InvalidNamespaceError("Namespace must be 1-63 characters")
        if not NAMESPACE_PATTERN.fullmatch(value):
            raise InvalidNamespaceError("Namespace may only contain letters, digits and underscores")
        if value.lower() in RESERVED_NAMESPACES:
            raise InvalidNamespaceError(f"Namespace {value!r} is reserved")
        return super().__new__(cls, value)


def derive(display_name: str) -> NamespaceName:
    """
    Build a fresh namespace identifier for a tenant display name.

    The slug keeps the name recognisable; the millisecond timestamp plus a
    random suffix keep two registrations of the same name in the same instant
    from colliding.
    """
    slug = re.sub(r"[^a-z0-9_]", "", (display_name or "").lower())[:30].strip("_")
    parts = [NAMESPACE_PREFIX]
    if slug:
        parts.append(slug)
    parts.append(str(int(time.time() * 1000)))
    parts.append(secrets.token_hex(3))
    return NamespaceName("_".join(parts))


def quote(conn, namespace: NamespaceName) -> str:
    return conn.dialect.identifier_preparer.quote_identifier(NamespaceName(namespace))


def _is_postgres(conn) -> bool:
    return conn.dialect.name == "postgresql"


def _is_sqlite(conn) -> bool:
    return conn.dialect.name == "sqlite"


def sqlite_namespace_dir(database: str | None, configured: str | None = None) -> str | None:
    """Directory for attached namespace files, or None for in-memory databases."""
    if not database or database == ":memory:" or database.startswith("file::memory:"):
        return None
    if configured:
        return configured
    return os.path.join(os.path.dirname(os.path.abspath(database)), "namespaces")


def _sqlite_location(conn, namespace: NamespaceName) -> str:
    directory = sqlite_namespace_dir(
        conn.engine.url.database,
        current_app.config.get("SQLITE_NAMESPACE_DIR"),
    )
    if directory is None:
        return ":memory:"
    os.makedirs(directory, exist_ok=True)
    return os.path.join(directory, f"{namespace}.db")


def reattach_namespace(conn, namespace: NamespaceName) -> bool:
    """
    SQLite only: attach an existing namespace file this pooled connection has
    not seen yet. Returns False when there is nothing on disk to attach.
    """
    if not _is_sqlite(conn):
        return False
    namespace = NamespaceName(namespace)
    directory = sqlite_namespace_dir(
        conn.engine.url.database,
        current_app.config.get("SQLITE_NAMESPACE_DIR"),
    )
    if directory is None:
        return False
    location = os.path.join(directory, f"{namespace}.db")
    if not os.path.exists(location):
        return False
    conn.exec_driver_sql(f"ATTACH DATABASE ? AS {quote(conn, namespace)}", (location,))
    return True


def create_namespace(conn, namespace: NamespaceName) -> None:
    """
    Create an empty namespace.

    On SQLite this must run before the connection opens a write transaction,
    since ATTACH is refused inside one.
    """
    namespace = NamespaceName(namespace)
    if _is_postgres(conn):
        conn.exec_driver_sql(f"CREATE SCHEMA {quote(conn, namespace)}")
    elif _is_sqlite(conn):
        conn.exec_driver_sql(
            f"ATTACH DATABASE ? AS {quote(conn, namespace)}",
            (_sqlite_location(conn, namespace),),
        )
    else:
        raise NotImplementedError(f"Namespaces are not supported on {conn.dialect.name}")


def drop_namespace(conn, namespace: NamespaceName) -> None:
    """Remove a namespace and everything in it. Missing namespaces are ignored."""
    namespace = NamespaceName(namespace)
    if _is_postgres(conn):
        conn.exec_driver_sql(f"DROP SCHEMA IF EXISTS {quote(conn, namespace)} CASCADE")
        return
    if not _is_sqlite(conn):
        raise NotImplementedError(f"Namespaces are not supported on {conn.dialect.name}")

    location = None
    for _, name, path in conn.exec_driver_sql("PRAGMA database_list").fetchall():
        if name == namespace:
            location = path
            break
    if location is None:
        return
    conn.exec_driver_sql(f"DETACH DATABASE {quote(conn, namespace)}")
    if location and os.path.exists(location):
        os.remove(location)


def namespace_exists(conn, namespace: NamespaceName) -> bool:
    namespace = NamespaceName(namespace)
    if _is_postgres(conn):
        row = conn.execute(
            text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :name"),
            {"name": str(namespace)},
        ).first()
        return row is not None
    if _is_sqlite(conn):
        for _, name, path in conn.exec_driver_sql("PRAGMA database_list").fetchall():
            if name == namespace:
                # A file dropped through another pooled connection stays attached here.
                return not path or os.path.exists(path)
        return False
    return False


def attached_namespaces(conn) -> list[str]:
    """SQLite only: every attached database except the built-in ones."""
    rows = conn.exec_driver_sql("PRAGMA database_list").fetchall()
    return [row[1] for row in rows if row[1] not in ("main", "temp")]


def set_search_path(conn, namespace: NamespaceName | None) -> None:
    """
    Point unqualified names at ``namespace`` (or back at the neutral default).

    Only PostgreSQL has a session-level search path; elsewhere the schema
    translate map on the connection does all of the routing.
    """
    if not _is_postgres(conn):
        return
    if namespace is None:
        conn.exec_driver_sql("SET search_path TO public")
    else:
        conn.exec_driver_sql(f"SET search_path TO {quote(conn, namespace)}, public")


def translate_map(namespace: NamespaceName) -> dict:
    return {TENANT_SCHEMA: str(NamespaceName(namespace))}


def create_table(conn, table) -> None:
    table.create(conn, checkfirst=False)


def materialize_tables(conn, namespace: NamespaceName) -> list[str]:
    """
    Create every namespace-scoped table inside ``namespace``.

    Runs on the caller's connection and inside the caller's transaction, so a
    failure part-way leaves nothing behind once the caller rolls back.
    """
    conn.execution_options(schema_translate_map=translate_map(namespace))
    created = []
    for table in TenantModel.metadata.sorted_tables:
        create_table(conn, table)
        created.append(table.name)
    return created
