# Overview: Namespace Router; binds one checked-out connection to the caller's namespace for a request.

"""
Request-scoped namespace binding.

``bind_namespace`` is the acquire/release boundary of a connection's tenant
affinity:

1. check out one connection from the pool, owned by this request alone;
2. select the caller's namespace on it (search path plus schema translate
   map), or the neutral namespace for global-scope callers;
3. hand the caller a ``TenantScope`` wrapping that connection;
4. on exit, reset the connection to the neutral namespace before it goes
   back to the pool, or invalidate it if the reset fails.

Failures to select a namespace surface as ServiceUnavailableError. There is
no fallback to the neutral namespace for a tenant caller.
"""
from __future__ import annotations

from contextlib import contextmanager

from flask import current_app, g
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ForbiddenError, ServiceUnavailableError
from ..extensions import db
from . import namespace_service


class TenantScope:
    """One request's database handle, bound to at most one namespace."""

    def __init__(self, identity, namespace, connection):
        self.identity = identity
        self.namespace = namespace
        self.connection = connection
        self._session = Session(bind=connection) if namespace is not None else None

    @property
    def is_neutral(self) -> bool:
        return self.namespace is None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise ForbiddenError("No tenant namespace bound to this request")
        return self._session

    def release(self) -> None:
        conn = self.connection
        try:
            if self._session is not None:
                self._session.close()
                self._session = None
            if conn.in_transaction():
                conn.rollback()
            namespace_service.set_search_path(conn, None)
            conn.commit()
        except SQLAlchemyError:
            current_app.logger.exception("Failed to reset namespace; discarding connection")
            conn.invalidate()
        finally:
            conn.close()


def _select(conn, identity, namespace) -> None:
    if namespace is None:
        namespace_service.set_search_path(conn, None)
    else:
        if not (
            namespace_service.namespace_exists(conn, namespace)
            or namespace_service.reattach_namespace(conn, namespace)
        ):
            current_app.logger.error(
                "Namespace missing for user_id=%s tenant_id=%s",
                identity.user_id,
                identity.tenant_id,
            )
            raise ServiceUnavailableError("Tenant data is unavailable")
        namespace_service.set_search_path(conn, namespace)
        conn.execution_options(schema_translate_map=namespace_service.translate_map(namespace))
    conn.commit()


@contextmanager
def bind_namespace(identity, *, engine=None):
    """
    Yield a TenantScope bound to ``identity``'s namespace.

    Global-scope identities get the neutral namespace. A tenant identity with
    no namespace claim is refused with ForbiddenError.
    """
    if identity.is_global:
        namespace = None
    elif identity.namespace:
        namespace = identity.namespace
    else:
        current_app.logger.warning(
            "Identity without namespace: user_id=%s tenant_id=%s",
            identity.user_id,
            identity.tenant_id,
        )
        raise ForbiddenError("No tenant namespace bound to this request")

    engine = engine if engine is not None else db.engine
    conn = engine.connect()
    try:
        _select(conn, identity, namespace)
    except ServiceUnavailableError:
        conn.close()
        raise
    except SQLAlchemyError:
        current_app.logger.exception(
            "Namespace selection failed for user_id=%s tenant_id=%s",
            identity.user_id,
            identity.tenant_id,
        )
        conn.invalidate()
        conn.close()
        raise ServiceUnavailableError("Tenant data is unavailable")

    scope = TenantScope(identity, namespace, conn)
    try:
        yield scope
    finally:
        scope.release()


def current_scope() -> TenantScope:
    scope = getattr(g, "scope", None)
    if scope is None:
        raise ForbiddenError("No tenant namespace bound to this request")
    return scope


def tenant_session() -> Session:
    """Session of the namespace bound to the current request."""
    return current_scope().session
