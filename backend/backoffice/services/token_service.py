# Overview: Bearer token issuance and verification; turns a token into a typed Identity.

"""
Signed, time-limited bearer tokens (PyJWT, HS256).

Claims: ``sub``, ``userId``, ``username``, ``roles``, ``tenantId``,
``namespaceId``, ``iat`` and ``exp``. Global-scope identities carry no
tenant or namespace. Role strings are parsed into ``RoleName`` values; a
token naming a role outside that set is rejected outright.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta, timezone

import jwt
from flask import current_app

from ..errors import UnauthorizedError
from ..roles import RoleName, GLOBAL_ROLES
from ..time_utils import utcnow
from .namespace_service import NamespaceName, InvalidNamespaceError


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str
    roles: frozenset = field(default_factory=frozenset)
    tenant_id: int | None = None
    namespace: NamespaceName | None = None

    @property
    def is_global(self) -> bool:
        return bool(self.roles & GLOBAL_ROLES)

    def has_role(self, *roles: RoleName) -> bool:
        return bool(self.roles & frozenset(roles))

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "roles": sorted(r.value for r in self.roles),
            "tenantId": self.tenant_id,
            "namespaceId": str(self.namespace) if self.namespace else None,
        }


def issue_token(identity: Identity) -> str:
    now = utcnow().replace(tzinfo=timezone.utc)
    ttl = timedelta(hours=current_app.config.get("TOKEN_TTL_HOURS", 8))
    payload = dict(identity.to_dict())
    payload["sub"] = str(identity.user_id)
    payload["iat"] = now
    payload["exp"] = now + ttl
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_token(token: str) -> Identity:
    """
    Verify signature and expiry, then build the Identity.

    Raises UnauthorizedError for anything that is not a well-formed, current
    token from this service.
    """
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    try:
        user_id = int(claims["userId"])
        username = str(claims["username"])
        raw_roles = claims.get("roles") or []
        if not isinstance(raw_roles, list):
            raise ValueError("roles must be a list")
        roles = frozenset(RoleName.parse(r) for r in raw_roles)
        tenant_id = claims.get("tenantId")
        tenant_id = int(tenant_id) if tenant_id is not None else None
        namespace = claims.get("namespaceId")
        namespace = NamespaceName(namespace) if namespace else None
    except (KeyError, TypeError, ValueError, InvalidNamespaceError):
        raise UnauthorizedError("Invalid token")

    return Identity(
        user_id=user_id,
        username=username,
        roles=roles,
        tenant_id=tenant_id,
        namespace=namespace,
    )


def identity_for_user(user, tenant=None) -> Identity:
    """Identity claims for a User row (and its Tenant, when it has one)."""
    roles = frozenset(RoleName.parse(name) for name in user.role_names)
    return Identity(
        user_id=user.id,
        username=user.username,
        roles=roles,
        tenant_id=tenant.id if tenant is not None else user.tenant_id,
        namespace=NamespaceName(tenant.namespace) if tenant is not None else None,
    )
