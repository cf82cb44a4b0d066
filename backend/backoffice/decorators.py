# Overview: Request decorators; bearer authentication, namespace binding and the role gate.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import AppError
from .roles import DENY_NO_ROLES, authorize
from .services.tenant_scope import bind_namespace
from .services.token_service import decode_token


def require_auth(f):
    """
    Require a bearer token and bind the request to the caller's namespace.

    Sets the following Flask g attributes for the duration of the view:
    - g.identity: the verified Identity (user, roles, tenant, namespace)
    - g.scope: the TenantScope owning this request's connection

    The connection is reset to the neutral namespace and returned to the pool
    when the view returns or raises.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            identity = decode_token(token)
        except AppError as e:
            return jsonify({"error": e.message}), e.status_code

        with bind_namespace(identity) as scope:
            g.identity = identity
            g.scope = scope
            try:
                return f(*args, **kwargs)
            finally:
                g.pop("scope", None)

    return decorated_function


def require_roles(*roles):
    """
    Require at least one of ``roles``. Super Admin always passes.

    Must be applied inside @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = getattr(g, "identity", None)
            if identity is None:
                return jsonify({"error": "Authentication required"}), 401

            decision = authorize(identity.roles, roles)
            if not decision:
                log = current_app.logger.warning if decision.reason == DENY_NO_ROLES else current_app.logger.info
                log(
                    "Permission denied (%s): user_id=%s tenant_id=%s %s %s",
                    decision.reason,
                    identity.user_id,
                    identity.tenant_id,
                    request.method,
                    request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": [r.value for r in roles],
                    "message": decision.reason,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
