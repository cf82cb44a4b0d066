# Overview: Flask API routes for user and staff management.

"""
User routes.

Users live in the global tables, so these routes use the global session.
Role gates here are coarse; user_service applies the tenant and privilege
rules (same-tenant managers, self access, Super Admin only for privileged
roles).
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..roles import MANAGERS, RoleName
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_roles(RoleName.SUPER_ADMIN)
def list_all_users():
    users = user_service.list_all_users()
    return {"items": users, "count": len(users)}


@users_bp.post("/add-staff")
@require_auth
@require_roles(*MANAGERS)
def add_staff_route():
    """
    Add a staff member to the caller's bakery.

    Body: {"username", "email", "password", "firstName"?, "lastName"?, "roles": ["Baker", ...]}
    """
    payload = request.get_json(silent=True) or {}
    user = user_service.add_staff(g.identity, payload)
    return user.to_dict(), 201


@users_bp.get("/my-tenant")
@require_auth
def list_my_tenant_users():
    users = [u.to_dict() for u in user_service.list_tenant_users(g.identity)]
    return {"items": users, "count": len(users)}


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    return user_service.get_user(g.identity, user_id).to_dict()


@users_bp.put("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    return user_service.update_user(g.identity, user_id, payload).to_dict(), 200


@users_bp.put("/<int:user_id>/roles")
@require_auth
@require_roles(RoleName.OWNER, RoleName.SUPER_ADMIN)
def update_roles_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    user = user_service.update_roles(g.identity, user_id, payload.get("roles"))
    return user.to_dict(), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_roles(RoleName.OWNER, RoleName.ADMIN, RoleName.SUPER_ADMIN)
def delete_user_route(user_id: int):
    user_service.delete_user(g.identity, user_id)
    return {"ok": True}, 200
