# Overview: Staff and user management over the global user tables, scoped by the caller's tenant.

"""
User management.

Users and roles are global rows, so these operations use the global session
and scope visibility by comparing the caller's tenant id with the target's.

Visibility rules:
- Super Admin sees and manages everyone.
- A user can read and update their own profile.
- Store Owners and Admins manage users of their own tenant.
- Only Super Admin may grant, alter or remove Store Owner / Super Admin.
- Nobody deletes their own account.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Tenant, User
from ..roles import GLOBAL_ROLES, MANAGERS, RoleName, STAFF_ROLES
from ..validation import ValidationError
from . import auth_service

PRIVILEGED_ROLES = frozenset({RoleName.OWNER, RoleName.SUPER_ADMIN})


def parse_roles(raw) -> set[RoleName]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("roles must be a non-empty list")
    try:
        return {RoleName.parse(r) for r in raw}
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc))


def _held_roles(user: User) -> set[RoleName]:
    return {RoleName.parse(name) for name in user.role_names}


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _is_tenant_manager(actor, user: User) -> bool:
    return actor.has_role(*MANAGERS) and actor.tenant_id is not None and user.tenant_id == actor.tenant_id


def _commit(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def add_staff(actor, payload: dict) -> User:
    """Create a user inside the caller's tenant with non-privileged roles."""
    if actor.tenant_id is None:
        raise ForbiddenError("Caller is not associated with a bakery")

    roles = parse_roles(payload.get("roles"))
    if roles - STAFF_ROLES:
        raise ForbiddenError("Cannot assign Store Owner or Super Admin role via this endpoint")

    username = auth_service.validate_username(payload.get("username"))
    email = auth_service.validate_email(payload.get("email"))
    password_hash = auth_service.hash_password(payload.get("password"))

    existing = db.session.query(User.id).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        tenant_id=actor.tenant_id,
        username=username,
        email=email,
        first_name=payload.get("firstName") or payload.get("first_name"),
        last_name=payload.get("lastName") or payload.get("last_name"),
        password_hash=password_hash,
        is_approved=True,
    )
    db.session.add(user)
    db.session.flush()
    for role in roles:
        auth_service.assign_role(user, role)
    _commit("Username or email already exists")

    current_app.logger.info("User %s added staff user %s to tenant %s", actor.user_id, user.id, actor.tenant_id)
    return user


def list_tenant_users(actor) -> list[User]:
    if actor.tenant_id is None:
        raise ForbiddenError("Caller is not associated with a bakery")
    return (
        db.session.query(User)
        .filter(User.tenant_id == actor.tenant_id)
        .order_by(User.username.asc())
        .all()
    )


def list_all_users() -> list[dict]:
    """Every user across tenants, with the tenant name. Super Admin only (enforced at the route)."""
    rows = (
        db.session.query(User, Tenant.name)
        .outerjoin(Tenant, User.tenant_id == Tenant.id)
        .order_by(User.id.asc())
        .all()
    )
    result = []
    for user, tenant_name in rows:
        data = user.to_dict()
        data["tenant_name"] = tenant_name
        result.append(data)
    return result


def get_user(actor, user_id: int) -> User:
    user = _get_user(user_id)
    if actor.is_global or actor.user_id == user.id or _is_tenant_manager(actor, user):
        return user
    raise ForbiddenError("You do not have permission to view this user")


def update_user(actor, user_id: int, payload: dict) -> User:
    user = _get_user(user_id)
    is_self = actor.user_id == user.id
    is_manager = _is_tenant_manager(actor, user)
    if not (actor.is_global or is_self or is_manager):
        raise ForbiddenError("You do not have permission to update this user")

    roles = None
    if payload.get("roles") is not None:
        roles = parse_roles(payload["roles"])
        _check_role_change(actor, user, roles)

    if payload.get("username"):
        user.username = auth_service.validate_username(payload["username"])
    if payload.get("email"):
        user.email = auth_service.validate_email(payload["email"])
    for source, attr in (("firstName", "first_name"), ("lastName", "last_name")):
        value = payload.get(source, payload.get(attr))
        if value:
            setattr(user, attr, str(value).strip())
    if payload.get("password"):
        user.password_hash = auth_service.hash_password(payload["password"])

    if roles is not None:
        auth_service.set_roles(user, roles)

    _commit("Username or email already exists")
    return user


def _guard_privileged(actor, user: User, roles: set[RoleName]) -> None:
    if actor.is_global:
        return
    if roles & PRIVILEGED_ROLES:
        raise ForbiddenError("Only Super Admin can assign Store Owner or Super Admin roles")
    if _held_roles(user) & PRIVILEGED_ROLES:
        raise ForbiddenError("Only Super Admin can modify roles of Store Owners or Super Admins")


def _check_role_change(actor, user: User, roles: set[RoleName]) -> None:
    """Rules shared by every path that replaces a user's roles."""
    if not actor.is_global:
        if not actor.has_role(RoleName.OWNER):
            raise ForbiddenError("Only Super Admins or Store Owners can modify user roles")
        if user.tenant_id != actor.tenant_id:
            raise ForbiddenError("Store Owners can only modify roles of users in their own bakery")
        _guard_privileged(actor, user, roles)

    if roles & GLOBAL_ROLES and user.tenant_id is not None:
        raise ValidationError("Super Admin cannot be granted to a bakery user")


def update_roles(actor, user_id: int, raw_roles) -> User:
    """Replace a user's roles. Store Owners act inside their tenant; Super Admin anywhere."""
    roles = parse_roles(raw_roles)
    user = _get_user(user_id)
    _check_role_change(actor, user, roles)

    auth_service.set_roles(user, roles)
    _commit("Role assignment conflicts with existing data")
    current_app.logger.info("User %s set roles of user %s to %s", actor.user_id, user.id, sorted(r.value for r in roles))
    return user


def delete_user(actor, user_id: int) -> None:
    if actor.user_id == user_id:
        raise ForbiddenError("You cannot delete your own account")

    user = _get_user(user_id)
    if not (actor.is_global or _is_tenant_manager(actor, user)):
        raise ForbiddenError("You do not have permission to delete this user")
    if not actor.is_global and _held_roles(user) & PRIVILEGED_ROLES:
        raise ForbiddenError("Cannot delete Store Owners or Super Admins")

    tenant = db.session.query(Tenant).filter_by(owner_user_id=user.id).first()
    if tenant is not None:
        tenant.owner_user_id = None

    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted user %s", actor.user_id, user_id)
