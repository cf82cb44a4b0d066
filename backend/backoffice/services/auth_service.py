# Overview: Service-layer operations for auth; password hashing, role records and login.

"""
Credential Store.

Uses bcrypt for one-way password hashing. Users and roles are global rows;
the token issued at login carries the tenant and namespace the user belongs
to (see token_service).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Unknown usernames and wrong passwords fail the same way
- Pending (unapproved) accounts cannot log in
"""

import re

import bcrypt
from flask import current_app

from ..errors import ForbiddenError, UnauthorizedError
from ..extensions import db
from ..models import Role, User, UserRole
from ..roles import RoleName
from ..validation import ValidationError
from .token_service import identity_for_user, issue_token

MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ROLE_DESCRIPTIONS = {
    RoleName.OWNER: "Owns a bakery; full access inside its namespace",
    RoleName.ADMIN: "Manages catalog, staff and approvals",
    RoleName.BAKER: "Kitchen: ingredients, recipes, purchase requests",
    RoleName.CASHIER: "Till: records sales",
    RoleName.SUPER_ADMIN: "Platform operator; not bound to any tenant",
}


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def validate_username(username) -> str:
    if not isinstance(username, str) or len(username.strip()) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
    return username.strip()


def validate_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email.strip()):
        raise ValidationError("A valid email address is required")
    return email.strip().lower()


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor BCRYPT_ROUNDS, 12 by default).

    Password is validated for length before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never verify."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def ensure_default_roles(session=None) -> dict[str, Role]:
    """Create the closed set of roles if missing. Flushes; the caller commits."""
    session = session or db.session
    existing = {r.name: r for r in session.query(Role).all()}
    for name in RoleName:
        if name.value not in existing:
            role = Role(name=name.value, description=ROLE_DESCRIPTIONS[name])
            session.add(role)
            existing[name.value] = role
    session.flush()
    return existing


def assign_role(user: User, role_name: RoleName, session=None) -> UserRole:
    """Grant a role to a user. Idempotent. Flushes; the caller commits."""
    session = session or db.session
    role_name = RoleName(role_name)
    role = session.query(Role).filter_by(name=role_name.value).first()
    if role is None:
        role = ensure_default_roles(session)[role_name.value]

    existing = session.query(UserRole).filter_by(user_id=user.id, role_id=role.id).first()
    if existing:
        return existing

    user_role = UserRole(user=user, role=role)
    session.add(user_role)
    session.flush()
    return user_role


def set_roles(user: User, role_names, session=None) -> None:
    """Replace a user's role set."""
    session = session or db.session
    wanted = {RoleName(r) for r in role_names}
    for user_role in list(user.user_roles):
        if RoleName(user_role.role.name) not in wanted:
            user.user_roles.remove(user_role)
    session.flush()
    for role_name in wanted:
        assign_role(user, role_name, session=session)


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User when the credentials match, None otherwise.
    """
    if not username or not password:
        return None
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username.lower())
    ).first()
    if not user:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None


def login(username: str, password: str) -> tuple[str, User]:
    """
    Check credentials and issue a bearer token.

    Raises UnauthorizedError on bad credentials and ForbiddenError while the
    account is still waiting on approval.
    """
    user = authenticate(username, password)
    if user is None:
        raise UnauthorizedError("Invalid credentials")
    if not user.is_approved:
        raise ForbiddenError("Account pending approval")

    identity = identity_for_user(user, user.tenant)
    if not identity.is_global and identity.namespace is None:
        current_app.logger.warning("User %s has no tenant; refusing login", user.id)
        raise ForbiddenError("Account is not linked to a bakery")

    return issue_token(identity), user
