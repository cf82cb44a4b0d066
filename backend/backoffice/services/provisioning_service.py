# Overview: Tenant Provisioner; creates a tenant, its owner and its isolated namespace as one unit.

"""
Tenant provisioning.

``provision`` performs, on a single connection and inside a single
transaction:

  (a) insert the Tenant row with a freshly derived namespace identifier
  (b) insert the owner User row (or adopt a pending one)
  (c) link user -> tenant
  (d) grant the owner the Store Owner role
  (e) create the namespace and every namespace-scoped table inside it

If any step fails the transaction is rolled back and the namespace is
dropped (PostgreSQL) or detached and deleted (SQLite), so no tenant row,
user row or orphaned namespace survives.

The approval variant (``register_pending`` + ``approve``) stores the
registration, notifies an operator and provisions only when the operator
presents the single-use token. Claiming the token happens in the same
transaction as provisioning.
"""
from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import AppError, ConflictError, NotFoundError, ServiceUnavailableError
from ..extensions import db
from ..models import RegistrationApproval, Tenant, User
from ..roles import RoleName
from ..time_utils import utcnow
from ..validation import ValidationError
from . import auth_service, namespace_service, notification_service
from .concurrency import lock_for_update

MAX_BUSINESS_NAME_LENGTH = 255


@dataclass(frozen=True)
class OwnerCandidate:
    """The user who will own a new tenant. Holds a password hash, never the password."""
    username: str
    email: str
    password_hash: str
    first_name: str | None = None
    last_name: str | None = None
    user_id: int | None = None

    @classmethod
    def from_registration(cls, payload: dict) -> "OwnerCandidate":
        username = auth_service.validate_username(payload.get("username"))
        email = auth_service.validate_email(payload.get("email"))
        password_hash = auth_service.hash_password(payload.get("password"))
        return cls(
            username=username,
            email=email,
            password_hash=password_hash,
            first_name=(payload.get("firstName") or payload.get("first_name") or None),
            last_name=(payload.get("lastName") or payload.get("last_name") or None),
        )


@dataclass(frozen=True)
class ProvisionResult:
    tenant_id: int
    namespace: str
    user_id: int
    tenant: dict
    user: dict


def validate_business_name(display_name) -> str:
    if not isinstance(display_name, str) or not display_name.strip():
        raise ValidationError("businessName is required")
    name = display_name.strip()
    if len(name) > MAX_BUSINESS_NAME_LENGTH:
        raise ValidationError(f"businessName exceeds max length {MAX_BUSINESS_NAME_LENGTH}")
    return name


def check_conflicts(display_name: str, owner: OwnerCandidate) -> None:
    """Fail fast with ConflictError before touching any DDL."""
    if db.session.query(Tenant.id).filter(Tenant.name == display_name).first():
        raise ConflictError("A bakery with this name already exists")
    if owner.user_id is not None:
        return
    existing = db.session.query(User.id).filter(
        db.or_(User.username == owner.username, User.email == owner.email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")


def _populate(session: Session, conn, display_name: str, namespace, owner: OwnerCandidate) -> ProvisionResult:
    tenant = Tenant(name=display_name, namespace=str(namespace), is_active=True)
    session.add(tenant)
    session.flush()

    if owner.user_id is not None:
        user = session.get(User, owner.user_id)
        if user is None:
            raise NotFoundError("Pending user no longer exists")
        user.tenant_id = tenant.id
        user.is_approved = True
    else:
        user = User(
            tenant_id=tenant.id,
            username=owner.username,
            email=owner.email,
            first_name=owner.first_name,
            last_name=owner.last_name,
            password_hash=owner.password_hash,
            is_approved=True,
        )
        session.add(user)
    session.flush()

    tenant.owner_user_id = user.id
    auth_service.assign_role(user, RoleName.OWNER, session=session)
    session.flush()

    tables = namespace_service.materialize_tables(conn, namespace)
    current_app.logger.info(
        "Materialized %d tables in namespace for tenant_id=%s", len(tables), tenant.id
    )

    return ProvisionResult(
        tenant_id=tenant.id,
        namespace=str(namespace),
        user_id=user.id,
        tenant=tenant.to_dict(),
        user=user.to_dict(),
    )


def _discard_namespace(conn, namespace) -> None:
    try:
        if conn.in_transaction():
            conn.rollback()
        namespace_service.drop_namespace(conn, namespace)
        conn.commit()
    except SQLAlchemyError:
        current_app.logger.exception("Failed to discard namespace %s after provisioning error", namespace)


def _run(display_name: str, owner: OwnerCandidate, *, engine=None, claim=None) -> ProvisionResult:
    namespace = namespace_service.derive(display_name)
    engine = engine if engine is not None else db.engine

    conn = engine.connect()
    session = None
    namespace_created = False
    try:
        # SQLite refuses ATTACH inside a write transaction, so the namespace
        # comes first; on PostgreSQL CREATE SCHEMA joins the same transaction.
        namespace_service.create_namespace(conn, namespace)
        namespace_created = True

        session = Session(bind=conn)
        if claim is not None:
            claim(session)
        result = _populate(session, conn, display_name, namespace, owner)
        session.close()
        session = None
        conn.commit()
    except BaseException as exc:
        if session is not None:
            session.close()
        if conn.in_transaction():
            conn.rollback()
        if namespace_created:
            _discard_namespace(conn, namespace)
        conn.close()

        if isinstance(exc, AppError):
            raise
        if isinstance(exc, IntegrityError):
            raise ConflictError("A bakery, username or email with these details already exists")
        if isinstance(exc, SQLAlchemyError):
            current_app.logger.exception("Provisioning failed for %r", display_name)
            raise ServiceUnavailableError("Could not provision bakery")
        raise

    conn.close()
    current_app.logger.info(
        "Provisioned tenant_id=%s namespace=%s owner_user_id=%s",
        result.tenant_id,
        result.namespace,
        result.user_id,
    )
    return result


def provision(display_name: str, owner: OwnerCandidate, *, engine=None) -> ProvisionResult:
    """
    Create a tenant, its owner and its namespace atomically.

    Raises ConflictError when the display name, username or email is taken.
    """
    display_name = validate_business_name(display_name)
    check_conflicts(display_name, owner)
    return _run(display_name, owner, engine=engine)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def register_pending(display_name: str, owner: OwnerCandidate) -> tuple[User, str]:
    """
    Store a registration that waits for operator approval.

    Returns the unapproved user and the raw approval token. Only the token's
    hash is persisted.
    """
    display_name = validate_business_name(display_name)
    check_conflicts(display_name, owner)
    pending = db.session.query(RegistrationApproval.id).filter(
        RegistrationApproval.business_name == display_name,
        RegistrationApproval.used_at.is_(None),
        RegistrationApproval.expires_at > utcnow(),
    ).first()
    if pending:
        raise ConflictError("A bakery with this name is already awaiting approval")

    user = User(
        username=owner.username,
        email=owner.email,
        first_name=owner.first_name,
        last_name=owner.last_name,
        password_hash=owner.password_hash,
        is_approved=False,
    )
    token = secrets.token_urlsafe(32)
    ttl = timedelta(hours=current_app.config.get("APPROVAL_TOKEN_TTL_HOURS", 72))
    approval = RegistrationApproval(
        user=user,
        business_name=display_name,
        token_hash=_hash_token(token),
        expires_at=utcnow() + ttl,
    )
    db.session.add(user)
    db.session.add(approval)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username or email already exists")

    notification_service.notify_pending_registration(
        business_name=display_name,
        username=user.username,
        email=user.email,
        approval_url=f"{current_app.config.get('APPROVAL_BASE_URL', '').rstrip('/')}/{token}",
    )
    return user, token


def _find_open_approval(token_hash: str) -> RegistrationApproval:
    approval = db.session.query(RegistrationApproval).filter_by(token_hash=token_hash).first()
    if approval is None or approval.used_at is not None or approval.expires_at <= utcnow():
        raise NotFoundError("Approval token is invalid, expired or already used")
    return approval


def approve(token: str, *, engine=None) -> ProvisionResult:
    """
    Provision the tenant behind a pending registration.

    The token is claimed with a guarded UPDATE inside the provisioning
    transaction: if two operators race, exactly one claim matches and the
    other sees NotFoundError.
    """
    if not token or not isinstance(token, str):
        raise NotFoundError("Approval token is invalid, expired or already used")
    token_hash = _hash_token(token)

    approval = _find_open_approval(token_hash)
    approval_id = approval.id
    display_name = approval.business_name
    user = approval.user
    owner = OwnerCandidate(
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        first_name=user.first_name,
        last_name=user.last_name,
        user_id=user.id,
    )
    check_conflicts(display_name, owner)
    # Release the global session's connection before provisioning opens its own.
    db.session.rollback()

    def claim(session: Session) -> None:
        lock_for_update(session.query(RegistrationApproval).filter_by(id=approval_id)).first()
        claimed = session.execute(
            update(RegistrationApproval)
            .where(RegistrationApproval.id == approval_id)
            .where(RegistrationApproval.used_at.is_(None))
            .values(used_at=utcnow())
        )
        if claimed.rowcount != 1:
            raise NotFoundError("Approval token is invalid, expired or already used")

    result = _run(display_name, owner, engine=engine, claim=claim)
    current_app.logger.info("Approved registration id=%s tenant_id=%s", approval_id, result.tenant_id)
    return result
