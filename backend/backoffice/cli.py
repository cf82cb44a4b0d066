# Overview: Flask CLI command groups for bootstrap, tenant inspection and operator approval.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap:
# - flask --app wsgi system init-roles
#   Create the closed role set (Store Owner, Admin, Baker, Cashier, Super Admin).
# - flask --app wsgi system create-super-admin --username ops --email ops@example.com --password "secret1"
#   Create a platform operator (global scope, no bakery).
#
# Tenant management:
# - flask --app wsgi tenants list
#   List bakeries with their namespace and owner.
# - flask --app wsgi tenants provision --name "Acme" --username alice --email alice@acme.test --password "secret1"
#   Provision a bakery, its owner and its namespace.
# - flask --app wsgi tenants approve TOKEN
#   Approve a pending registration (same as opening the emailed approval link).
# - flask --app wsgi tenants drop NAMESPACE --yes
#   DEV only: drop a namespace and its tenant row. Deletes all of the bakery's data.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import Role, Tenant, User
from .roles import RoleName
from .services import auth_service, namespace_service, provisioning_service
from .services.namespace_service import InvalidNamespaceError, NamespaceName
from .services.provisioning_service import OwnerCandidate


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-roles')
@with_appcontext
def init_roles():
    """Create the role set if missing. Idempotent."""
    auth_service.ensure_default_roles()
    db.session.commit()
    roles = db.session.query(Role).order_by(Role.id).all()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")


@system_group.command('create-super-admin')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_super_admin(username, email, password):
    """Create a Super Admin. Super Admins belong to no bakery."""
    try:
        username = auth_service.validate_username(username)
        email = auth_service.validate_email(email)
        password_hash = auth_service.hash_password(password)
    except AppError as e:
        raise click.ClickException(e.message)

    existing = db.session.query(User.id).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise click.ClickException("Username or email already exists")

    user = User(username=username, email=email, password_hash=password_hash, is_approved=True)
    db.session.add(user)
    db.session.flush()
    auth_service.assign_role(user, RoleName.SUPER_ADMIN)
    db.session.commit()
    click.echo(f"PASS Created Super Admin '{user.username}' (ID: {user.id})")


@click.group('tenants')
def tenants_group():
    """Bakery (tenant) management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List every bakery with its namespace and owner."""
    rows = (
        db.session.query(Tenant, User.username)
        .outerjoin(User, User.id == Tenant.owner_user_id)
        .order_by(Tenant.id)
        .all()
    )
    if not rows:
        click.echo("No tenants found.")
        return
    for tenant, owner in rows:
        status = "active" if tenant.is_active else "inactive"
        click.echo(f"{tenant.id}\t{tenant.name}\t{tenant.namespace}\towner={owner or '-'}\t{status}")


@tenants_group.command('provision')
@click.option('--name', 'business_name', prompt=True, help='Bakery display name')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def provision_tenant(business_name, username, email, password):
    """Provision a bakery, its Store Owner and its namespace."""
    try:
        owner = OwnerCandidate.from_registration({
            "username": username,
            "email": email,
            "password": password,
        })
        result = provisioning_service.provision(business_name, owner)
    except AppError as e:
        raise click.ClickException(e.message)
    click.echo(
        f"PASS Provisioned '{result.tenant['name']}' (tenant {result.tenant_id}) "
        f"in namespace {result.namespace}; owner user {result.user_id}"
    )


@tenants_group.command('approve')
@click.argument('token')
@with_appcontext
def approve_tenant(token):
    """Approve a pending registration by its token."""
    try:
        result = provisioning_service.approve(token)
    except AppError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Approved '{result.tenant['name']}' (tenant {result.tenant_id})")


@tenants_group.command('drop')
@click.argument('namespace')
@click.option('--yes', is_flag=True, help='Confirm destructive operation')
@with_appcontext
def drop_tenant(namespace, yes):
    """
    DEV only: drop a namespace and delete its tenant row.

    Users of the bakery are detached from it, not deleted.
    """
    if not yes:
        raise click.ClickException("Refusing to drop without --yes")
    try:
        namespace = NamespaceName(namespace)
    except InvalidNamespaceError as e:
        raise click.ClickException(str(e))

    tenant = db.session.query(Tenant).filter_by(namespace=str(namespace)).first()
    if tenant is not None:
        db.session.query(User).filter_by(tenant_id=tenant.id).update({"tenant_id": None})
        db.session.delete(tenant)
    db.session.commit()

    with db.engine.connect() as conn:
        namespace_service.drop_namespace(conn, namespace)
        conn.commit()
    click.echo(f"PASS Dropped namespace {namespace}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
