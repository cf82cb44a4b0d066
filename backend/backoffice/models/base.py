# Overview: Declarative base for namespace-scoped tables and shared column helpers.

"""
Namespace-scoped tables live on their own declarative base.

Every table on ``TenantModel.metadata`` is declared under the placeholder
schema ``TENANT_SCHEMA``. The placeholder never exists in the database: the
Namespace Router installs a ``schema_translate_map`` on the request's
connection that rewrites it to the tenant's real namespace, and the Tenant
Provisioner uses the same map to create one copy of each table per tenant.

These tables are deliberately absent from ``db.Model.metadata`` so Alembic
and ``db.create_all()`` only ever see the global tables.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

TENANT_SCHEMA = "tenant"

CENTS = Decimal("0.01")


class TenantModel(DeclarativeBase):
    metadata = MetaData(schema=TENANT_SCHEMA)


def tenant_fk(target: str) -> str:
    """Foreign key target inside the same namespace, e.g. tenant_fk("recipes.id")."""
    return f"{TENANT_SCHEMA}.{target}"


def money(value) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS))


def measure(value) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS))
