from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Tenant(db.Model):
    """
    One isolated business.

    The tenant's operational data lives in its own namespace (a PostgreSQL
    schema, or an attached SQLite database). ``namespace`` is assigned once at
    provisioning and never changes afterwards.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    namespace = db.Column(db.String(63), nullable=False, unique=True)

    # Plain integer: users.tenant_id already points here, and the owner row is
    # created in the same transaction as the tenant.
    owner_user_id = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "namespace": self.namespace,
            "owner_user_id": self.owner_user_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
