# backend/backoffice/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Role, Tenant
from backoffice.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and the bootstrap state of the global tables.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        tenant_count = db.session.query(Tenant).count()
        role_count = db.session.query(Role).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if role_count else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "roles": role_count,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: healthy, or degraded (roles not initialized yet)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status
