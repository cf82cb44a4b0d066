# Overview: Flask API routes for reports.

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..roles import MANAGERS
from ..services import reporting_service
from ..services.tenant_scope import tenant_session

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit-loss")
@require_auth
@require_roles(*MANAGERS)
def profit_loss_report():
    """
    Profit and loss over a date range.

    Query params:
    - startDate: YYYY-MM-DD (required)
    - endDate: YYYY-MM-DD (required, inclusive)
    """
    return reporting_service.profit_loss(
        tenant_session(),
        request.args.get("startDate"),
        request.args.get("endDate"),
    )
