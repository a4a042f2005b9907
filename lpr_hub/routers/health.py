# lpr_hub/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + dashboard fan-out.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(request: Request):
    state = request.app.state
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "dashboard_clients": state.dashboards.active_count,
        "subscribers": state.notifier.subscriber_count,
    }

    # Check database
    try:
        with state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
