# backend/clubpos/routes/system.py
"""
System health and version endpoints.

The health check touches the key-value table and decodes the stored state
documents, so a corrupt or unreachable store shows up here before an
operator hits it at the till.
"""

import sys
import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import KeyValueRecord
from ..storage import SqlKeyValueStore
from ..services.table_service import list_tables
from ..time_utils import now_ms, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        record_count = db.session.query(KeyValueRecord).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"state_documents": record_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_tables_health() -> dict:
    """Tables load (regenerating if needed) and at least one exists."""
    start_time = time.time()
    try:
        tables = list_tables(SqlKeyValueStore())
        elapsed_ms = (time.time() - start_time) * 1000

        if not tables:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No tables configured; enable an activity",
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tables": len(tables),
                "in_session": sum(1 for table in tables if table.session is not None),
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Tables health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Tables error",
        }


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database or tables unusable
    """
    start_time = time.time()

    database_health = check_database_health()
    tables_health = check_tables_health()

    all_checks = [database_health, tables_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": to_utc_z(now_ms()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "tables": tables_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "currency": current_app.config["CLUB_CURRENCY"],
        "server_time": to_utc_z(now_ms()),
    }
