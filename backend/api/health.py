"""Health check endpoints."""
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: identity handle installed and MongoDB answering a ping."""
    if "auth_facade" not in current_app.extensions:
        return ("identity provider not initialized", 503, {"Content-Type": "text/plain"})

    database = current_app.extensions.get("database")
    if database is not None and not database.ping():
        return ("database unavailable", 503, {"Content-Type": "text/plain"})

    return ("ready", 200, {"Content-Type": "text/plain"})
