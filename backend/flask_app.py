"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, logging and the identity and
database handles.

Run with gunicorn:
    gunicorn -c gunicorn.conf.py "backend.flask_app:create_app()"
"""
from __future__ import annotations
import atexit
import logging
from typing import Optional

from flask import Flask

from backend.config import AppConfig, load_settings
from backend.core.auth_facade import AuthFacade, initialize_identity
from backend.core.database import DatabaseService

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[AppConfig] = None,
    facade: Optional[AuthFacade] = None,
    database: Optional[DatabaseService] = None,
) -> Flask:
    """Create and configure Flask application.

    Startup mirrors the service bootstrap: ping the database (logged, not
    fatal) then initialize the identity handle (fatal on failure).

    Args:
        cfg: Configuration (defaults to load_settings())
        facade: Pre-built identity facade (defaults to initialize_identity(cfg))
        database: Pre-built database service (defaults to one built from cfg)
    """
    # Load configuration
    cfg = cfg or load_settings()
    _configure_logging(cfg.log_level)

    # Create Flask app
    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    # Database
    database = database or DatabaseService(cfg.mongo_uri, cfg.mongo_db_name)
    if not database.ping():
        logger.warning("MongoDB unreachable at startup; /ready will report it")
    app.extensions["database"] = database
    atexit.register(database.close)

    # Identity provider (raises InitializationError on failure)
    app.extensions["auth_facade"] = facade or initialize_identity(cfg)

    # Register blueprints
    from backend.api import auth, health, errors

    app.register_blueprint(auth.bp)
    app.register_blueprint(health.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    logger.info("Application configured (project=%s, port=%s)", cfg.project_id, cfg.port)
    return app


def _configure_logging(level: str) -> None:
    """Configure root logging once (gunicorn or the dev server may already have)."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root.setLevel(level)


if __name__ == "__main__":
    application = create_app()
    logger.info("Server is running and listening on port %s", application.config["APP_CONFIG"].port)
    application.run(host="0.0.0.0", port=application.config["APP_CONFIG"].port)
