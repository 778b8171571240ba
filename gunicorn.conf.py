"""Gunicorn configuration file.

Usage:
    gunicorn -c gunicorn.conf.py "backend.flask_app:create_app()"

Each worker builds its own application (identity handle + MongoDB client);
pymongo clients must not be shared across a fork.
"""
import os
from pathlib import Path

bind = f"0.0.0.0:{os.environ.get('PORT', '3001')}"
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
preload_app = False


def _service_account_path() -> Path:
    secret_file = Path("/run/secrets") / "service_account_credentials"
    if secret_file.is_file():
        return secret_file
    return Path(
        os.environ.get("SERVICE_ACCOUNT_FILE")
        or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        or "environment/credentials.json"
    )


def on_starting(server):
    """Warn early when the identity provider cannot be initialized."""
    for var_name in ("API_KEY", "PROJECT_ID"):
        if not os.environ.get(var_name) and not Path(f"/run/secrets/{var_name.lower()}").is_file():
            server.log.error(f"{var_name} is not set; workers will fail to boot")

    credentials = _service_account_path()
    if credentials.is_file():
        server.log.info(f"Service account credentials found at {credentials}")
    else:
        server.log.error(f"Service account credentials missing at {credentials}")


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    worker.log.info(f"Worker {worker.pid} booting (port {bind.rsplit(':', 1)[-1]})")
