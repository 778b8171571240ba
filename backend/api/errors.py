"""Error handlers for the application."""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from backend.core.identity import IdentityError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(IdentityError)
    def identity_error(error):
        """Map identity failures to status codes; the cause is logged, never returned."""
        if error.cause is not None:
            logger.info("%s: %s (cause: %s)", error.kind, error.message, error.cause)
        return jsonify({"error": error.kind, "message": error.message}), error.http_status

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return jsonify({"error": "Bad Request", "message": _description(error, "Invalid request")}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        """Handle 401 Unauthorized errors."""
        return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors."""
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        """Handle 413 Request Entity Too Large errors."""
        return jsonify({"error": "Request Too Large", "message": "Request body too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        # ALWAYS log the error (even in production) - logs are secure
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500


def _description(error, default: str) -> str:
    description = getattr(error, "description", None)
    return str(description) if description else default
