"""Reservations backend package.

To create the Flask app:
    from backend.flask_app import create_app

To use the identity facade directly:
    from backend.core.auth_facade import initialize_identity
"""
