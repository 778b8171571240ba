"""Authentication routes.

JSON endpoints over the auth facade. Mutating routes take the caller's ID
token from ``Authorization: Bearer <token>``; identity failures are turned
into responses by ``backend.api.errors``.
"""
from __future__ import annotations
import logging

from flask import Blueprint, request, jsonify, g, abort

from backend.api.decorators import get_auth_facade, require_id_token

bp = Blueprint("auth", __name__, url_prefix="/auth")

logger = logging.getLogger(__name__)

JSON_MAX_SIZE_BYTES = 16384  # 16 KB


def _json_body(*required: str) -> dict:
    """Parse the JSON body and make sure the required string fields are present."""
    if request.content_length and request.content_length > JSON_MAX_SIZE_BYTES:
        abort(413)
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    missing = [name for name in required if not isinstance(payload.get(name), str) or not payload.get(name)]
    if missing:
        abort(400, description=f"Missing required field(s): {', '.join(missing)}")
    return payload


def _session_payload(session) -> dict:
    return {
        "idToken": session.id_token,
        "refreshToken": session.refresh_token,
        "expiresIn": session.expires_in,
    }


@bp.route("/users", methods=["POST"])
def create_user():
    """Register a new identity."""
    payload = _json_body("firstName", "lastName", "email", "password")
    uid = get_auth_facade().create_user(
        payload["firstName"], payload["lastName"], payload["email"], payload["password"]
    )
    return jsonify({"uid": uid}), 201


@bp.route("/login", methods=["POST"])
def login():
    """Sign in and return the token pair."""
    payload = _json_body("email", "password")
    session = get_auth_facade().log_in(payload["email"], payload["password"])
    return jsonify(_session_payload(session)), 200


@bp.route("/refresh", methods=["POST"])
def refresh():
    """Exchange a refresh token for a new ID token."""
    payload = _json_body("refreshToken")
    session = get_auth_facade().refresh_session(payload["refreshToken"])
    return jsonify(_session_payload(session)), 200


@bp.route("/logout", methods=["POST"])
@require_id_token
def logout():
    """Revoke every refresh token of the caller."""
    success = get_auth_facade().log_out(g.id_token)
    return jsonify({"success": success}), 200


@bp.route("/password-reset", methods=["POST"])
def password_reset():
    """Send a password-reset email."""
    payload = _json_body("email")
    get_auth_facade().send_password_reset(payload["email"])
    return jsonify({"message": "Password reset email sent"}), 202


@bp.route("/me", methods=["GET"])
@require_id_token
def me():
    """Return the uid the caller's ID token resolves to."""
    uid = get_auth_facade().resolve_identity(g.id_token)
    return jsonify({"uid": uid}), 200


@bp.route("/me", methods=["PATCH"])
@require_id_token
def update_me():
    """Update one attribute (email, password or displayName) of the caller."""
    payload = _json_body("field")
    value = payload.get("value")
    if not isinstance(value, str):
        abort(400, description="Missing required field(s): value")
    get_auth_facade().update_named_attribute(g.id_token, payload["field"], value)
    return "", 204


@bp.route("/me", methods=["DELETE"])
@require_id_token
def delete_me():
    """Delete the caller's identity."""
    get_auth_facade().delete_user(g.id_token)
    return "", 204
