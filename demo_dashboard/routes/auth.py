import logging

from flask import Blueprint, jsonify

from ..services.identity import IdentityError
from ..utils.decorators import _validate_auth, is_email_allowed, role_for_email

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/api/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@auth_bp.route("/api/validate-email", methods=["GET"])
def validate_email():
    """Tell the dashboard whether the signed-in user may use it, and as which role."""
    try:
        email = _validate_auth()
    except IdentityError as e:
        logger.error(f"Email validation failed: {e}")
        return jsonify({"authorized": False, "reason": "Validation error"}), 500

    if not email:
        return jsonify({"authorized": False, "reason": "Not authenticated"}), 401

    if not is_email_allowed(email):
        return jsonify({"authorized": False, "email": email, "reason": "Email not allowed"}), 403

    return jsonify(
        {
            "authorized": True,
            "email": email,
            "role": role_for_email(email),
            "reason": "Authenticated user",
        }
    )
