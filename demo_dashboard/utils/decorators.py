import hmac
import logging
from functools import wraps

from flask import current_app, g, jsonify, request

from ..services.identity import IdentityError
from .constants import ROLE_ASSISTANT, ROLE_OWNER
from .extensions import get_identity

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer ") :].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def _validate_auth():
    """Return the caller's email if their session token is valid, None otherwise.

    Raises IdentityError when the identity provider cannot be asked.
    """
    token = _bearer_token()
    if not token:
        return None
    return get_identity().resolve_email(token)


def allowed_emails():
    config = current_app.config
    return set(config["ALLOWED_EMAILS"]) | set(config["OWNER_EMAILS"]) | set(config["ASSISTANT_EMAILS"])


def is_email_allowed(email):
    allowed = allowed_emails()
    # An empty allow-list admits every authenticated user
    return not allowed or email in allowed


def role_for_email(email):
    if email in current_app.config["OWNER_EMAILS"]:
        return ROLE_OWNER
    return ROLE_ASSISTANT


def _authenticate():
    """Set ``g.user`` or return an error response."""
    try:
        email = _validate_auth()
    except IdentityError as e:
        logger.error(f"Identity provider error: {e}")
        return jsonify({"error": "Authentication service unavailable"}), 503

    if not email:
        return jsonify({"error": "Unauthorized"}), 401
    if not is_email_allowed(email):
        logger.warning(f"Rejected request from non allow-listed email {email}")
        return jsonify({"error": "Forbidden"}), 403

    g.user = {"email": email, "role": role_for_email(email)}
    return None


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error:
            return error
        return f(*args, **kwargs)

    return decorated_function


def owner_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error:
            return error

        if g.user["role"] != ROLE_OWNER:
            return jsonify({"error": "Label owner role required"}), 403

        return f(*args, **kwargs)

    return decorated_function


def cron_secret_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        header = request.headers.get("Authorization", "")
        if not secret or not hmac.compare_digest(header, f"Bearer {secret}"):
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function
