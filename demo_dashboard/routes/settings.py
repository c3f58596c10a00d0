from flask import Blueprint, jsonify, request

from ..services.settings import get_demo_submission_enabled, set_demo_submission_enabled
from ..utils.decorators import login_required
from ..utils.error_logging import log_api_error
from ..utils.extensions import get_cache

settings_bp = Blueprint("settings", __name__)


@settings_bp.route("/api/settings/demo-submission-enabled", methods=["GET"])
@login_required
def demo_submission_enabled():
    try:
        enabled = get_demo_submission_enabled(get_cache())
    except Exception as e:
        log_api_error(e, "settings.get")
        return jsonify({"error": "Failed to fetch setting", "details": str(e)}), 500
    return jsonify({"enabled": enabled})


@settings_bp.route("/api/settings/demo-submission-enabled", methods=["PATCH"])
@login_required
def update_demo_submission_enabled():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("enabled"), bool):
        return jsonify({"error": 'Invalid payload. "enabled" must be a boolean.'}), 400

    try:
        enabled = set_demo_submission_enabled(get_cache(), data["enabled"])
    except Exception as e:
        log_api_error(e, "settings.update")
        return jsonify({"error": "Failed to update setting", "details": str(e)}), 500
    return jsonify({"enabled": enabled})
