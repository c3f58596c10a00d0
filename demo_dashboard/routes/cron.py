from flask import Blueprint, jsonify

from ..models.cleanup import sweep_rejected
from ..utils.decorators import cron_secret_required
from ..utils.error_logging import log_api_error
from ..utils.extensions import get_cache, get_dropbox

cron_bp = Blueprint("cron", __name__)


@cron_bp.route("/api/cron/cleanup-rejected", methods=["GET"])
@cron_secret_required
def cleanup_rejected():
    """Delete rejected demos older than a day. Called by the scheduler."""
    try:
        summary = sweep_rejected(get_dropbox(), get_cache())
    except Exception as e:
        log_api_error(e, "cron.cleanup_rejected")
        return jsonify({"status": "error", "error": str(e)}), 500
    return jsonify(summary)
