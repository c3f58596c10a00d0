from flask import Blueprint, g, jsonify, request

from ..models.demos import get_demos
from ..models.review import DemoNotFound, PartialMoveError, perform_action
from ..models.workflow import InvalidTransition, UnknownAction
from ..utils.constants import ROLE_ASSISTANT, ROLE_OWNER
from ..utils.decorators import login_required, owner_required
from ..utils.error_logging import log_api_error
from ..utils.extensions import get_cache, get_dropbox, get_mailer

demos_bp = Blueprint("demos", __name__)


@demos_bp.route("/api/demos", methods=["GET"])
@login_required
def list_demos():
    """All demos across the four status folders, newest first."""
    try:
        result = get_demos(get_dropbox(), get_cache())
    except Exception as e:
        log_api_error(e, "demos.list")
        return jsonify({"error": "Failed to fetch demos", "details": str(e)}), 500
    return jsonify(result)


def _handle_action(role, demo_id):
    data = request.get_json(silent=True) or {}
    action = data.get("action")

    try:
        result = perform_action(get_dropbox(), get_cache(), get_mailer(), role, demo_id, action)
    except UnknownAction as e:
        return jsonify({"error": str(e)}), 400
    except InvalidTransition as e:
        return jsonify({"error": str(e), "status": e.status}), 409
    except DemoNotFound as e:
        return jsonify({"error": str(e)}), 404
    except PartialMoveError as e:
        log_api_error(e, f"demos.{role}_action")
        return (
            jsonify(
                {
                    "error": "Demo files were only partially moved",
                    "details": str(e),
                    "audio_path": e.audio_path,
                    "metadata_path": e.metadata_path,
                }
            ),
            500,
        )
    except Exception as e:
        log_api_error(e, f"demos.{role}_action")
        return jsonify({"error": "Failed to perform action on demo", "details": str(e)}), 500

    result["performed_by"] = g.user["email"]
    return jsonify(result)


@demos_bp.route("/api/demos/<demo_id>/assistant-action", methods=["POST"])
@login_required
def assistant_action(demo_id):
    return _handle_action(ROLE_ASSISTANT, demo_id)


@demos_bp.route("/api/demos/<demo_id>/owner-action", methods=["POST"])
@owner_required
def owner_action(demo_id):
    return _handle_action(ROLE_OWNER, demo_id)
