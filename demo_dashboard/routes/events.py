from flask import Blueprint, jsonify, request

from ..models.events import clean_event, event_registry
from ..models.registry import RecordNotFound
from ..services.dropbox import DropboxConflict
from ..utils.decorators import login_required
from ..utils.error_logging import log_api_error
from ..utils.extensions import get_dropbox
from ..utils.validation import ValidationError

events_bp = Blueprint("events", __name__)

CONFLICT_MESSAGE = "Events were changed by someone else, reload and try again"


@events_bp.route("/api/events", methods=["GET"])
@login_required
def list_events():
    try:
        events = event_registry(get_dropbox()).list()
    except Exception as e:
        log_api_error(e, "events.list")
        return jsonify({"error": "Failed to fetch events", "details": str(e)}), 500
    return jsonify({"events": events})


@events_bp.route("/api/events", methods=["POST"])
@login_required
def add_event():
    data = request.get_json(silent=True) or {}
    try:
        fields = clean_event(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        event = event_registry(get_dropbox()).add(fields)
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "events.add")
        return jsonify({"error": "Failed to add event", "details": str(e)}), 500

    return jsonify({"success": True, "event": event})


@events_bp.route("/api/events", methods=["PUT"])
@login_required
def update_event():
    data = request.get_json(silent=True) or {}
    event_id = data.get("id")
    if not event_id:
        return jsonify({"error": "id parameter is required"}), 400

    try:
        fields = clean_event(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        event = event_registry(get_dropbox()).replace(event_id, fields)
    except RecordNotFound:
        return jsonify({"error": "Event not found"}), 404
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "events.update")
        return jsonify({"error": "Failed to update event", "details": str(e)}), 500

    return jsonify({"success": True, "event": event})


@events_bp.route("/api/events", methods=["DELETE"])
@login_required
def delete_event():
    event_id = request.args.get("id")
    if not event_id:
        return jsonify({"error": "id parameter is required"}), 400

    try:
        event_registry(get_dropbox()).delete(event_id)
    except RecordNotFound:
        return jsonify({"error": "Event not found"}), 404
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "events.delete")
        return jsonify({"error": "Failed to delete event", "details": str(e)}), 500

    return jsonify({"success": True})
