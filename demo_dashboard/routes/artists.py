from flask import Blueprint, jsonify, request

from ..models.artists import artist_registry, clean_artist
from ..models.registry import RecordNotFound
from ..services.dropbox import DropboxConflict
from ..utils.decorators import login_required
from ..utils.error_logging import log_api_error
from ..utils.extensions import get_dropbox
from ..utils.validation import ValidationError

artists_bp = Blueprint("artists", __name__)

CONFLICT_MESSAGE = "Artists were changed by someone else, reload and try again"


@artists_bp.route("/api/artists", methods=["GET"])
@login_required
def list_artists():
    try:
        artists = artist_registry(get_dropbox()).list()
    except Exception as e:
        log_api_error(e, "artists.list")
        return jsonify({"error": "Failed to fetch artists", "details": str(e)}), 500
    return jsonify({"artists": artists})


@artists_bp.route("/api/artists", methods=["POST"])
@login_required
def add_artist():
    data = request.get_json(silent=True) or {}
    try:
        fields = clean_artist(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        artist = artist_registry(get_dropbox()).add(fields)
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "artists.add")
        return jsonify({"error": "Failed to add artist", "details": str(e)}), 500

    return jsonify({"success": True, "artist": artist})


@artists_bp.route("/api/artists", methods=["PUT"])
@login_required
def update_artist():
    data = request.get_json(silent=True) or {}
    artist_id = data.get("id")
    if not artist_id:
        return jsonify({"error": "id parameter is required"}), 400

    try:
        fields = clean_artist(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        artist = artist_registry(get_dropbox()).replace(artist_id, fields)
    except RecordNotFound:
        return jsonify({"error": "Artist not found"}), 404
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "artists.update")
        return jsonify({"error": "Failed to update artist", "details": str(e)}), 500

    return jsonify({"success": True, "artist": artist})


@artists_bp.route("/api/artists", methods=["DELETE"])
@login_required
def delete_artist():
    artist_id = request.args.get("id")
    if not artist_id:
        return jsonify({"error": "id parameter is required"}), 400

    try:
        artist_registry(get_dropbox()).delete(artist_id)
    except RecordNotFound:
        return jsonify({"error": "Artist not found"}), 404
    except DropboxConflict:
        return jsonify({"error": CONFLICT_MESSAGE}), 409
    except Exception as e:
        log_api_error(e, "artists.delete")
        return jsonify({"error": "Failed to delete artist", "details": str(e)}), 500

    return jsonify({"success": True})
