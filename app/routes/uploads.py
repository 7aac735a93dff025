import os
from flask import Blueprint, request, jsonify, current_app, send_from_directory
from flask_jwt_extended import jwt_required
from botocore.exceptions import ClientError
from app.utils.auth import role_required
from app.utils.storage import get_storage, validate_upload, UploadError, UPLOAD_KINDS

bp = Blueprint("uploads", __name__)

LESSON_UPLOAD_TYPES = ("audio", "doc")


@bp.route("/", methods=["POST"])
@jwt_required()
@role_required("admin")
def upload_file():
    file = request.files.get("file")
    upload_type = request.form.get("type")

    if not file:
        return jsonify({"error": "No file provided"}), 400

    if upload_type not in LESSON_UPLOAD_TYPES:
        return jsonify({"error": "Invalid file type"}), 400

    try:
        validate_upload(file, upload_type)
    except UploadError as e:
        return jsonify({"error": str(e)}), 400

    try:
        stored = get_storage().save(file, UPLOAD_KINDS[upload_type][1])
    except (OSError, ClientError) as e:
        current_app.logger.error(f"Upload error: {e}")
        return jsonify({"error": "Upload failed"}), 500

    return jsonify({
        "success": True,
        "url": stored.url,
        "original_name": stored.original_name
    }), 201


@bp.route("/<path:filename>", methods=["GET"])
def serve_upload(filename):
    directory = os.path.abspath(os.path.join(current_app.config["UPLOAD_ROOT"], "uploads"))
    return send_from_directory(directory, filename)
