from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.extensions import db
from app.models import User
from app.routes.auth import valid_password
from botocore.exceptions import ClientError
from app.utils.storage import get_storage, validate_upload, discard, UploadError

bp = Blueprint("profile", __name__)


def _load_user():
    return db.session.get(User, int(get_jwt_identity()))


@bp.route("/update", methods=["POST"])
@jwt_required()
def update_profile():
    user = _load_user()
    if not user:
        return jsonify({"error": "USER_NOT_FOUND"}), 404

    data = request.get_json() or {}
    user.display_name = (data.get("display_name") or "").strip() or None
    db.session.commit()

    return jsonify({
        "success": True,
        "user": {
            "id": user.id,
            "display_name": user.display_name,
            "avatar": user.avatar,
        }
    }), 200


@bp.route("/password", methods=["POST"])
@jwt_required()
def change_password():
    user = _load_user()
    if not user:
        return jsonify({"error": "USER_NOT_FOUND"}), 404

    data = request.get_json() or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password")

    if not valid_password(new_password):
        return jsonify({"error": "PASSWORD_LENGTH"}), 400

    if not user.check_password(current_password):
        return jsonify({"error": "WRONG_PASSWORD"}), 400

    user.set_password(new_password)
    db.session.commit()

    return jsonify({"success": True}), 200


@bp.route("/avatar", methods=["POST"])
@jwt_required()
def upload_avatar():
    user = _load_user()
    if not user:
        return jsonify({"error": "USER_NOT_FOUND"}), 404

    file = request.files.get("file")
    try:
        validate_upload(file, "avatar")
    except UploadError as e:
        return jsonify({"error": str(e)}), 400

    try:
        stored = get_storage().save(file, "avatars")
    except (OSError, ClientError) as e:
        current_app.logger.error(f"Avatar upload error: {e}")
        return jsonify({"error": "Failed to upload avatar"}), 500
    old_avatar = user.avatar

    try:
        user.avatar = stored.url
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Avatar upload error: {e}")
        # the row still points at the old avatar, drop the new file
        discard(stored.url)
        return jsonify({"error": "Failed to upload avatar"}), 500

    if old_avatar and old_avatar != stored.url:
        discard(old_avatar)

    return jsonify({"success": True, "url": stored.url}), 200
