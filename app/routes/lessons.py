from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from botocore.exceptions import ClientError
from sqlalchemy import func
from app.extensions import db
from app.models import Lesson, LessonContent, CONTENT_TYPES, HSK_LEVELS
from app.utils.auth import role_required, current_user
from app.utils.access import can_access_lesson, purchased_levels
from app.utils.lesson_content import ContentAddFlow, Reorder, find_duplicate
from app.utils.media import get_audio_metadata, format_duration, format_size
from app.utils.storage import get_storage, validate_upload, discard, UploadError, UPLOAD_KINDS

bp = Blueprint("lessons", __name__)


def serialize_content(content, locked=False):
    return {
        "id": content.id,
        "lesson_id": content.lesson_id,
        "type": content.type,
        "title": content.title,
        "description": content.description,
        "order": content.order,
        # paid media stays hidden until the lesson is unlocked
        "url": None if locked else content.url,
        "youtube_id": None if locked else content.youtube_id,
        "original_name": content.original_name,
        "duration": format_duration(content.duration) if content.duration else None,
        "size": format_size(content.size) if content.size else None,
        "created_at": content.created_at.isoformat() if content.created_at else None,
    }


def serialize_lesson(lesson, locked, content_count=None):
    return {
        "id": lesson.id,
        "title": lesson.title,
        "description": lesson.description,
        "level": lesson.level,
        "order": lesson.order,
        "is_free": lesson.is_free,
        "published": lesson.published,
        "locked": locked,
        "content_count": content_count,
        "created_at": lesson.created_at.isoformat() if lesson.created_at else None,
    }


def _reorder_from_payload(rows, data):
    """Build the requested order from either a full id list or a single drag move."""
    if not isinstance(data, dict):
        raise ValueError("Order payload must be a JSON object")

    reorder = Reorder([row.id for row in rows])

    if data.get("ids") is not None:
        if not isinstance(data["ids"], list):
            raise ValueError("ids must be a list")
        reorder.apply_ids(int(item_id) for item_id in data["ids"])
    elif "old_index" in data and "new_index" in data:
        reorder.move(int(data["old_index"]), int(data["new_index"]))
    else:
        raise ValueError("Provide either ids or old_index and new_index")
    return reorder


def _persist_reorder(rows, reorder, label):
    """Write the dense 1-based order of ``rows`` in a single transaction."""
    by_id = {row.id: row for row in rows}
    try:
        for item_id, order in reorder.pending_orders():
            if by_id[item_id].order != order:
                by_id[item_id].order = order
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Reorder {label} error: {e}")
        reorder.revert()
        return jsonify({
            "error": f"Failed to reorder {label}",
            "order": [{"id": item_id, "order": order} for item_id, order in reorder.pending_orders()]
        }), 500

    reorder.commit()
    return jsonify({
        "success": True,
        "order": [{"id": item_id, "order": order} for item_id, order in reorder.pending_orders()]
    }), 200


# -----------------------------------
# Lessons
# -----------------------------------
@bp.route("/level/<int:level>", methods=["GET"])
def list_lessons(level):
    user = current_user()
    is_admin = bool(user and user.is_admin)

    query = Lesson.query.filter_by(level=level)
    if not is_admin:
        query = query.filter_by(published=True)
    lessons = query.order_by(Lesson.order.asc()).all()

    content_counts = dict(
        db.session.query(LessonContent.lesson_id, func.count(LessonContent.id))
        .filter(LessonContent.lesson_id.in_([l.id for l in lessons]))
        .group_by(LessonContent.lesson_id)
        .all()
    )
    levels = purchased_levels(user)

    return jsonify([
        serialize_lesson(
            l,
            locked=not can_access_lesson(user, l, levels),
            content_count=content_counts.get(l.id, 0)
        )
        for l in lessons
    ]), 200


@bp.route("/<int:lesson_id>", methods=["GET"])
def get_lesson(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    user = current_user()

    if not lesson.published and not (user and user.is_admin):
        return jsonify({"error": "Lesson not found"}), 404

    locked = not can_access_lesson(user, lesson)
    lesson_data = serialize_lesson(lesson, locked, content_count=len(lesson.contents))
    lesson_data["contents"] = [serialize_content(c, locked) for c in lesson.contents]

    return jsonify(lesson_data), 200


@bp.route("/", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_lesson():
    data = request.get_json() or {}
    title = (data.get("title") or "").strip()
    level = data.get("level")

    if not title:
        return jsonify({"error": "Missing title"}), 400

    if level not in HSK_LEVELS:
        return jsonify({"error": "level must be between 1 and 6"}), 400

    order = data.get("order")
    if order is None:
        max_order = db.session.query(func.max(Lesson.order)).filter_by(level=level).scalar()
        order = (max_order or 0) + 1

    lesson = Lesson(
        title=title,
        description=data.get("description"),
        level=level,
        order=order,
        is_free=bool(data.get("is_free", False)),
        published=bool(data.get("published", True))
    )

    try:
        db.session.add(lesson)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to create lesson: {e}")
        return jsonify({"error": "Failed to create lesson"}), 500

    return jsonify({"message": "Lesson created", "lesson": serialize_lesson(lesson, False, 0)}), 201


@bp.route("/<int:lesson_id>", methods=["PATCH"])
@jwt_required()
@role_required("admin")
def update_lesson(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    data = request.get_json() or {}

    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            return jsonify({"error": "Missing title"}), 400
        lesson.title = title
    if "description" in data:
        lesson.description = data.get("description")
    if "is_free" in data:
        lesson.is_free = bool(data["is_free"])
    if "published" in data:
        lesson.published = bool(data["published"])

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to update lesson: {e}")
        return jsonify({"error": "Failed to update lesson"}), 500

    return jsonify({"message": "Lesson updated", "lesson": serialize_lesson(lesson, False)}), 200


@bp.route("/<int:lesson_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_lesson(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    file_urls = [c.url for c in lesson.contents if c.url]

    try:
        db.session.delete(lesson)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Delete lesson error: {e}")
        return jsonify({"error": "Failed to delete lesson"}), 500

    for url in file_urls:
        discard(url)

    return jsonify({"message": "Lesson deleted successfully", "id": lesson_id}), 200


@bp.route("/level/<int:level>/order", methods=["PUT"])
@jwt_required()
@role_required("admin")
def reorder_lessons(level):
    lessons = Lesson.query.filter_by(level=level).order_by(Lesson.order.asc(), Lesson.id.asc()).all()
    try:
        reorder = _reorder_from_payload(lessons, request.get_json() or {})
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return _persist_reorder(lessons, reorder, "lessons")


# -----------------------------------
# Lesson contents
# -----------------------------------
@bp.route("/<int:lesson_id>/contents/check-duplicate", methods=["POST"])
@jwt_required()
@role_required("admin")
def check_duplicate(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    filename = (request.get_json() or {}).get("filename")
    if not filename:
        return jsonify({"error": "filename is required"}), 400

    duplicate = find_duplicate(lesson.contents, filename)
    return jsonify({
        "duplicate": serialize_content(duplicate) if duplicate else None
    }), 200


@bp.route("/<int:lesson_id>/contents", methods=["POST"])
@jwt_required()
@role_required("admin")
def add_content(lesson_id):
    """
    Add a video (YouTube id) or upload an audio/doc file to a lesson.

    Uploading a file whose name matches an existing item answers 409 with
    that item; resending with ``overwrite_id`` replaces its file in place.
    """
    lesson = Lesson.query.get_or_404(lesson_id)

    content_type = request.form.get("type")
    if content_type not in CONTENT_TYPES:
        return jsonify({"error": f"Invalid content type. Must be one of {list(CONTENT_TYPES)}"}), 400

    title = request.form.get("title")
    description = request.form.get("description")
    overwrite_id = request.form.get("overwrite_id", type=int)

    flow = ContentAddFlow(lesson.contents, content_type)

    if content_type == "video":
        return _add_video(lesson, flow, title, description)

    file = request.files.get("file")
    try:
        validate_upload(file, content_type)
    except UploadError as e:
        return jsonify({"error": str(e)}), 400

    duplicate = flow.choose_file(file.filename)
    if duplicate is not None:
        if overwrite_id is None:
            return jsonify({
                "error": "DUPLICATE_FILE",
                "duplicate": serialize_content(duplicate)
            }), 409
        if overwrite_id != duplicate.id:
            return jsonify({"error": "Overwrite target does not hold this file"}), 400
        flow.confirm()
    elif overwrite_id is not None:
        return jsonify({"error": "Overwrite target does not hold this file"}), 400

    submission = flow.submit(title=title, description=description)
    if not (submission.title or "").strip():
        flow.fail()
        return jsonify({"error": "Missing title"}), 400

    try:
        stored = get_storage().save(file, UPLOAD_KINDS[content_type][1])
    except (OSError, ClientError) as e:
        flow.fail()
        current_app.logger.error(f"Upload error: {e}")
        return jsonify({"error": "Upload failed"}), 500

    duration, size = None, stored.size
    if content_type == "audio" and stored.path:
        duration, size = get_audio_metadata(stored.path)

    superseded_url = None
    try:
        if flow.is_update:
            content = db.session.get(LessonContent, submission.overwrite_id)
            superseded_url = content.url
            # order and type stay as they are
            content.url = stored.url
            content.original_name = stored.original_name
            content.title = submission.title
            content.description = submission.description or None
            content.duration = duration
            content.size = size
        else:
            content = LessonContent(
                lesson=lesson,
                type=content_type,
                title=submission.title,
                description=submission.description or None,
                url=stored.url,
                original_name=stored.original_name,
                order=submission.order,
                duration=duration,
                size=size
            )
            db.session.add(content)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        discard(stored.url)
        flow.fail()
        current_app.logger.error(f"Failed to save content: {e}")
        return jsonify({"error": "Failed to save content"}), 500

    flow.finish()
    if superseded_url and superseded_url != stored.url:
        discard(superseded_url)

    if submission.overwrite_id:
        return jsonify({"message": "Content overwritten", "content": serialize_content(content)}), 200
    return jsonify({"message": "Content added", "content": serialize_content(content)}), 201


def _add_video(lesson, flow, title, description):
    youtube_id = (request.form.get("youtube_id") or "").strip()
    if not youtube_id:
        return jsonify({"error": "youtube_id is required for video content"}), 400
    if not (title or "").strip():
        return jsonify({"error": "Missing title"}), 400

    submission = flow.submit(title=title, description=description)
    content = LessonContent(
        lesson=lesson,
        type="video",
        title=submission.title,
        description=submission.description or None,
        youtube_id=youtube_id,
        order=submission.order
    )

    try:
        db.session.add(content)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        flow.fail()
        current_app.logger.error(f"Failed to create content: {e}")
        return jsonify({"error": "Failed to create content"}), 500

    flow.finish()
    return jsonify({"message": "Content added", "content": serialize_content(content)}), 201


@bp.route("/contents/<int:content_id>", methods=["PATCH"])
@jwt_required()
@role_required("admin")
def update_content(content_id):
    content = LessonContent.query.get_or_404(content_id)
    data = request.get_json() or {}

    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            return jsonify({"error": "Missing title"}), 400
        content.title = title
    if "description" in data:
        content.description = data.get("description") or None

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to update content: {e}")
        return jsonify({"error": "Failed to update content"}), 500

    return jsonify({"message": "Content updated", "content": serialize_content(content)}), 200


@bp.route("/contents/<int:content_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_content(content_id):
    content = LessonContent.query.get_or_404(content_id)
    url = content.url

    try:
        db.session.delete(content)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to delete content: {e}")
        return jsonify({"error": "Failed to delete content"}), 500

    discard(url)
    return jsonify({"message": "Content deleted", "id": content_id}), 200


@bp.route("/<int:lesson_id>/contents/order", methods=["PUT"])
@jwt_required()
@role_required("admin")
def reorder_contents(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    contents = list(lesson.contents)

    try:
        reorder = _reorder_from_payload(contents, request.get_json() or {})
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return _persist_reorder(contents, reorder, "content")
