from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from app.extensions import db
from app.models import HSKLevel, Lesson
from app.utils.auth import role_required
from app.utils.i18n import get_locale, localized

bp = Blueprint("hsk", __name__)

TEXT_FIELDS = (
    "title_en", "title_sc", "title_tc",
    "description_en", "description_sc", "description_tc",
)


def serialize_level(level, locale, lesson_count=None):
    data = {
        "id": level.id,
        "level": level.level,
        "title": localized(level, "title", locale),
        "description": localized(level, "description", locale),
        "word_count": level.word_count,
        "locale": locale,
    }
    for field in TEXT_FIELDS:
        data[field] = getattr(level, field)
    if lesson_count is not None:
        data["lesson_count"] = lesson_count
    return data


@bp.route("/levels", methods=["GET"])
def list_levels():
    locale = get_locale()
    levels = HSKLevel.query.order_by(HSKLevel.level.asc()).all()

    lesson_counts = dict(
        db.session.query(Lesson.level, func.count(Lesson.id))
        .group_by(Lesson.level)
        .all()
    )

    return jsonify([
        serialize_level(level, locale, lesson_counts.get(level.level, 0))
        for level in levels
    ]), 200


@bp.route("/levels/<int:level>", methods=["GET"])
def get_level(level):
    hsk_level = HSKLevel.query.filter_by(level=level).first()
    if not hsk_level:
        return jsonify({"error": f"HSK level {level} not found"}), 404

    return jsonify(serialize_level(hsk_level, get_locale())), 200


@bp.route("/levels/<int:level>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_level(level):
    hsk_level = HSKLevel.query.filter_by(level=level).first()
    if not hsk_level:
        return jsonify({"error": f"HSK level {level} not found"}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Invalid or missing JSON body"}), 400

    for field in TEXT_FIELDS:
        if field in data:
            setattr(hsk_level, field, data[field])

    if "word_count" in data:
        try:
            hsk_level.word_count = int(data["word_count"])
        except (TypeError, ValueError):
            return jsonify({"error": "word_count must be a number"}), 400

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to update HSK level: {e}")
        return jsonify({"error": "Failed to update HSK level"}), 500

    return jsonify(serialize_level(hsk_level, get_locale())), 200
