from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import func, extract
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from app.extensions import db
from app.models import User, Lesson, Bundle, BundleLevel, LevelPrice, Purchase, HSK_LEVELS
from app.utils.auth import role_required
from app.utils.i18n import localized

bp = Blueprint("admin", __name__)

BUNDLE_TEXT_FIELDS = (
    "name_en", "name_sc", "name_tc",
    "description_en", "description_sc", "description_tc",
)


def serialize_bundle(b, locale=None):
    data = {
        "id": b.id,
        "code": b.code,
        "icon": b.icon,
        "price": b.price,
        "is_active": b.is_active,
        "sort_order": b.sort_order,
        "levels": b.level_numbers,
    }
    for field in BUNDLE_TEXT_FIELDS:
        data[field] = getattr(b, field)
    if locale:
        data["name"] = localized(b, "name", locale)
        data["description"] = localized(b, "description", locale)
    return data


def _parse_levels(raw):
    levels = sorted({int(level) for level in (raw or [])})
    if any(level not in HSK_LEVELS for level in levels):
        raise ValueError("levels must be between 1 and 6")
    return levels


def _apply_bundle_fields(bundle, data):
    for field in ("name_en", "name_sc", "name_tc"):
        if field in data:
            setattr(bundle, field, data[field])
    for field in ("description_en", "description_sc", "description_tc", "icon"):
        if field in data:
            setattr(bundle, field, data[field] or None)
    if "price" in data:
        bundle.price = float(data.get("price") or 0)


@bp.route("/overview", methods=["GET"])
@jwt_required()
@role_required("admin")
def analytics_overview():
    """Return analytics summary for admin dashboard"""

    total_students = User.query.filter_by(role="student").count()
    total_lessons = Lesson.query.count()
    total_purchases = Purchase.query.count()
    total_revenue = db.session.query(func.sum(Purchase.amount)).scalar() or 0

    # === Monthly Revenue ===
    month = extract("month", Purchase.created_at).label("month")
    monthly = (
        db.session.query(month, func.sum(Purchase.amount).label("revenue"))
        .group_by(month)
        .order_by(month)
        .all()
    )

    monthly_revenue = [
        {"month": datetime(2000, int(m), 1).strftime("%b"), "revenue": float(r)}
        for m, r in monthly
    ]

    # === Purchases by product ===
    by_product = (
        db.session.query(
            Purchase.product_type,
            Purchase.product_id,
            func.count(Purchase.id),
            func.sum(Purchase.amount)
        )
        .group_by(Purchase.product_type, Purchase.product_id)
        .all()
    )

    return jsonify({
        "statsData": [
            {"label": "Students", "value": total_students, "icon": "Users"},
            {"label": "Lessons", "value": total_lessons, "icon": "BookOpen"},
            {"label": "Purchases", "value": total_purchases, "icon": "ShoppingCart"},
            {"label": "Revenue", "value": float(total_revenue), "icon": "DollarSign"},
        ],
        "monthlyRevenue": monthly_revenue,
        "revenueByProduct": [
            {"product_type": t, "product_id": p, "count": int(c), "revenue": float(r or 0)}
            for t, p, c, r in by_product
        ],
    }), 200


# -----------------------------------
# Prices
# -----------------------------------
@bp.route("/prices", methods=["GET"])
@jwt_required()
@role_required("admin")
def get_prices():
    level_prices = {lp.level: lp.price for lp in LevelPrice.query.order_by(LevelPrice.level.asc()).all()}

    # every level shows up, unpriced ones as 0
    for level in HSK_LEVELS:
        level_prices.setdefault(level, 0)

    bundles = Bundle.query.order_by(Bundle.sort_order.asc()).all()

    return jsonify({
        "level_prices": {str(level): level_prices[level] for level in sorted(level_prices)},
        "bundles": [serialize_bundle(b) for b in bundles]
    }), 200


@bp.route("/prices/levels", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_level_prices():
    data = request.get_json(silent=True) or {}
    prices = data.get("prices")

    if not prices or not isinstance(prices, dict):
        return jsonify({"error": "Invalid prices data"}), 400

    try:
        parsed = {int(level): float(price) for level, price in prices.items()}
    except (TypeError, ValueError):
        return jsonify({"error": "Invalid prices data"}), 400

    if any(level not in HSK_LEVELS for level in parsed):
        return jsonify({"error": "levels must be between 1 and 6"}), 400

    # upsert all levels in one transaction
    try:
        for level, price in parsed.items():
            level_price = LevelPrice.query.filter_by(level=level).first()
            if level_price:
                level_price.price = price
            else:
                db.session.add(LevelPrice(level=level, price=price))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating level prices: {e}")
        return jsonify({"error": "Failed to update prices"}), 500

    return jsonify({"success": True}), 200


# -----------------------------------
# Bundles
# -----------------------------------
@bp.route("/bundles", methods=["GET"])
@jwt_required()
@role_required("admin")
def list_bundles():
    bundles = Bundle.query.order_by(Bundle.sort_order.asc()).all()
    return jsonify([serialize_bundle(b) for b in bundles]), 200


@bp.route("/bundles", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_bundle():
    data = request.get_json(silent=True) or {}

    if not all(data.get(field) for field in ("code", "name_en", "name_sc", "name_tc")):
        return jsonify({"error": "Missing required fields"}), 400

    if Bundle.query.filter_by(code=data["code"]).first():
        return jsonify({"error": "Bundle code already exists"}), 409

    try:
        levels = _parse_levels(data.get("levels"))
        bundle = Bundle(code=data["code"])
        _apply_bundle_fields(bundle, data)
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    max_sort = db.session.query(func.max(Bundle.sort_order)).scalar()
    bundle.sort_order = (max_sort or 0) + 1
    bundle.levels = [BundleLevel(level=level) for level in levels]

    try:
        db.session.add(bundle)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Bundle code already exists"}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating bundle: {e}")
        return jsonify({"error": "Failed to create bundle"}), 500

    return jsonify(serialize_bundle(bundle)), 201


@bp.route("/bundles/<int:bundle_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_bundle(bundle_id):
    bundle = Bundle.query.get_or_404(bundle_id)
    data = request.get_json(silent=True) or {}

    # purchases reference bundles by code
    if "code" in data and data["code"] != bundle.code:
        return jsonify({"error": "Bundle code cannot be changed"}), 400

    try:
        _apply_bundle_fields(bundle, data)
        if "levels" in data:
            levels = _parse_levels(data.get("levels"))
            # replace the level set; delete-orphan removes the old rows
            bundle.levels = []
            db.session.flush()
            bundle.levels = [BundleLevel(level=level) for level in levels]
    except (TypeError, ValueError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    if "is_active" in data:
        bundle.is_active = bool(data["is_active"])

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating bundle: {e}")
        return jsonify({"error": "Failed to update bundle"}), 500

    return jsonify(serialize_bundle(bundle)), 200


@bp.route("/bundles/<int:bundle_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_bundle(bundle_id):
    bundle = Bundle.query.get_or_404(bundle_id)

    try:
        db.session.delete(bundle)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting bundle: {e}")
        return jsonify({"error": "Failed to delete bundle"}), 500

    return jsonify({"success": True}), 200
