import requests
from flask import Blueprint, request, jsonify, current_app, render_template
from flask_jwt_extended import jwt_required, get_jwt_identity
from sqlalchemy.exc import IntegrityError
from app.extensions import db
from app.models import User, Bundle, BundleLevel, LevelPrice, Purchase, HSK_LEVELS
from app.routes.admin import serialize_bundle
from app.utils.i18n import get_locale
from app.utils.mailer import send_email

bp = Blueprint("payments", __name__)

PRODUCT_TYPES = ("level", "bundle")
PRICE_TOLERANCE = 0.01


class PayPalError(Exception):
    """PayPal could not be reached or answered with an error."""


def paypal_access_token():
    response = requests.post(
        f"{current_app.config['PAYPAL_BASE_URL']}/v1/oauth2/token",
        auth=(current_app.config["PAYPAL_CLIENT_ID"], current_app.config["PAYPAL_CLIENT_SECRET"]),
        data={"grant_type": "client_credentials"},
        timeout=10
    )
    if response.status_code != 200:
        raise PayPalError(f"PayPal auth failed: {response.text}")
    return response.json()["access_token"]


def fetch_paypal_order(order_id):
    """Look an order up on PayPal. Raises PayPalError when PayPal is unavailable."""
    try:
        token = paypal_access_token()
        response = requests.get(
            f"{current_app.config['PAYPAL_BASE_URL']}/v2/checkout/orders/{order_id}",
            headers={"Authorization": f"Bearer {token}"},
            timeout=10
        )
    except requests.exceptions.RequestException as e:
        raise PayPalError(str(e)) from e

    if response.status_code == 404:
        return None
    if response.status_code != 200:
        raise PayPalError(f"PayPal order lookup failed: {response.text}")
    return response.json()


def paypal_enabled():
    return bool(current_app.config.get("PAYPAL_CLIENT_ID") and current_app.config.get("PAYPAL_CLIENT_SECRET"))


def level_price(level):
    """Stored price of an HSK level; a missing or zero price means the default."""
    stored = LevelPrice.query.filter_by(level=level).first()
    if stored and stored.price:
        return stored.price
    return current_app.config["DEFAULT_LEVEL_PRICE"]


def product_price(product_type, product_id):
    """Price of a purchasable product, or None when there is no such product."""
    if product_type == "level":
        if not product_id.isdigit() or int(product_id) not in HSK_LEVELS:
            return None
        return level_price(int(product_id))

    bundle = Bundle.query.filter_by(code=product_id, is_active=True).first()
    return bundle.price if bundle else None


def paid_amount(order):
    """(value, currency) of the first purchase unit of a PayPal order."""
    units = order.get("purchase_units") or [{}]
    amount = units[0].get("amount") or {}
    value = amount.get("value")
    return (float(value) if value is not None else None), amount.get("currency_code")


def send_receipt(user, purchase):
    text_body = render_template("emails/purchase_receipt.txt", user=user, purchase=purchase)
    html_body = render_template("emails/purchase_receipt.html", user=user, purchase=purchase)
    try:
        send_email(
            to=user.email,
            subject="Your purchase - Nancy Teaches Mandarin",
            body=text_body,
            html=html_body
        )
    except Exception as e:
        # the purchase is already recorded, a missing receipt is not fatal
        current_app.logger.error(f"Receipt email error: {e}")


@bp.route("/pricing/<int:level>", methods=["GET"])
def get_pricing(level):
    bundles = (
        Bundle.query
        .filter(Bundle.is_active.is_(True))
        .filter(Bundle.levels.any(BundleLevel.level == level))
        .order_by(Bundle.sort_order.asc())
        .all()
    )

    all_level_prices = LevelPrice.query.order_by(LevelPrice.level.asc()).all()
    locale = get_locale()

    return jsonify({
        "level": level,
        "level_price": level_price(level),
        "bundles": [serialize_bundle(b, locale) for b in bundles],
        "all_level_prices": [{"level": lp.level, "price": lp.price} for lp in all_level_prices]
    }), 200


@bp.route("/verify", methods=["POST"])
@jwt_required()
def verify_purchase():
    """Record a purchase once the PayPal checkout widget reports an approved order."""
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"success": False, "message": "User not authenticated"}), 401

    data = request.get_json() or {}
    order_id = (data.get("order_id") or "").strip()
    product_type = data.get("product_type")
    product_id = str(data.get("product_id") or "").strip()

    if product_type not in PRODUCT_TYPES or not product_id:
        return jsonify({"success": False, "message": "Invalid product"}), 400

    existing_purchase = Purchase.query.filter_by(
        user_id=user.id, product_type=product_type, product_id=product_id
    ).first()
    if existing_purchase:
        return jsonify({"success": True, "message": "Already purchased"}), 200

    if not order_id:
        return jsonify({"success": False, "message": "Invalid Order ID"}), 400

    price = product_price(product_type, product_id)
    if price is None:
        return jsonify({"success": False, "message": "Invalid product"}), 400

    if Purchase.query.filter_by(paypal_order_id=order_id).first():
        return jsonify({"success": False, "message": "Order already used"}), 409

    amount = price

    if paypal_enabled():
        try:
            order = fetch_paypal_order(order_id)
        except PayPalError as e:
            current_app.logger.error(f"PayPal verification failed: {e}")
            return jsonify({"success": False, "message": "Could not reach PayPal. Try again."}), 502

        if not order or order.get("status") != "COMPLETED":
            return jsonify({"success": False, "message": "Payment not completed"}), 400

        try:
            paid, currency = paid_amount(order)
        except (AttributeError, TypeError, ValueError):
            paid, currency = None, None
        if paid is None or abs(paid - price) > PRICE_TOLERANCE or currency not in (None, "USD"):
            current_app.logger.warning(f"Order {order_id} paid {paid} {currency}, expected {price}")
            return jsonify({"success": False, "message": "Amount does not match price"}), 400
        amount = paid

    purchase = Purchase(
        user_id=user.id,
        product_type=product_type,
        product_id=product_id,
        amount=amount,
        paypal_order_id=order_id
    )

    try:
        db.session.add(purchase)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "message": "Order already used"}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Purchase verification failed: {e}")
        return jsonify({"success": False, "message": "Internal Server Error"}), 500

    send_receipt(user, purchase)

    return jsonify({"success": True, "purchase_id": purchase.id}), 201
