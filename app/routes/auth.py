from flask import Blueprint, request, jsonify, current_app
from app.extensions import db
from app.models import User
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, create_refresh_token
import re

bp = Blueprint('auth', __name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_LENGTH = (5, 10)
PASSWORD_LENGTH = (5, 10)


def valid_password(password):
    return bool(password) and PASSWORD_LENGTH[0] <= len(password) <= PASSWORD_LENGTH[1]


def issue_tokens(user):
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role}
    )
    refresh_token = create_refresh_token(identity=str(user.id))
    return access_token, refresh_token


@bp.route('/register', methods=['POST'])
def register():
    data = request.get_json() or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    # Error codes are translated by the frontend
    if not all([username, email, password]):
        return jsonify({"error": "MISSING_FIELDS"}), 400

    if not USERNAME_LENGTH[0] <= len(username) <= USERNAME_LENGTH[1]:
        return jsonify({"error": "USERNAME_LENGTH"}), 400

    if not valid_password(password):
        return jsonify({"error": "PASSWORD_LENGTH"}), 400

    if not EMAIL_RE.match(email):
        return jsonify({"error": "EMAIL_INVALID"}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({"error": "USERNAME_TAKEN"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "EMAIL_TAKEN"}), 400

    user = User(username=username, email=email, role="student")
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Registration error: {e}")
        return jsonify({"error": "SERVER_ERROR"}), 500

    return jsonify({
        "success": True,
        "user": {
            "id": user.id,
            "username": user.username,
            "email": user.email,
        }
    }), 201


@bp.route('/login', methods=['POST'])
def login():
    data = request.get_json()
    if not data:
        return jsonify({"error": "Missing JSON data"}), 400

    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        return jsonify({"error": "Invalid credentials"}), 401

    user = User.query.filter_by(username=username).first()

    if not user or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    access_token, refresh_token = issue_tokens(user)

    return jsonify({
        "access_token": access_token,
        "refresh_token": refresh_token,
        "user": user.to_dict()
    }), 200


@bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"error": "User not found"}), 404

    new_access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role}
    )
    return jsonify({"access_token": new_access_token}), 200


# Get current user
@bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict()), 200
