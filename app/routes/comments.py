from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.extensions import db
from app.models import Post, Comment, PostLike, CommentLike, Lesson, User
from app.utils.auth import current_user
from app.utils.moderation import filter_keywords

bp = Blueprint("comments", __name__)


def serialize_author(user):
    return {
        "id": user.id,
        "display_name": user.display_name,
        "username": user.username,
        "avatar": user.avatar,
        "role": user.role,
    } if user else None


def serialize_comment(c, current_user_id=None):
    return {
        "id": c.id,
        "post_id": c.post_id,
        "content": c.content,
        "user": serialize_author(c.user),
        "created_at": c.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        "like_count": len(c.likes),
        "is_liked_by_current_user": bool(current_user_id) and any(
            like.user_id == current_user_id for like in c.likes
        ),
    }


def serialize_post(p, current_user_id=None):
    return {
        "id": p.id,
        "lesson_id": p.lesson_id,
        "content": p.content,
        "user": serialize_author(p.user),
        "created_at": p.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        "like_count": len(p.likes),
        "is_liked_by_current_user": bool(current_user_id) and any(
            like.user_id == current_user_id for like in p.likes
        ),
        "comments": [serialize_comment(c, current_user_id) for c in p.comments],
    }


def _author():
    """The caller as a User row; the token may outlive a deleted account."""
    return db.session.get(User, int(get_jwt_identity()))


def _moderate(user, content):
    """Return an error response when a non-admin posts flagged content."""
    if user.is_admin:
        return None

    result = filter_keywords(content)
    if result.is_clean:
        return None

    current_app.logger.info(
        f"Rejected content from user {user.id}: {result.flagged_words} {result.reason or ''}"
    )
    return jsonify({
        "error": "CONTENT_REJECTED",
        "flagged_words": result.flagged_words,
        "reason": result.reason
    }), 400


# --- List posts for a lesson ---
@bp.route("/lesson/<int:lesson_id>", methods=["GET"])
def list_posts(lesson_id):
    user = current_user()
    current_user_id = user.id if user else None

    posts = Post.query.filter_by(lesson_id=lesson_id).order_by(Post.created_at.desc(), Post.id.desc()).all()

    return jsonify([
        serialize_post(p, current_user_id) for p in posts
    ]), 200


# --- Add post ---
@bp.route("/lesson/<int:lesson_id>/posts", methods=["POST"])
@jwt_required()
def create_post(lesson_id):
    user = _author()
    if not user:
        return jsonify({"error": "User account not found. Please log out and log in again."}), 401

    Lesson.query.get_or_404(lesson_id)
    content = ((request.get_json() or {}).get("content") or "").strip()
    if not content:
        return jsonify({"error": "content is required"}), 400

    rejected = _moderate(user, content)
    if rejected:
        return rejected

    post = Post(lesson_id=lesson_id, user_id=user.id, content=content)
    db.session.add(post)
    db.session.commit()

    return jsonify(serialize_post(post, user.id)), 201


# --- Add comment to a post ---
@bp.route("/posts/<int:post_id>/comments", methods=["POST"])
@jwt_required()
def create_comment(post_id):
    user = _author()
    if not user:
        return jsonify({"error": "User account not found. Please log out and log in again."}), 401

    Post.query.get_or_404(post_id)
    content = ((request.get_json() or {}).get("content") or "").strip()
    if not content:
        return jsonify({"error": "content is required"}), 400

    rejected = _moderate(user, content)
    if rejected:
        return rejected

    comment = Comment(post_id=post_id, user_id=user.id, content=content)
    db.session.add(comment)
    db.session.commit()

    return jsonify(serialize_comment(comment, user.id)), 201


@bp.route("/posts/<int:post_id>", methods=["DELETE"])
@jwt_required()
def delete_post(post_id):
    user = _author()
    post = Post.query.get_or_404(post_id)

    if not user or (not user.is_admin and post.user_id != user.id):
        return jsonify({"error": "Forbidden"}), 403

    db.session.delete(post)
    db.session.commit()

    return jsonify({"message": "Post deleted"}), 200


@bp.route("/<int:comment_id>", methods=["DELETE"])
@jwt_required()
def delete_comment(comment_id):
    user = _author()
    comment = Comment.query.get_or_404(comment_id)

    if not user or (not user.is_admin and comment.user_id != user.id):
        return jsonify({"error": "Forbidden"}), 403

    db.session.delete(comment)
    db.session.commit()

    return jsonify({"message": "Comment deleted"}), 200


@bp.route("/posts/<int:post_id>/like", methods=["POST"])
@jwt_required()
def toggle_post_like(post_id):
    user = _author()
    if not user:
        return jsonify({"error": "User account not found. Please log out and log in again."}), 401

    post = Post.query.get_or_404(post_id)
    existing_like = PostLike.query.filter_by(user_id=user.id, post_id=post.id).first()

    if existing_like:
        db.session.delete(existing_like)
    else:
        db.session.add(PostLike(user_id=user.id, post_id=post.id))
    db.session.commit()

    return jsonify({
        "liked": existing_like is None,
        "like_count": PostLike.query.filter_by(post_id=post.id).count()
    }), 200


@bp.route("/<int:comment_id>/like", methods=["POST"])
@jwt_required()
def toggle_comment_like(comment_id):
    user = _author()
    if not user:
        return jsonify({"error": "User account not found. Please log out and log in again."}), 401

    comment = Comment.query.get_or_404(comment_id)
    existing_like = CommentLike.query.filter_by(user_id=user.id, comment_id=comment.id).first()

    if existing_like:
        db.session.delete(existing_like)
    else:
        db.session.add(CommentLike(user_id=user.id, comment_id=comment.id))
    db.session.commit()

    return jsonify({
        "liked": existing_like is None,
        "like_count": CommentLike.query.filter_by(comment_id=comment.id).count()
    }), 200


# --- Moderation preview for the comment box ---
@bp.route("/moderate", methods=["POST"])
def check_content():
    content = (request.get_json() or {}).get("content") or ""
    return jsonify(filter_keywords(content).to_dict()), 200
