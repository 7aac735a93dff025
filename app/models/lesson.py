from app.extensions import db
from datetime import datetime

CONTENT_TYPES = ("video", "audio", "doc")


class Lesson(db.Model):
    __tablename__ = "lesson"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    level = db.Column(db.Integer, nullable=False, index=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_free = db.Column(db.Boolean, default=False)
    published = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # ✅ contents are always read in display order
    contents = db.relationship(
        "LessonContent",
        back_populates="lesson",
        cascade="all, delete-orphan",
        order_by=lambda: [LessonContent.order, LessonContent.id]
    )
    posts = db.relationship("Post", back_populates="lesson", cascade="all, delete-orphan")


class LessonContent(db.Model):
    __tablename__ = "lesson_content"

    id = db.Column(db.Integer, primary_key=True)
    lesson_id = db.Column(
        db.Integer,
        db.ForeignKey("lesson.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type = db.Column(db.Enum(*CONTENT_TYPES, name="content_type"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # video items carry youtube_id; audio/doc items carry url + original_name
    url = db.Column(db.String(500), nullable=True)
    original_name = db.Column(db.String(255), nullable=True)
    youtube_id = db.Column(db.String(32), nullable=True)

    order = db.Column(db.Integer, nullable=False, default=0)
    duration = db.Column(db.Float, nullable=True)
    size = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    lesson = db.relationship("Lesson", back_populates="contents")
