from .user import User
from .hsk import HSKLevel
from .lesson import Lesson, LessonContent, CONTENT_TYPES
from .comment import Post, Comment, PostLike, CommentLike
from .pricing import LevelPrice, Bundle, BundleLevel, Purchase, HSK_LEVELS

__all__ = [
    "User",
    "HSKLevel",
    "Lesson",
    "LessonContent",
    "CONTENT_TYPES",
    "Post",
    "Comment",
    "PostLike",
    "CommentLike",
    "LevelPrice",
    "Bundle",
    "BundleLevel",
    "Purchase",
    "HSK_LEVELS",
]
