from .auth import role_required, current_user

__all__ = ["role_required", "current_user"]
