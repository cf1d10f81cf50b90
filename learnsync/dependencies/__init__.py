"""FastAPI dependencies."""
from learnsync.dependencies.user import get_current_user_id

__all__ = ["get_current_user_id"]
