"""API route modules."""
from learnsync.routes import attempts, catalog, progress, quizzes

__all__ = ["attempts", "catalog", "progress", "quizzes"]
