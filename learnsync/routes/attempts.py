"""Attempt lookup endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnsync.database import get_db
from learnsync.dependencies.user import get_current_user_id
from learnsync.models.quiz import Attempt
from learnsync.services import attempt_service
from learnsync.utils import validate_id

router = APIRouter(prefix="/api/attempts", tags=["attempts"])


@router.get("/{attempt_id}", response_model=Attempt)
def get_attempt(
    attempt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> Attempt:
    """Load one of the caller's attempts, e.g. to resume it."""
    attempt_id = validate_id("attemptId", attempt_id)
    record = attempt_service.get_attempt(db, user_id, attempt_id)
    return attempt_service.attempt_to_model(record)
