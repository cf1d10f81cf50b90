"""Conversion of domain errors to HTTP responses."""
from fastapi import HTTPException

from learnsync.errors import (
    AttemptAlreadyActive,
    AttemptAlreadySubmitted,
    AttemptNotInProgress,
    AttemptNotResumable,
    AttemptNotSubmitted,
    LearnSyncError,
    NotFound,
    SchemaError,
)

STATUS_BY_ERROR: dict[type[LearnSyncError], int] = {
    NotFound: 404,
    AttemptAlreadyActive: 409,
    AttemptAlreadySubmitted: 409,
    AttemptNotInProgress: 409,
    AttemptNotResumable: 409,
    AttemptNotSubmitted: 409,
    SchemaError: 422,
}


def api_error(error: LearnSyncError) -> HTTPException:
    """Build an HTTPException carrying the error's coded detail."""
    status_code = STATUS_BY_ERROR.get(type(error), 400)
    return HTTPException(status_code=status_code, detail=error.to_detail())
