"""
Error taxonomy shared by the engine, the service clients and the services.

Every error carries a ``kind`` (how the caller should react) and a stable
``code`` (what travels over the wire in ``{"detail": {"code": ...}}``).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """How a failure should be handled by the caller."""

    POLICY = "policy"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    SCHEMA = "schema"
    NETWORK = "network"


class LearnSyncError(Exception):
    """Base class for all engine and service errors."""

    kind: ErrorKind = ErrorKind.POLICY
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        """Serialize to the wire ``detail`` payload."""
        return {"code": self.code, "message": self.message, **self.details}


# Policy failures: expected terminal states, never retried


class EmptyQuiz(LearnSyncError):
    code = "empty_quiz"
    default_message = "This quiz has no questions"


class AttemptNotResumable(LearnSyncError):
    code = "attempt_not_resumable"
    default_message = "Attempt is no longer in progress"


class AttemptAlreadySubmitted(LearnSyncError):
    code = "attempt_already_submitted"
    default_message = "Attempt has already been submitted"


class AttemptNotInProgress(LearnSyncError):
    code = "attempt_not_in_progress"
    default_message = "Attempt is not in progress"


class AttemptNotSubmitted(LearnSyncError):
    code = "attempt_not_submitted"
    default_message = "Exam attempts must be submitted before finalizing"


class PracticeModeOnly(LearnSyncError):
    code = "practice_mode_only"
    default_message = "Instant feedback is only available in practice mode"


class ExamModeOnly(LearnSyncError):
    code = "exam_mode_only"
    default_message = "Batch submission is only available in exam mode"


class NotFound(LearnSyncError):
    code = "not_found"
    default_message = "Not found"


class RequestRejected(LearnSyncError):
    code = "request_rejected"
    default_message = "Request rejected by the service"


# Concurrency conflicts: recovery means resuming, not retrying creation


class AttemptAlreadyActive(LearnSyncError):
    kind = ErrorKind.CONFLICT
    code = "attempt_already_active"
    default_message = "Another attempt for this quiz is already in progress"

    @property
    def attempt_id(self) -> str | None:
        return self.details.get("attemptId")


# Schema errors: contract breaks, never coerced


class SchemaError(LearnSyncError):
    kind = ErrorKind.SCHEMA
    code = "schema_error"
    default_message = "Payload does not match the expected schema"


# Transient failures: returned to the caller unresolved


class NetworkError(LearnSyncError):
    kind = ErrorKind.NETWORK
    code = "network_error"
    default_message = "Service unreachable"


ERRORS_BY_CODE: dict[str, type[LearnSyncError]] = {
    cls.code: cls
    for cls in (
        EmptyQuiz,
        AttemptNotResumable,
        AttemptAlreadySubmitted,
        AttemptNotInProgress,
        AttemptNotSubmitted,
        PracticeModeOnly,
        ExamModeOnly,
        NotFound,
        RequestRejected,
        AttemptAlreadyActive,
        SchemaError,
        NetworkError,
    )
}


@dataclass
class Result(Generic[T]):
    """Explicit success/failure outcome of a public engine operation."""

    ok: bool
    value: T | None = None
    error: LearnSyncError | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: LearnSyncError) -> "Result[T]":
        return cls(ok=False, error=error)

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None
