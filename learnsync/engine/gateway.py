"""
HTTP clients for the quiz/attempt service and the progress service.

Transport failures surface as ``NetworkError`` and coded error responses as
the matching ``LearnSyncError`` subclass. Nothing here retries: the caller
decides what to do with a failure.
"""
import logging
from typing import Any, Protocol

import requests
from pydantic import BaseModel, ValidationError

from learnsync.config import REQUEST_TIMEOUT_SECONDS, SERVICE_BASE_URL
from learnsync.errors import (
    ERRORS_BY_CODE,
    LearnSyncError,
    NetworkError,
    NotFound,
    RequestRejected,
    SchemaError,
)
from learnsync.models.progress import (
    CourseProgressResponse,
    LectureProgressRecord,
    LectureProgressUpdate,
    LectureProgressUpdateResponse,
)
from learnsync.models.quiz import (
    Attempt,
    AttemptActionResponse,
    AttemptAnswerItem,
    Feedback,
    QuizPayload,
    RawAnswer,
)

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


class QuizGateway(Protocol):
    def fetch_quiz_definition(self, quiz_id: str) -> QuizPayload: ...

    def create_attempt(self, quiz_id: str) -> Attempt: ...

    def resume_attempt(self, attempt_id: str) -> Attempt: ...

    def submit_question_answer(
        self, quiz_id: str, attempt_id: str, question_id: str, answer: RawAnswer
    ) -> Feedback: ...

    def submit_attempt(
        self, quiz_id: str, attempt_id: str, answers: list[AttemptAnswerItem]
    ) -> AttemptActionResponse: ...

    def finalize_attempt(self, quiz_id: str, attempt_id: str) -> AttemptActionResponse: ...


class ProgressGateway(Protocol):
    def merge_progress(
        self, course_id: str, records: list[LectureProgressRecord]
    ) -> CourseProgressResponse: ...

    def update_lecture_progress(
        self, course_id: str, lecture_id: str, progress: LectureProgressUpdate
    ) -> LectureProgressUpdateResponse: ...

    def fetch_course_progress(self, course_id: str) -> CourseProgressResponse: ...


def error_from_response(status_code: int, payload: Any) -> LearnSyncError:
    """Translate an error response into the matching domain error."""
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, dict):
        code = detail.get("code")
        message = detail.get("message")
        extra = {k: v for k, v in detail.items() if k not in ("code", "message")}
        error_cls = ERRORS_BY_CODE.get(code)
        if error_cls is not None:
            return error_cls(message, **extra)
    message = detail if isinstance(detail, str) else None
    if status_code >= 500:
        return NetworkError(message or f"Service error {status_code}", status=status_code)
    if status_code == 404:
        return NotFound(message)
    if status_code == 422:
        return SchemaError(message or "Request rejected as malformed", status=status_code)
    return RequestRejected(message, status=status_code)


class ServiceClient:
    """Shared request plumbing: base URL, user header, timeouts, error mapping."""

    def __init__(
        self,
        user_id: str,
        base_url: str = SERVICE_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({USER_HEADER: user_id})

    def _request(
        self,
        method: str,
        path: str,
        response_model: type[BaseModel],
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if method == "GET":
                response = self.session.get(url, timeout=self.timeout)
            else:
                response = self.session.post(url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            error = error_from_response(response.status_code, payload)
            logger.info(f"{method} {path} -> {response.status_code} {error.code}")
            raise error

        try:
            return response_model.model_validate(payload)
        except ValidationError as e:
            raise SchemaError(f"Unexpected response from {path}: {e}") from e


class QuizServiceClient(ServiceClient):
    """Client of the quiz/attempt service."""

    def fetch_quiz_definition(self, quiz_id: str) -> QuizPayload:
        return self._request("GET", f"/api/quizzes/{quiz_id}", QuizPayload)

    def create_attempt(self, quiz_id: str) -> Attempt:
        return self._request("POST", f"/api/quizzes/{quiz_id}/attempts", Attempt)

    def resume_attempt(self, attempt_id: str) -> Attempt:
        return self._request("GET", f"/api/attempts/{attempt_id}", Attempt)

    def submit_question_answer(
        self, quiz_id: str, attempt_id: str, question_id: str, answer: RawAnswer
    ) -> Feedback:
        return self._request(
            "POST",
            f"/api/quizzes/{quiz_id}/attempts/{attempt_id}/questions/{question_id}",
            Feedback,
            json={"answer": answer},
        )

    def submit_attempt(
        self, quiz_id: str, attempt_id: str, answers: list[AttemptAnswerItem]
    ) -> AttemptActionResponse:
        return self._request(
            "POST",
            f"/api/quizzes/{quiz_id}/attempts/{attempt_id}/submit",
            AttemptActionResponse,
            json={"answers": [item.model_dump() for item in answers]},
        )

    def finalize_attempt(self, quiz_id: str, attempt_id: str) -> AttemptActionResponse:
        return self._request(
            "POST",
            f"/api/quizzes/{quiz_id}/attempts/{attempt_id}/finalize",
            AttemptActionResponse,
        )


class ProgressServiceClient(ServiceClient):
    """Client of the progress service."""

    def merge_progress(
        self, course_id: str, records: list[LectureProgressRecord]
    ) -> CourseProgressResponse:
        return self._request(
            "POST",
            f"/api/progress/{course_id}/merge",
            CourseProgressResponse,
            json={"lectures": [record.model_dump() for record in records]},
        )

    def update_lecture_progress(
        self, course_id: str, lecture_id: str, progress: LectureProgressUpdate
    ) -> LectureProgressUpdateResponse:
        return self._request(
            "POST",
            f"/api/progress/{course_id}/lectures/{lecture_id}",
            LectureProgressUpdateResponse,
            json=progress.model_dump(),
        )

    def fetch_course_progress(self, course_id: str) -> CourseProgressResponse:
        return self._request("GET", f"/api/progress/{course_id}", CourseProgressResponse)
