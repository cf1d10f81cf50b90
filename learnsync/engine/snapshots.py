"""Local snapshots of in-progress attempts, kept for reload resilience only."""
import logging
from typing import Any

from learnsync.engine.storage import KeyValueStore
from learnsync.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "quiz-attempt"


def attempt_key(user_id: str, quiz_id: str) -> str:
    return f"{STORAGE_PREFIX}-{user_id}-{quiz_id}"


class AttemptSnapshotStore:
    """Buffered answers, flags, timings and remaining time per (user, quiz)."""

    def __init__(self, store: KeyValueStore, user_id: str) -> None:
        self._store = store
        self.user_id = user_id

    def save(
        self,
        quiz_id: str,
        attempt_id: str,
        state: dict[str, Any],
        time_left: int | None = None,
    ) -> None:
        self._store.put(
            attempt_key(self.user_id, quiz_id),
            {
                **state,
                "attemptId": attempt_id,
                "quizId": quiz_id,
                "userId": self.user_id,
                "timeLeft": time_left,
                "lastSavedAt": utc_now(),
            },
        )

    def load(self, quiz_id: str, attempt_id: str | None = None) -> dict[str, Any] | None:
        """Snapshot of the quiz, only if it belongs to ``attempt_id`` when given."""
        snapshot = self._store.get(attempt_key(self.user_id, quiz_id))
        if snapshot is None:
            return None
        if attempt_id is not None and snapshot.get("attemptId") != attempt_id:
            logger.info(f"Discarding stale snapshot of quiz {quiz_id}")
            return None
        return snapshot

    def delete(self, quiz_id: str) -> None:
        self._store.delete(attempt_key(self.user_id, quiz_id))
