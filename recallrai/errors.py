from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds raised by the SDK."""

    AUTHENTICATION = "authentication_error"
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    CONNECTION = "connection_error"
    INTERNAL_SERVER = "server_error"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation_error"
    USER_NOT_FOUND = "user_not_found"
    USER_ALREADY_EXISTS = "user_already_exists"
    USER_INVALID_CATEGORIES = "invalid_categories"
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_INVALID_STATE = "invalid_session_state"
    MERGE_CONFLICT_NOT_FOUND = "merge_conflict_not_found"
    MERGE_CONFLICT_ALREADY_RESOLVED = "merge_conflict_already_resolved"
    MERGE_CONFLICT_INVALID_QUESTIONS = "merge_conflict_invalid_questions"
    MERGE_CONFLICT_MISSING_ANSWERS = "merge_conflict_missing_answers"
    MERGE_CONFLICT_INVALID_ANSWER = "merge_conflict_invalid_answer"
    UNKNOWN = "recallrai_error"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.NETWORK,
        ErrorKind.TIMEOUT,
        ErrorKind.CONNECTION,
        ErrorKind.INTERNAL_SERVER,
        ErrorKind.RATE_LIMIT,
    }
)

NOT_FOUND_KINDS = frozenset(
    {
        ErrorKind.USER_NOT_FOUND,
        ErrorKind.SESSION_NOT_FOUND,
        ErrorKind.MERGE_CONFLICT_NOT_FOUND,
    }
)


class RecallrAIError(RuntimeError):
    """Raised for every failed RecallrAI operation.

    The ``kind`` attribute identifies the failure; callers branch on it rather
    than on the exception type. ``http_status`` is ``None`` for transport
    failures. Local state guards report the status the server uses for the
    same rejection.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.http_status = http_status
        self.details = details or {}
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the same request later."""

        return self.kind in RETRYABLE_KINDS

    @property
    def is_not_found(self) -> bool:
        return self.kind in NOT_FOUND_KINDS

    def __str__(self) -> str:
        return f"{self.message}. HTTP Status: {self.http_status}."

    def __repr__(self) -> str:
        return (
            f"RecallrAIError(kind={self.kind.name}, message={self.message!r}, "
            f"http_status={self.http_status})"
        )
