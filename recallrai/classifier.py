from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.transport import TransportResponse


class Scope(str, Enum):
    """Entity a call is addressed to."""

    PROJECT = "project"
    USER = "user"
    SESSION = "session"
    MERGE_CONFLICT = "merge_conflict"


class Operation(str, Enum):
    """API operations whose failures need call-specific mapping."""

    CREATE_USER = "create_user"
    GET_USER = "get_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    LIST_USERS = "list_users"
    LIST_MEMORIES = "list_memories"
    GET_USER_MESSAGES = "get_user_messages"
    CREATE_SESSION = "create_session"
    LIST_SESSIONS = "list_sessions"
    GET_SESSION = "get_session"
    UPDATE_SESSION = "update_session"
    ADD_MESSAGE = "add_message"
    GET_CONTEXT = "get_context"
    PROCESS_SESSION = "process_session"
    GET_MESSAGES = "get_messages"
    LIST_MERGE_CONFLICTS = "list_merge_conflicts"
    GET_MERGE_CONFLICT = "get_merge_conflict"
    RESOLVE_MERGE_CONFLICT = "resolve_merge_conflict"


_SESSION_OPERATIONS = frozenset(
    {
        Operation.GET_SESSION,
        Operation.UPDATE_SESSION,
        Operation.ADD_MESSAGE,
        Operation.GET_CONTEXT,
        Operation.PROCESS_SESSION,
        Operation.GET_MESSAGES,
    }
)
_CONFLICT_OPERATIONS = frozenset(
    {Operation.GET_MERGE_CONFLICT, Operation.RESOLVE_MERGE_CONFLICT}
)
_STATEFUL_SESSION_OPERATIONS = frozenset(
    {Operation.ADD_MESSAGE, Operation.PROCESS_SESSION}
)
_USER_WRITE_OPERATIONS = frozenset({Operation.CREATE_USER, Operation.UPDATE_USER})


@dataclass(frozen=True)
class CallContext:
    """What a call was trying to do, used to disambiguate shared status codes."""

    operation: Operation
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    conflict_id: Optional[str] = None

    @property
    def scope(self) -> Scope:
        if self.operation in _SESSION_OPERATIONS:
            return Scope.SESSION
        if self.operation in _CONFLICT_OPERATIONS:
            return Scope.MERGE_CONFLICT
        if self.operation is Operation.LIST_USERS:
            return Scope.PROJECT
        return Scope.USER

    @property
    def target_id(self) -> Optional[str]:
        if self.scope is Scope.SESSION:
            return self.session_id
        if self.scope is Scope.MERGE_CONFLICT:
            return self.conflict_id
        return self.user_id


def classify_response(response: TransportResponse, context: CallContext) -> Any:
    """Return the body of a successful response or raise the matching error."""

    status = response.status_code
    if 200 <= status < 300:
        return response.data

    detail = extract_detail(response)
    details = response.data if isinstance(response.data, dict) else {}

    def fail(kind: ErrorKind, retry_after: Optional[float] = None) -> RecallrAIError:
        return RecallrAIError(kind, detail, status, details=details, retry_after=retry_after)

    if status == 401:
        raise fail(ErrorKind.AUTHENTICATION)
    if status == 404:
        raise fail(_not_found_kind(detail, context))
    if status == 409:
        if context.operation in _USER_WRITE_OPERATIONS:
            raise fail(ErrorKind.USER_ALREADY_EXISTS)
        if context.operation is Operation.RESOLVE_MERGE_CONFLICT:
            raise fail(ErrorKind.MERGE_CONFLICT_ALREADY_RESOLVED)
        raise fail(ErrorKind.UNKNOWN)
    if status in {400, 422}:
        fallback = ErrorKind.VALIDATION if status == 422 else ErrorKind.UNKNOWN
        raise fail(_request_error_kind(detail, context, fallback))
    if status == 429:
        raise fail(ErrorKind.RATE_LIMIT, retry_after=_retry_after(response))
    if status >= 500:
        raise fail(ErrorKind.INTERNAL_SERVER)
    raise fail(ErrorKind.UNKNOWN)


def extract_detail(response: TransportResponse) -> str:
    """Extract a concise error message from an API error payload."""

    payload = response.data
    if isinstance(payload, dict):
        detail = payload.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
        if isinstance(detail, list):
            # Request validation errors arrive as a list of {loc, msg, type}.
            messages = [
                str(item.get("msg")) for item in detail if isinstance(item, dict) and item.get("msg")
            ]
            if messages:
                return "; ".join(messages)
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
        error = payload.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if isinstance(error, str) and error.strip():
            return error.strip()
    return (response.text or "Unknown error").strip() or "Unknown error"


def _not_found_kind(detail: str, context: CallContext) -> ErrorKind:
    scope = context.scope
    if scope in {Scope.USER, Scope.PROJECT}:
        return ErrorKind.USER_NOT_FOUND
    if _references_user(detail, context):
        return ErrorKind.USER_NOT_FOUND
    if scope is Scope.MERGE_CONFLICT:
        return ErrorKind.MERGE_CONFLICT_NOT_FOUND
    return ErrorKind.SESSION_NOT_FOUND


def _references_user(detail: str, context: CallContext) -> bool:
    """Whether a 404 detail blames the user rather than the session or conflict.

    The server's ``"User <id> not found"`` phrase always wins. Otherwise a
    detail that names both the user and the target entity is ambiguous and
    resolves to the narrower, entity-specific kind.
    """

    user_id = context.user_id
    if not user_id:
        return False
    if f"User {user_id} not found" in detail:
        return True
    if user_id not in detail:
        return False
    target_id = context.target_id
    return not (target_id and target_id in detail)


def _request_error_kind(
    detail: str, context: CallContext, fallback: ErrorKind
) -> ErrorKind:
    lowered = detail.lower()
    if context.operation in _STATEFUL_SESSION_OPERATIONS:
        if fallback is ErrorKind.UNKNOWN or "status" in lowered or "state" in lowered:
            return ErrorKind.SESSION_INVALID_STATE
        return fallback
    if context.operation is Operation.RESOLVE_MERGE_CONFLICT:
        return _resolution_error_kind(lowered) or fallback
    if context.operation is Operation.LIST_MEMORIES and "categor" in lowered:
        return ErrorKind.USER_INVALID_CATEGORIES
    return fallback


# Server phrases in the order the API checks them. Question text is echoed
# back inside the detail, so the phrases are matched before loose keywords.
_RESOLUTION_PHRASES = (
    ("already resolved", ErrorKind.MERGE_CONFLICT_ALREADY_RESOLVED),
    ("invalid questions provided", ErrorKind.MERGE_CONFLICT_INVALID_QUESTIONS),
    ("missing answers for the following questions", ErrorKind.MERGE_CONFLICT_MISSING_ANSWERS),
    ("invalid answer", ErrorKind.MERGE_CONFLICT_INVALID_ANSWER),
)


def _resolution_error_kind(lowered: str) -> Optional[ErrorKind]:
    for phrase, kind in _RESOLUTION_PHRASES:
        if lowered.startswith(phrase):
            return kind
    for phrase, kind in _RESOLUTION_PHRASES:
        if phrase not in lowered:
            continue
        if kind is ErrorKind.MERGE_CONFLICT_INVALID_ANSWER and "for question" not in lowered:
            continue
        return kind
    if "missing" in lowered or "required" in lowered:
        return ErrorKind.MERGE_CONFLICT_MISSING_ANSWERS
    if "invalid" in lowered and "answer" in lowered:
        return ErrorKind.MERGE_CONFLICT_INVALID_ANSWER
    if "questions" in lowered:
        return ErrorKind.MERGE_CONFLICT_INVALID_QUESTIONS
    return None


def _retry_after(response: TransportResponse) -> Optional[float]:
    raw: Any = None
    for key, value in response.headers.items():
        if key.lower() == "retry-after":
            raw = value
            break
    if raw is None and isinstance(response.data, dict):
        raw = response.data.get("retry_after")
    try:
        return float(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None
