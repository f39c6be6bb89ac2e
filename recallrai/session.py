from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from recallrai.classifier import CallContext, Operation, classify_response
from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.schemas.common import coerce_enum, parse_payload, validate_input
from recallrai.schemas.session import (
    Context,
    ContextOptions,
    MessageRole,
    SessionMessageList,
    SessionSnapshot,
    SessionStatus,
)
from recallrai.transport import HTTPTransport

logger = logging.getLogger(__name__)

# Statuses in which the server no longer accepts new messages or a process
# trigger. INSUFFICIENT_BALANCE is left to the server to judge.
LOCKED_STATUSES = frozenset(
    {SessionStatus.PROCESSING, SessionStatus.PROCESSED, SessionStatus.FAILED}
)
CONTEXT_ADVISORY_STATUSES = frozenset({SessionStatus.PROCESSING, SessionStatus.PROCESSED})


class Session:
    """Handle for one conversation session of a user.

    The handle keeps an immutable snapshot of the last server state it saw.
    Every call that returns a session replaces the snapshot as a whole; the
    only way to observe server-side transitions (auto-processing, balance
    exhaustion) without mutating anything is ``refresh()``.

    Local status checks only save a round-trip. The server's answer always
    wins, so a ``SESSION_INVALID_STATE`` error can be raised even when the
    cached status looked compatible.
    """

    def __init__(
        self, transport: HTTPTransport, user_id: str, snapshot: SessionSnapshot
    ) -> None:
        self._transport = transport
        self._user_id = user_id
        self._snapshot = snapshot

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def session_id(self) -> str:
        return self._snapshot.session_id

    @property
    def status(self) -> SessionStatus:
        return self._snapshot.status

    @property
    def created_at(self) -> datetime:
        return self._snapshot.created_at

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._snapshot.metadata)

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    async def add_message(self, role: MessageRole, content: str) -> None:
        """Append a message to the session.

        Raises ``SESSION_INVALID_STATE`` when the session is processing,
        processed or failed, and ``USER_NOT_FOUND``/``SESSION_NOT_FOUND`` when
        either no longer exists.
        """

        role = coerce_enum(MessageRole, role)
        self._ensure_accepts_changes("add message to")
        await self._call(
            Operation.ADD_MESSAGE,
            "POST",
            "/add-message",
            json={"message": content, "role": role.value},
        )

    async def add_user_message(self, content: str) -> None:
        await self.add_message(MessageRole.USER, content)

    async def add_assistant_message(self, content: str) -> None:
        await self.add_message(MessageRole.ASSISTANT, content)

    async def get_context(
        self, options: Optional[ContextOptions] = None, **overrides: Any
    ) -> Context:
        """Fetch context synthesized from the user's memories.

        Options can be passed as a ``ContextOptions`` instance, as keyword
        arguments, or both (keywords win). The result is never cached.
        """

        options = self._merge_options(options, overrides)
        if (
            options.min_top_k is not None
            and options.max_top_k is not None
            and options.min_top_k > options.max_top_k
        ):
            raise RecallrAIError(
                ErrorKind.VALIDATION,
                f"min_top_k ({options.min_top_k}) cannot exceed max_top_k ({options.max_top_k})",
            )
        data = await self._call(
            Operation.GET_CONTEXT, "GET", "/context", params=options.to_query_params()
        )
        if self.status in CONTEXT_ADVISORY_STATUSES:
            logger.warning(
                "Context requested for %s session %s; its messages are already "
                "being folded into long-term memory.",
                self.status.value,
                self.session_id,
            )
        return parse_payload(Context, data)

    async def update(self, new_metadata: Optional[dict[str, Any]] = None) -> None:
        """Replace the session metadata. Allowed in any status."""

        data = await self._call(
            Operation.UPDATE_SESSION, "PUT", json={"metadata": new_metadata or {}}
        )
        self._snapshot = parse_payload(SessionSnapshot, data, "session")

    async def process(self) -> None:
        """Trigger memory extraction for this session.

        Processing happens on the server; call ``refresh()`` later to observe
        the resulting status.
        """

        self._ensure_accepts_changes("process")
        await self._call(Operation.PROCESS_SESSION, "POST", "/process")

    async def refresh(self) -> None:
        """Reload the snapshot from the server."""

        data = await self._call(Operation.GET_SESSION, "GET")
        self._snapshot = parse_payload(SessionSnapshot, data, "session")

    async def get_messages(self, offset: int = 0, limit: int = 50) -> SessionMessageList:
        """Return a page of messages in server order."""

        data = await self._call(
            Operation.GET_MESSAGES,
            "GET",
            "/messages",
            params={"offset": offset, "limit": limit},
        )
        return parse_payload(SessionMessageList, data)

    def _ensure_accepts_changes(self, action: str) -> None:
        if self.status in LOCKED_STATUSES:
            raise RecallrAIError(
                ErrorKind.SESSION_INVALID_STATE,
                f"Cannot {action} session {self.session_id} with status {self.status.value}",
                400,
            )

    @staticmethod
    def _merge_options(
        options: Optional[ContextOptions], overrides: dict[str, Any]
    ) -> ContextOptions:
        if not overrides:
            return options or ContextOptions()
        base = options.model_dump(exclude_none=True) if options else {}
        return validate_input(ContextOptions, {**base, **overrides})

    async def _call(
        self,
        operation: Operation,
        method: str,
        suffix: str = "",
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        path = f"/users/{self._user_id}/sessions/{self.session_id}{suffix}"
        response = await self._transport.send(method, path, params=params, json=json)
        context = CallContext(
            operation, user_id=self._user_id, session_id=self.session_id
        )
        return classify_response(response, context)

    def __repr__(self) -> str:
        return (
            f"Session(id='{self.session_id}', status='{self.status.value}', "
            f"user_id='{self._user_id}')"
        )
