from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Union

from recallrai.classifier import CallContext, Operation, classify_response
from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.schemas.common import parse_payload, validate_input
from recallrai.schemas.merge_conflict import (
    MergeConflictAnswer,
    MergeConflictMemory,
    MergeConflictQuestion,
    MergeConflictSnapshot,
    MergeConflictStatus,
    NewMemory,
)
from recallrai.transport import HTTPTransport

AnswerInput = Union[MergeConflictAnswer, dict[str, Any]]


class MergeConflict:
    """Handle for a merge conflict raised while processing a session.

    Conflicts are created by the server. The client inspects them and
    resolves them once by answering every clarifying question.
    """

    def __init__(
        self, transport: HTTPTransport, user_id: str, snapshot: MergeConflictSnapshot
    ) -> None:
        self._transport = transport
        self._user_id = user_id
        self._snapshot = snapshot

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def conflict_id(self) -> str:
        return self._snapshot.conflict_id

    @property
    def status(self) -> MergeConflictStatus:
        return self._snapshot.status

    @property
    def session_id(self) -> Optional[str]:
        return self._snapshot.session_id

    @property
    def new_memory_content(self) -> Optional[str]:
        return self._snapshot.new_memory_content

    @property
    def new_memories(self) -> list[NewMemory]:
        return list(self._snapshot.new_memories)

    @property
    def conflicting_memories(self) -> list[MergeConflictMemory]:
        return list(self._snapshot.conflicting_memories)

    @property
    def clarifying_questions(self) -> list[MergeConflictQuestion]:
        return list(self._snapshot.clarifying_questions)

    @property
    def created_at(self) -> datetime:
        return self._snapshot.created_at

    @property
    def resolved_at(self) -> Optional[datetime]:
        return self._snapshot.resolved_at

    @property
    def resolution_data(self) -> Optional[dict[str, Any]]:
        return self._snapshot.resolution_data

    @property
    def snapshot(self) -> MergeConflictSnapshot:
        return self._snapshot

    async def resolve(self, answers: Iterable[AnswerInput]) -> None:
        """Resolve the conflict with one answer per clarifying question.

        Resolution is all-or-nothing. The server rejects the whole request
        with ``MERGE_CONFLICT_MISSING_ANSWERS``, ``MERGE_CONFLICT_INVALID_QUESTIONS``
        or ``MERGE_CONFLICT_INVALID_ANSWER`` when the answers do not match the
        question set; duplicates are passed through for the server to reject.

        A conflict already known to be resolved or failed is rejected with
        ``MERGE_CONFLICT_ALREADY_RESOLVED`` without contacting the server.
        """

        if self._snapshot.is_terminal:
            raise RecallrAIError(
                ErrorKind.MERGE_CONFLICT_ALREADY_RESOLVED,
                f"Merge conflict {self.conflict_id} is already {self.status.value.lower()}",
                400,
            )
        payload = {
            "answers": [
                validate_input(MergeConflictAnswer, answer).model_dump(exclude_none=True)
                for answer in answers
            ]
        }
        data = await self._call(
            Operation.RESOLVE_MERGE_CONFLICT, "POST", "/resolve", json=payload
        )
        self._snapshot = parse_payload(MergeConflictSnapshot, data, "conflict")

    async def refresh(self) -> None:
        """Reload the snapshot from the server."""

        data = await self._call(Operation.GET_MERGE_CONFLICT, "GET")
        self._snapshot = parse_payload(MergeConflictSnapshot, data, "conflict")

    async def _call(
        self,
        operation: Operation,
        method: str,
        suffix: str = "",
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        path = f"/users/{self._user_id}/merge-conflicts/{self.conflict_id}{suffix}"
        response = await self._transport.send(method, path, json=json)
        context = CallContext(operation, user_id=self._user_id, conflict_id=self.conflict_id)
        return classify_response(response, context)

    def __repr__(self) -> str:
        return (
            f"MergeConflict(id='{self.conflict_id}', status='{self.status.value}', "
            f"user_id='{self._user_id}')"
        )
