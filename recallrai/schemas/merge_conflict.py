from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from recallrai.schemas.common import APIModel, Page, Snapshot


class MergeConflictStatus(str, Enum):
    """Lifecycle state of a merge conflict."""

    PENDING = "PENDING"
    IN_QUEUE = "IN_QUEUE"
    RESOLVING = "RESOLVING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


TERMINAL_CONFLICT_STATUSES = frozenset(
    {MergeConflictStatus.RESOLVED, MergeConflictStatus.FAILED}
)


class MergeConflictMemory(APIModel):
    """An existing memory and the reason it conflicts."""

    content: str
    reason: str


class NewMemory(APIModel):
    """A newly extracted memory, as sent by the structured protocol."""

    content: str
    categories: list[str] = Field(default_factory=list)


class MergeConflictQuestion(APIModel):
    """A multiple-choice clarifying question."""

    question: str
    options: list[str] = Field(default_factory=list)


class MergeConflictAnswer(APIModel):
    """An answer to a clarifying question.

    ``message`` is free-form context for the server and is never checked
    against the question set.
    """

    question: str
    answer: str
    message: Optional[str] = None


class MergeConflictSnapshot(Snapshot):
    """Server state of a merge conflict."""

    conflict_id: str = Field(alias="id")
    custom_user_id: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="project_user_session_id")
    new_memory_content: Optional[str] = None
    new_memories: list[NewMemory] = Field(default_factory=list)
    conflicting_memories: list[MergeConflictMemory] = Field(default_factory=list)
    clarifying_questions: list[MergeConflictQuestion] = Field(default_factory=list)
    status: MergeConflictStatus = MergeConflictStatus.PENDING
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolution_data: Optional[dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CONFLICT_STATUSES


class MergeConflictList(Page):
    """Paginated list of merge conflicts."""

    conflicts: list[MergeConflictSnapshot] = Field(default_factory=list)
