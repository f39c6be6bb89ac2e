from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field

from recallrai.schemas.common import APIModel, Page, Snapshot


class SessionStatus(str, Enum):
    """Lifecycle state of a session."""

    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class MessageRole(str, Enum):
    """Role of a message sender."""

    USER = "user"
    ASSISTANT = "assistant"


class RecallStrategy(str, Enum):
    """Server-side retrieval policy used to build a context."""

    LOW_LATENCY = "low_latency"
    BALANCED = "balanced"
    AGENTIC = "agentic"
    AUTO = "auto"


class SessionSnapshot(Snapshot):
    """Server state of a session."""

    session_id: str
    status: SessionStatus = SessionStatus.PENDING
    created_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Message(APIModel):
    """A single message in a session."""

    role: MessageRole
    content: str
    timestamp: datetime


class SessionMessageList(Page):
    """Paginated list of messages in a session, in server order."""

    messages: list[Message] = Field(default_factory=list)


class SessionList(Page):
    """Paginated list of sessions."""

    sessions: list[SessionSnapshot] = Field(default_factory=list)


class ContextOptions(APIModel):
    """Optional knobs for context synthesis; unset fields use server defaults."""

    recall_strategy: Optional[RecallStrategy] = None
    min_top_k: Optional[int] = Field(default=None, ge=1)
    max_top_k: Optional[int] = Field(default=None, ge=1)
    memories_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    summaries_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    last_n_messages: Optional[int] = Field(default=None, ge=0)
    last_n_summaries: Optional[int] = Field(default=None, ge=0)
    timezone: Optional[str] = None
    include_system_prompt: Optional[bool] = None

    def to_query_params(self) -> dict[str, Any]:
        params = self.model_dump(mode="json", exclude_none=True)
        # Query strings carry booleans as lowercase literals.
        if "include_system_prompt" in params:
            params["include_system_prompt"] = str(params["include_system_prompt"]).lower()
        return params


class ContextMetadata(APIModel):
    """Provenance of a synthesized context."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=(), extra="allow")

    memory_ids: list[str] = Field(default_factory=list)
    session_ids: list[str] = Field(default_factory=list)
    agent_reasoning: Optional[str] = None


class Context(APIModel):
    """Context text synthesized from the user's memories."""

    context: str
    metadata: Optional[ContextMetadata] = None
