from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from recallrai.schemas.common import APIModel, Page, Snapshot


class UserSnapshot(Snapshot):
    """Server state of a user."""

    user_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    last_active_at: Optional[datetime] = None


class UserList(Page):
    """Paginated list of users."""

    users: list[UserSnapshot] = Field(default_factory=list)


class UserMemoryItem(APIModel):
    """A stored long-term memory."""

    memory_id: str
    categories: list[str] = Field(default_factory=list)
    content: str
    created_at: datetime


class UserMemoriesList(Page):
    """Paginated list of a user's memories."""

    items: list[UserMemoryItem] = Field(default_factory=list)


class UserMessage(APIModel):
    """A message from any of the user's sessions."""

    role: str
    content: str
    timestamp: datetime
    session_id: str


class UserMessagesList(APIModel):
    """Most recent messages across a user's sessions."""

    messages: list[UserMessage] = Field(default_factory=list)
