from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from recallrai.classifier import CallContext, Operation, classify_response
from recallrai.merge_conflict import MergeConflict
from recallrai.schemas.common import coerce_enum, parse_payload, unwrap
from recallrai.schemas.merge_conflict import (
    MergeConflictList,
    MergeConflictSnapshot,
    MergeConflictStatus,
)
from recallrai.schemas.session import SessionList, SessionSnapshot, SessionStatus
from recallrai.schemas.user import UserMemoriesList, UserMessagesList, UserSnapshot
from recallrai.session import Session
from recallrai.transport import HTTPTransport


class User:
    """Handle for a user and entry point to their sessions and conflicts."""

    def __init__(self, transport: HTTPTransport, snapshot: UserSnapshot) -> None:
        self._transport = transport
        self._snapshot = snapshot

    @property
    def user_id(self) -> str:
        return self._snapshot.user_id

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._snapshot.metadata)

    @property
    def created_at(self) -> datetime:
        return self._snapshot.created_at

    @property
    def last_active_at(self) -> Optional[datetime]:
        return self._snapshot.last_active_at

    @property
    def snapshot(self) -> UserSnapshot:
        return self._snapshot

    async def update(
        self,
        new_metadata: Optional[dict[str, Any]] = None,
        new_user_id: Optional[str] = None,
    ) -> "User":
        """Update metadata and/or rename the user."""

        payload: dict[str, Any] = {}
        if new_metadata is not None:
            payload["metadata"] = new_metadata
        if new_user_id is not None:
            payload["new_user_id"] = new_user_id
        data = await self._call(Operation.UPDATE_USER, "PUT", "", json=payload)
        self._snapshot = parse_payload(UserSnapshot, data, "user")
        return self

    async def delete(self) -> None:
        await self._call(Operation.DELETE_USER, "DELETE", "")

    async def refresh(self) -> None:
        data = await self._call(Operation.GET_USER, "GET", "")
        self._snapshot = parse_payload(UserSnapshot, data, "user")

    async def create_session(
        self,
        auto_process_after_minutes: int = -1,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Session:
        """Start a new session.

        ``auto_process_after_minutes`` lets the server process the session
        after that much inactivity; -1 disables it.
        """

        data = await self._call(
            Operation.CREATE_SESSION,
            "POST",
            "/sessions",
            json={
                "auto_process_after_minutes": auto_process_after_minutes,
                "metadata": metadata or {},
            },
        )
        payload = unwrap(data, "session")
        if isinstance(payload, dict) and "created_at" not in payload and payload.get("session_id"):
            # Older servers answer with the id only.
            return await self.get_session(payload["session_id"])
        return Session(self._transport, self.user_id, parse_payload(SessionSnapshot, payload))

    async def get_session(self, session_id: str) -> Session:
        data = await self._call(
            Operation.GET_SESSION,
            "GET",
            f"/sessions/{session_id}",
            session_id=session_id,
        )
        return Session(self._transport, self.user_id, parse_payload(SessionSnapshot, data, "session"))

    async def list_sessions(
        self,
        offset: int = 0,
        limit: int = 10,
        metadata_filter: Optional[dict[str, Any]] = None,
        status_filter: Optional[list[SessionStatus]] = None,
    ) -> SessionList:
        params: dict[str, Any] = {"offset": offset, "limit": limit}
        if metadata_filter is not None:
            params["metadata_filter"] = json.dumps(metadata_filter)
        if status_filter is not None:
            params["status_filter"] = [
                coerce_enum(SessionStatus, item).value for item in status_filter
            ]
        data = await self._call(Operation.LIST_SESSIONS, "GET", "/sessions", params=params)
        return parse_payload(SessionList, data)

    async def list_memories(
        self,
        offset: int = 0,
        limit: int = 20,
        categories: Optional[list[str]] = None,
    ) -> UserMemoriesList:
        """List stored memories, optionally filtered by category.

        Unknown categories are rejected with ``USER_INVALID_CATEGORIES``.
        """

        params: dict[str, Any] = {"offset": offset, "limit": limit}
        if categories is not None:
            params["categories"] = categories
        data = await self._call(Operation.LIST_MEMORIES, "GET", "/memories", params=params)
        return parse_payload(UserMemoriesList, data)

    async def get_last_n_messages(self, n: int) -> UserMessagesList:
        data = await self._call(
            Operation.GET_USER_MESSAGES, "GET", "/messages", params={"limit": n}
        )
        return parse_payload(UserMessagesList, data)

    async def get_merge_conflict(self, conflict_id: str) -> MergeConflict:
        data = await self._call(
            Operation.GET_MERGE_CONFLICT,
            "GET",
            f"/merge-conflicts/{conflict_id}",
            conflict_id=conflict_id,
        )
        snapshot = parse_payload(MergeConflictSnapshot, data, "conflict")
        return MergeConflict(self._transport, self.user_id, snapshot)

    async def list_merge_conflicts(
        self,
        offset: int = 0,
        limit: int = 10,
        status: Optional[MergeConflictStatus] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> MergeConflictList:
        params: dict[str, Any] = {"offset": offset, "limit": limit}
        if status is not None:
            params["status"] = coerce_enum(MergeConflictStatus, status).value
        if sort_by is not None:
            params["sort_by"] = sort_by
        if sort_order is not None:
            params["sort_order"] = sort_order
        data = await self._call(
            Operation.LIST_MERGE_CONFLICTS, "GET", "/merge-conflicts", params=params
        )
        return parse_payload(MergeConflictList, data)

    async def _call(
        self,
        operation: Operation,
        method: str,
        suffix: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
        conflict_id: Optional[str] = None,
    ) -> Any:
        response = await self._transport.send(
            method, f"/users/{self.user_id}{suffix}", params=params, json=json
        )
        context = CallContext(
            operation,
            user_id=self.user_id,
            session_id=session_id,
            conflict_id=conflict_id,
        )
        return classify_response(response, context)

    def __repr__(self) -> str:
        return f"User(id='{self.user_id}')"
