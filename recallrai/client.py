from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from recallrai.classifier import CallContext, Operation, classify_response
from recallrai.core.config import get_settings
from recallrai.core.security import mask_api_key
from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.schemas.common import parse_payload
from recallrai.schemas.user import UserList, UserSnapshot
from recallrai.transport import HTTPTransport, TransportConfig
from recallrai.user import User

API_KEY_PREFIX = "rai_"


class RecallrAI:
    """Asynchronous client for the RecallrAI API.

    Arguments left as ``None`` are read from the environment
    (``RECALLRAI_API_KEY``, ``RECALLRAI_PROJECT_ID``, ``RECALLRAI_BASE_URL``,
    ``RECALLRAI_TIMEOUT_SEC``). Use it as an async context manager, or call
    ``aclose()`` when done.

    An injected ``http_client`` that already has a ``base_url`` keeps it;
    ``base_url`` is then only used for clients created without one.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        project_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        api_key = api_key or settings.api_key
        project_id = project_id or settings.project_id
        if not api_key or not api_key.startswith(API_KEY_PREFIX):
            raise RecallrAIError(
                ErrorKind.AUTHENTICATION, f"API key must start with '{API_KEY_PREFIX}'"
            )
        if not project_id:
            raise RecallrAIError(ErrorKind.AUTHENTICATION, "Project ID is required")
        self.project_id = project_id
        self._api_key = api_key
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self._transport = HTTPTransport(
            TransportConfig(
                api_key=api_key,
                project_id=project_id,
                base_url=self.base_url,
                timeout_sec=timeout_sec if timeout_sec is not None else settings.timeout_sec,
            ),
            http_client=http_client,
        )

    async def __aenter__(self) -> "RecallrAI":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def create_user(
        self, user_id: str, metadata: Optional[dict[str, Any]] = None
    ) -> User:
        """Create a user; raises ``USER_ALREADY_EXISTS`` on a duplicate id."""

        data = await self._call(
            Operation.CREATE_USER,
            "POST",
            "/users",
            json={"user_id": user_id, "metadata": metadata or {}},
            user_id=user_id,
        )
        return User(self._transport, parse_payload(UserSnapshot, data, "user"))

    async def get_user(self, user_id: str) -> User:
        data = await self._call(Operation.GET_USER, "GET", f"/users/{user_id}", user_id=user_id)
        return User(self._transport, parse_payload(UserSnapshot, data, "user"))

    async def list_users(
        self,
        offset: int = 0,
        limit: int = 10,
        metadata_filter: Optional[dict[str, Any]] = None,
    ) -> UserList:
        params: dict[str, Any] = {"offset": offset, "limit": limit}
        if metadata_filter is not None:
            params["metadata_filter"] = json.dumps(metadata_filter)
        data = await self._call(Operation.LIST_USERS, "GET", "/users", params=params)
        return parse_payload(UserList, data)

    async def _call(
        self,
        operation: Operation,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Any:
        response = await self._transport.send(method, path, params=params, json=json)
        return classify_response(response, CallContext(operation, user_id=user_id))

    def __repr__(self) -> str:
        return (
            f"RecallrAI(api_key='{mask_api_key(self._api_key)}', "
            f"project_id='{self.project_id}', base_url='{self.base_url}')"
        )
