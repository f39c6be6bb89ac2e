from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.version import __version__

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
USER_AGENT = "RecallrAI-Python-SDK"


@dataclass
class TransportConfig:
    """Connection settings needed by the transport."""

    api_key: str
    project_id: str
    base_url: str
    timeout_sec: float = 30


@dataclass
class TransportResponse:
    """Normalized result of an HTTP call, before classification."""

    status_code: int
    data: Any = None
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HTTPTransport:
    """Send requests to the RecallrAI API.

    Status codes are returned untouched; only failures that prevent a
    response (timeouts, DNS or connection errors) are raised here.
    """

    def __init__(
        self, cfg: TransportConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self._cfg = cfg
        self._client = http_client
        self._owns_client = http_client is None

    def _headers(self) -> dict[str, str]:
        return {
            "X-Api-Key": self._cfg.api_key,
            "X-Project-Id": self._cfg.project_id,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{USER_AGENT}/{__version__}",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._cfg.base_url.rstrip("/"),
                timeout=self._cfg.timeout_sec,
            )
        return self._client

    async def send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> TransportResponse:
        url = self._join_url(path)
        client = self._get_client()
        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self._cfg.timeout_sec,
            )
        except httpx.TimeoutException as exc:
            raise RecallrAIError(ErrorKind.TIMEOUT, "Request timed out") from exc
        except httpx.ConnectError as exc:
            raise RecallrAIError(
                ErrorKind.CONNECTION, f"Failed to connect to the RecallrAI API: {exc}"
            ) from exc
        except httpx.RequestError as exc:
            raise RecallrAIError(
                ErrorKind.NETWORK, f"Network error occurred: {exc}"
            ) from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return TransportResponse(
            status_code=response.status_code,
            data=self._decode(response),
            text=response.text,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""

        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _join_url(self, path: str) -> str:
        path = API_PREFIX + (path if path.startswith("/") else "/" + path)
        if self._client is not None and not str(self._client.base_url):
            return self._cfg.base_url.rstrip("/") + path
        return path

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None
