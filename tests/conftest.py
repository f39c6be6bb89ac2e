import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import httpx
import pytest
from fastapi import Body, FastAPI, HTTPException, Request, Response

from recallrai.client import RecallrAI
from recallrai.core.config import get_settings
from recallrai.transport import HTTPTransport, TransportConfig

TEST_API_KEY = "rai_testkey123456"
TEST_PROJECT_ID = "project-test"


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeRecallrAI:
    """In-memory stand-in for the RecallrAI API used by lifecycle tests."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self.conflicts: dict[str, dict[str, Any]] = {}
        self.context_queries: list[dict[str, str]] = []
        self.request_count = 0
        self.app = self._build_app()

    def add_conflict(self, user_id: str, session_id: str, questions: list[dict]) -> str:
        conflict_id = uuid.uuid4().hex
        self.conflicts[conflict_id] = {
            "id": conflict_id,
            "custom_user_id": user_id,
            "project_user_session_id": session_id,
            "new_memory_content": "Lives in Berlin",
            "conflicting_memories": [
                {"content": "Lives in Paris", "reason": "Different city of residence"}
            ],
            "clarifying_questions": questions,
            "status": "PENDING",
            "resolution_data": None,
            "created_at": utc_iso(),
            "resolved_at": None,
        }
        return conflict_id

    def _user(self, user_id: str) -> dict[str, Any]:
        user = self.users.get(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail=f"User {user_id} not found")
        return user

    def _session(self, user_id: str, session_id: str) -> dict[str, Any]:
        self._user(user_id)
        session = self.sessions.get(session_id)
        if session is None or session["user_id"] != user_id:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return session

    def _conflict(self, user_id: str, conflict_id: str) -> dict[str, Any]:
        self._user(user_id)
        conflict = self.conflicts.get(conflict_id)
        if conflict is None or conflict["custom_user_id"] != user_id:
            raise HTTPException(
                status_code=404, detail=f"Merge conflict {conflict_id} not found"
            )
        return conflict

    @staticmethod
    def _session_out(session: dict[str, Any]) -> dict[str, Any]:
        return {
            "session_id": session["session_id"],
            "status": session["status"],
            "created_at": session["created_at"],
            "metadata": session["metadata"],
        }

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        fake = self

        @app.middleware("http")
        async def require_credentials(request: Request, call_next):
            fake.request_count += 1
            if request.headers.get("x-api-key") != TEST_API_KEY:
                return Response(
                    status_code=401,
                    content='{"detail": "Invalid API key"}',
                    media_type="application/json",
                )
            return await call_next(request)

        @app.post("/api/v1/users", status_code=201)
        async def create_user(payload: dict = Body(...)):
            user_id = payload["user_id"]
            if user_id in fake.users:
                raise HTTPException(
                    status_code=409, detail=f"User with ID {user_id} already exists"
                )
            now = utc_iso()
            fake.users[user_id] = {
                "user_id": user_id,
                "metadata": payload.get("metadata") or {},
                "created_at": now,
                "last_active_at": now,
            }
            return {"user": fake.users[user_id]}

        @app.get("/api/v1/users/{user_id}")
        async def get_user(user_id: str):
            return {"user": fake._user(user_id)}

        @app.delete("/api/v1/users/{user_id}", status_code=204)
        async def delete_user(user_id: str):
            fake._user(user_id)
            del fake.users[user_id]
            return Response(status_code=204)

        @app.post("/api/v1/users/{user_id}/sessions", status_code=201)
        async def create_session(user_id: str, payload: dict = Body(...)):
            fake._user(user_id)
            session_id = uuid.uuid4().hex
            fake.sessions[session_id] = {
                "session_id": session_id,
                "user_id": user_id,
                "status": "pending",
                "created_at": utc_iso(),
                "metadata": payload.get("metadata") or {},
                "messages": [],
            }
            return {"session_id": session_id}

        @app.get("/api/v1/users/{user_id}/sessions/{session_id}")
        async def get_session(user_id: str, session_id: str):
            return {"session": fake._session_out(fake._session(user_id, session_id))}

        @app.put("/api/v1/users/{user_id}/sessions/{session_id}")
        async def update_session(user_id: str, session_id: str, payload: dict = Body(...)):
            session = fake._session(user_id, session_id)
            session["metadata"] = payload.get("metadata") or {}
            return {"session": fake._session_out(session)}

        @app.post("/api/v1/users/{user_id}/sessions/{session_id}/add-message")
        async def add_message(user_id: str, session_id: str, payload: dict = Body(...)):
            session = fake._session(user_id, session_id)
            if session["status"] != "pending":
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot add message to session with status {session['status']}",
                )
            session["messages"].append(
                {"role": payload["role"], "content": payload["message"], "timestamp": utc_iso()}
            )
            return {"message": "Message added successfully"}

        @app.post("/api/v1/users/{user_id}/sessions/{session_id}/process")
        async def process_session(user_id: str, session_id: str):
            session = fake._session(user_id, session_id)
            if session["status"] in {"processing", "processed"}:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot process session with status {session['status']}",
                )
            # Extraction completes instantly in the fake.
            session["status"] = "processed"
            return {"message": "Session processing started"}

        @app.get("/api/v1/users/{user_id}/sessions/{session_id}/context")
        async def get_context(user_id: str, session_id: str, request: Request):
            session = fake._session(user_id, session_id)
            fake.context_queries.append(dict(request.query_params))
            lines = [message["content"] for message in session["messages"]]
            return {
                "context": "\n".join(lines),
                "metadata": {"memory_ids": [], "session_ids": [session_id]},
            }

        @app.get("/api/v1/users/{user_id}/sessions/{session_id}/messages")
        async def get_messages(user_id: str, session_id: str, offset: int = 0, limit: int = 50):
            session = fake._session(user_id, session_id)
            messages = session["messages"]
            page = messages[offset : offset + limit]
            return {
                "messages": page,
                "total": len(messages),
                "has_more": offset + len(page) < len(messages),
            }

        @app.get("/api/v1/users/{user_id}/merge-conflicts/{conflict_id}")
        async def get_conflict(user_id: str, conflict_id: str):
            return fake._conflict(user_id, conflict_id)

        @app.post("/api/v1/users/{user_id}/merge-conflicts/{conflict_id}/resolve")
        async def resolve_conflict(user_id: str, conflict_id: str, payload: dict = Body(...)):
            conflict = fake._conflict(user_id, conflict_id)
            if conflict["status"] in {"RESOLVED", "FAILED"}:
                raise HTTPException(
                    status_code=400,
                    detail=f"Merge conflict {conflict_id} is already resolved",
                )
            options = {q["question"]: q["options"] for q in conflict["clarifying_questions"]}
            answers = payload["answers"]
            asked = [answer["question"] for answer in answers]
            unknown = [question for question in asked if question not in options]
            if unknown:
                raise HTTPException(
                    status_code=400, detail=f"Invalid questions provided: {unknown}"
                )
            missing = [question for question in options if question not in asked]
            if missing:
                raise HTTPException(
                    status_code=400,
                    detail=f"Missing answers for the following questions: {missing}",
                )
            for answer in answers:
                if answer["answer"] not in options[answer["question"]]:
                    raise HTTPException(
                        status_code=400,
                        detail=(
                            f"Invalid answer '{answer['answer']}' "
                            f"for question '{answer['question']}'"
                        ),
                    )
            conflict["status"] = "RESOLVED"
            conflict["resolved_at"] = utc_iso()
            conflict["resolution_data"] = {
                "answers": {answer["question"]: answer["answer"] for answer in answers}
            }
            return {"conflict": conflict}

        return app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    for name in (
        "RECALLRAI_API_KEY",
        "RECALLRAI_PROJECT_ID",
        "RECALLRAI_BASE_URL",
        "RECALLRAI_TIMEOUT_SEC",
        "RECALLRAI_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_api() -> FakeRecallrAI:
    return FakeRecallrAI()


@pytest.fixture
async def client(fake_api):
    transport = httpx.ASGITransport(app=fake_api.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        async with RecallrAI(
            api_key=TEST_API_KEY,
            project_id=TEST_PROJECT_ID,
            base_url="http://test",
            http_client=http_client,
        ) as recallrai:
            yield recallrai


@pytest.fixture
def mock_transport() -> Callable[..., HTTPTransport]:
    """Build an ``HTTPTransport`` whose requests are answered by ``handler``."""

    def factory(
        handler: Callable[[httpx.Request], httpx.Response], timeout_sec: float = 5
    ) -> HTTPTransport:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="https://api.recallrai.test"
        )
        cfg = TransportConfig(
            api_key=TEST_API_KEY,
            project_id=TEST_PROJECT_ID,
            base_url="https://api.recallrai.test",
            timeout_sec=timeout_sec,
        )
        return HTTPTransport(cfg, http_client=http_client)

    return factory
