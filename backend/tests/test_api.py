"""API route tests."""

import json
from contextlib import asynccontextmanager

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_session_scope
from app.main import app
from app.schemas.roadmap import RoadmapResponse, RoadmapSkeleton
from app.services import generation_service
from app.services.learning_store import LearningStore
from app.services.local_store import LocalStore
from conftest import UnavailableSession, gemini_response, make_client, request_prompt

USER = {"X-User-Id": "user_2abc"}

ROADMAP = {
    "subject": "SQL",
    "difficulty": "beginner",
    "description": "Query relational data",
    "totalDuration": "3 weeks",
    "estimatedHours": "20 hours",
    "chapters": [
        {"id": "chapter-1", "title": "SELECT"},
        {"id": "chapter-2", "title": "JOIN"},
    ],
}


def handler(request: httpx.Request) -> httpx.Response:
    prompt = request_prompt(request)
    if "learning roadmap structure" in prompt:
        return gemini_response(json.dumps(ROADMAP))
    if "Create a quiz" in prompt:
        return gemini_response('{"questions": []}')
    return gemini_response('{"title": "Chapter", "content": {"introduction": "Hi"}}')


@pytest.fixture
def use_generation():
    """Install a generation client on the app."""

    def install(handler_fn=handler, **options):
        client = make_client(handler_fn, **options)
        app.state.generation = client
        return client

    return install


@pytest_asyncio.fixture
async def api(test_session: AsyncSession, use_generation):
    use_generation()
    app.state.learning_store = LearningStore(LocalStore())

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()


async def _create_roadmap(api: httpx.AsyncClient) -> dict:
    response = await api.post(
        "/api/roadmaps", json={"subject": "SQL", "difficulty": "beginner"}, headers=USER
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestRoadmaps:
    @pytest.mark.asyncio
    async def test_generate_saves_roadmap_and_history(self, api):
        roadmap = await _create_roadmap(api)
        assert roadmap["roadmap_id"].startswith("roadmap_")
        assert [c["title"] for c in roadmap["chapters"]] == ["SELECT", "JOIN"]
        assert roadmap["progress"] == 0.0

        listed = (await api.get("/api/roadmaps", headers=USER)).json()
        assert [r["roadmap_id"] for r in listed] == [roadmap["roadmap_id"]]

        history = (await api.get("/api/history", headers=USER)).json()
        assert len(history) == 1
        assert history[0]["roadmap_id"] == roadmap["roadmap_id"]
        assert [p["chapterId"] for p in history[0]["chapter_progress"]] == [
            "chapter-1",
            "chapter-2",
        ]

        # Other users see nothing
        assert (await api.get("/api/roadmaps", headers={"X-User-Id": "someone"})).json() == []

    @pytest.mark.asyncio
    async def test_get_unknown_roadmap(self, api):
        response = await api.get("/api/roadmaps/roadmap_missing", headers=USER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_chapter(self, api):
        roadmap = await _create_roadmap(api)
        url = f"/api/roadmaps/{roadmap['roadmap_id']}/chapters/chapter-2"

        response = await api.patch(url, json={"completed": True}, headers=USER)
        assert response.status_code == 200
        updated = response.json()
        assert [c["completed"] for c in updated["chapters"]] == [False, True]
        assert updated["progress"] == 50.0

        history = (await api.get("/api/history", headers=USER)).json()
        assert [p["completed"] for p in history[0]["chapter_progress"]] == [False, True]

    @pytest.mark.asyncio
    async def test_complete_unknown_chapter(self, api):
        roadmap = await _create_roadmap(api)
        response = await api.patch(
            f"/api/roadmaps/{roadmap['roadmap_id']}/chapters/chapter-9",
            json={"completed": True},
            headers=USER,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_generation_failure_is_retryable(self, api, use_generation):
        use_generation(lambda request: gemini_response("no json here"))

        response = await api.post(
            "/api/roadmaps", json={"subject": "SQL", "difficulty": "beginner"}, headers=USER
        )
        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["attempt"] == 1
        assert detail["max_attempts"] == 3
        assert detail["retryable"] is True

        response = await api.post(
            "/api/roadmaps",
            json={"subject": "SQL", "difficulty": "beginner", "attempt": 3},
            headers=USER,
        )
        assert response.json()["detail"]["retryable"] is False

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, api):
        response = await api.post(
            "/api/roadmaps",
            json={"subject": "SQL", "difficulty": "beginner", "attempt": 4},
            headers=USER,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_roadmap_conflict(self, api, monkeypatch):
        monkeypatch.setattr(generation_service, "new_roadmap_id", lambda: "roadmap_fixed")
        await _create_roadmap(api)

        response = await api.post(
            "/api/roadmaps", json={"subject": "SQL", "difficulty": "beginner"}, headers=USER
        )
        assert response.status_code == 409
        assert response.json()["roadmap_id"] == "roadmap_fixed"

    @pytest.mark.asyncio
    async def test_no_keys_configured(self, api, use_generation):
        use_generation(keys=())
        response = await api.post(
            "/api/roadmaps", json={"subject": "SQL", "difficulty": "beginner"}, headers=USER
        )
        assert response.status_code == 500
        assert "GEMINI_API_KEYS" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_keys_exhausted(self, api, use_generation):
        use_generation(keys=("only",), min_interval=30.0)
        await _create_roadmap(api)

        response = await api.post(
            "/api/roadmaps", json={"subject": "SQL", "difficulty": "beginner"}, headers=USER
        )
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"


class TestCourses:
    @pytest.mark.asyncio
    async def test_generate_and_fetch_course(self, api):
        roadmap = await _create_roadmap(api)
        url = f"/api/roadmaps/{roadmap['roadmap_id']}/course"

        response = await api.post(url, headers=USER)
        assert response.status_code == 201, response.text
        course = response.json()
        assert course["course_id"] == f"detailed_{roadmap['roadmap_id']}"
        assert course["title"] == "Complete SQL Course"
        assert all(c["content"]["title"] == "Chapter" for c in course["chapters"])

        fetched = (await api.get(url, headers=USER)).json()
        assert fetched["chapters"] == course["chapters"]

        listed = (await api.get("/api/courses", headers=USER)).json()
        assert len(listed) == 1

    @pytest.mark.asyncio
    async def test_course_for_unknown_roadmap(self, api):
        response = await api.post("/api/roadmaps/roadmap_missing/course", headers=USER)
        assert response.status_code == 404
        response = await api.get("/api/roadmaps/roadmap_missing/course", headers=USER)
        assert response.status_code == 404


class TestUsers:
    @pytest.mark.asyncio
    async def test_sync_and_update_profile(self, api):
        response = await api.post(
            "/api/users/me", json={"email": "ada@example.com", "first_name": "Ada"}, headers=USER
        )
        assert response.status_code == 200
        assert response.json()["external_id"] == "user_2abc"

        response = await api.patch(
            "/api/users/me",
            json={"preferences": {"learning_style": "visual", "goals": ["career"]}},
            headers=USER,
        )
        assert response.status_code == 200
        profile = response.json()
        assert profile["first_name"] == "Ada"
        assert profile["preferences"]["learning_style"] == "visual"

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, api):
        response = await api.patch("/api/users/me", json={}, headers={"X-User-Id": "nobody"})
        assert response.status_code == 404


class TestHistory:
    @pytest.mark.asyncio
    async def test_update_progress(self, api):
        await _create_roadmap(api)
        [entry] = (await api.get("/api/history", headers=USER)).json()

        response = await api.patch(
            f"/api/history/{entry['id']}/chapters/chapter-1",
            json={"completed": True},
            headers=USER,
        )
        assert response.status_code == 200
        assert response.json()["chapter_progress"][0]["completed"] is True

    @pytest.mark.asyncio
    async def test_unknown_entry(self, api):
        response = await api.patch(
            "/api/history/999/chapters/chapter-1", json={"completed": True}, headers=USER
        )
        assert response.status_code == 404


class TestGeneration:
    @pytest.mark.asyncio
    async def test_single_calls(self, api):
        body = {"chapter_title": "Joins", "subject": "SQL"}
        response = await api.post("/api/generation/chapter-content", json=body)
        assert response.status_code == 200
        assert response.json()["content"]["introduction"] == "Hi"

        response = await api.post("/api/generation/quiz", json=body)
        assert response.json() == {"questions": []}

    @pytest.mark.asyncio
    async def test_unparseable_content(self, api, use_generation):
        use_generation(lambda request: gemini_response("plain prose"))
        response = await api.post(
            "/api/generation/quiz", json={"chapter_title": "Joins", "subject": "SQL"}
        )
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_upstream_failure(self, api, use_generation):
        use_generation(lambda request: httpx.Response(500, text="boom"))
        response = await api.post(
            "/api/generation/quiz", json={"chapter_title": "Joins", "subject": "SQL"}
        )
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_status(self, api):
        response = await api.get("/api/generation/status")
        assert response.status_code == 200
        status = response.json()
        assert status["active_keys"] == 2
        assert [k["label"] for k in status["key_statuses"]] == ["key-1", "key-2"]
        assert "test-key-a" not in response.text


class TestCourseWebSocket:
    """Course streaming over WebSocket, served from the local fallback."""

    @pytest.fixture
    def open_sessions(self) -> list[int]:
        """Number of sessions currently open, as a one-item list."""
        return [0]

    @pytest.fixture
    def ws_client(self, use_generation, open_sessions):
        use_generation()
        store = LearningStore(LocalStore())
        app.state.learning_store = store

        @asynccontextmanager
        async def unavailable_scope():
            open_sessions[0] += 1
            try:
                yield UnavailableSession()
            finally:
                open_sessions[0] -= 1

        app.dependency_overrides[get_session_scope] = lambda: unavailable_scope
        yield TestClient(app), store
        app.dependency_overrides.clear()

    def _seed(self, store: LearningStore) -> str:
        roadmap = RoadmapResponse(
            roadmap_id="roadmap_ws",
            **RoadmapSkeleton.model_validate(ROADMAP).model_dump(),
            generated_at="2026-01-01T00:00:00",
        )
        store.local.set("roadmaps_guest", {"roadmap_ws": roadmap.model_dump(mode="json")})
        return roadmap.roadmap_id

    def test_streams_progress_then_course(self, ws_client):
        client, store = ws_client
        roadmap_id = self._seed(store)

        events = []
        with client.websocket_connect(f"/ws/roadmaps/{roadmap_id}/course") as ws:
            while True:
                event = ws.receive_json()
                events.append(event)
                if event["type"] in ("course", "error"):
                    break

        progress = [e["data"]["progress"] for e in events if e["type"] == "progress"]
        assert progress[0] == 5
        assert progress[-1] == 100
        assert progress == sorted(progress)

        course = events[-1]
        assert course["type"] == "course"
        assert course["data"]["roadmap_id"] == roadmap_id
        assert len(course["data"]["chapters"]) == 2
        assert store.local.get("detailed_courses_guest")[roadmap_id]["title"] == "Complete SQL Course"

    def test_no_session_held_while_generating(self, ws_client, open_sessions, use_generation):
        client, store = ws_client
        roadmap_id = self._seed(store)
        sessions_during_calls: list[int] = []

        def tracking_handler(request: httpx.Request) -> httpx.Response:
            sessions_during_calls.append(open_sessions[0])
            return handler(request)

        use_generation(tracking_handler)
        with client.websocket_connect(f"/ws/roadmaps/{roadmap_id}/course") as ws:
            while ws.receive_json()["type"] == "progress":
                pass

        assert sessions_during_calls == [0, 0]
        assert open_sessions[0] == 0

    def test_unknown_roadmap(self, ws_client):
        client, _ = ws_client
        with client.websocket_connect("/ws/roadmaps/roadmap_missing/course") as ws:
            event = ws.receive_json()
        assert event == {"type": "error", "message": "Roadmap not found"}
