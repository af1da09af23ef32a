"""Shared test fixtures."""

import json
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (register tables on Base.metadata)
from app.core.database import Base
from app.generation.client import GenerationClient
from app.generation.dispatcher import GeminiDispatcher
from app.generation.key_pool import KeyPool
from app.generation.orchestrator import BatchOrchestrator

API_URL = "https://gemini.test/v1beta/models/test:generateContent"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested sleeps and advances a fake clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


class UnavailableSession:
    """Stands in for a session whose database cannot be reached."""

    def __init__(self) -> None:
        self.rollbacks = 0

    def _fail(self):
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    async def execute(self, *args, **kwargs):
        self._fail()

    async def get(self, *args, **kwargs):
        self._fail()

    async def flush(self):
        self._fail()

    async def commit(self):
        self._fail()

    def add(self, instance) -> None:
        pass

    async def rollback(self) -> None:
        self.rollbacks += 1


def gemini_response(text: str, status_code: int = 200) -> httpx.Response:
    """A generateContent response carrying ``text``."""
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


def request_prompt(request: httpx.Request) -> str:
    return json.loads(request.content)["contents"][0]["parts"][0]["text"]


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    keys: tuple[str, ...] = ("test-key-a", "test-key-b"),
    clock: FakeClock | None = None,
    **pool_options,
) -> GenerationClient:
    """Generation client over a mock transport with no real waiting."""
    clock = clock or FakeClock()
    pool_options.setdefault("min_interval", 0.0)
    key_pool = KeyPool(keys, clock=clock, **pool_options)
    dispatcher = GeminiDispatcher(
        key_pool,
        api_url=API_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    orchestrator = BatchOrchestrator(key_pool, dispatcher, sleep=FakeSleep(clock))
    return GenerationClient(key_pool=key_pool, dispatcher=dispatcher, orchestrator=orchestrator)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncSession:
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()
