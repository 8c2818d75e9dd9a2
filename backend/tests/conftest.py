import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

BASE_TIME = datetime(2026, 10, 1, 8, 30, tzinfo=UTC)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class FakeHTTPResponse:
    """Stand-in for ``requests.Response`` as seen by the dispatcher."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else str(body)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeProvider:
    """Scripted replacement for ``requests.post``.

    Each call consumes the next outcome; the last outcome repeats. An
    outcome is either a ``FakeHTTPResponse`` or an exception to raise.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None, **_kwargs):
        self.calls.append(
            {"url": url, "json": json, "headers": headers, "timeout": timeout}
        )
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def fake_provider(monkeypatch):
    """Install a scripted provider in place of ``requests.post``."""
    from app.services.advisor import dispatcher as dispatcher_module

    def _install(*outcomes):
        provider = FakeProvider(outcomes)
        monkeypatch.setattr(dispatcher_module.requests, "post", provider.post)
        return provider

    return _install


@pytest.fixture()
def recorded_sleeps():
    """Sleep replacement that records requested delays instead of waiting."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture()
def provider_config():
    from app.services.advisor.dispatcher import ProviderConfig

    return ProviderConfig(
        base_url="https://llm.test/v1/chat/completions",
        api_key="test-key",
        model="test-model",
    )


@pytest.fixture()
def health_store():
    from app.services.stores import InMemoryHealthRecordStore

    return InMemoryHealthRecordStore()


@pytest.fixture()
def conversation_store():
    from app.services.stores import InMemoryConversationStore

    return InMemoryConversationStore()


@pytest.fixture()
def populated_health_store(health_store):
    from app.services.advisor.types import HealthEntryType

    health_store.add_entry(
        "user-1",
        HealthEntryType.MEAL,
        {"description": "Oatmeal with berries", "meal_type": "breakfast"},
        timestamp=BASE_TIME,
    )
    health_store.add_entry(
        "user-1",
        HealthEntryType.LAB_RESULT,
        {"test_type": "Lipid Panel", "results": {"ldl": 128, "hdl": 52}},
        timestamp=BASE_TIME - timedelta(days=3),
    )
    health_store.add_entry(
        "user-1",
        HealthEntryType.SYMPTOM,
        {"description": "Headache", "severity": "mild", "duration": "2 hours"},
        timestamp=BASE_TIME + timedelta(hours=2),
    )
    return health_store


@asynccontextmanager
async def _no_lifespan(app):
    yield


@pytest.fixture()
def chat_app():
    from app.api import chat, health
    from app.main import http_exception_handler, validation_exception_handler
    from fastapi import HTTPException
    from fastapi.exceptions import RequestValidationError

    app = FastAPI(lifespan=_no_lifespan)
    app.include_router(health.router)
    app.include_router(chat.router, prefix="/api/v1")
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    return app


@pytest.fixture()
def client(chat_app):
    return TestClient(chat_app, raise_server_exceptions=False)


@pytest.fixture()
def base_time():
    return BASE_TIME


@pytest.fixture()
def http_response():
    """Factory for ``FakeHTTPResponse`` objects."""
    return FakeHTTPResponse
