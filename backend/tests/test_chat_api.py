import anyio
import pytest

from app.api.chat import conversation_title
from app.api.deps import get_advisor_service, get_conversation_store
from app.logging import user_id_var
from app.services.advisor import LLMResponse, MalformedResponseError
from app.services.advisor.fallback import FallbackProvider
from app.services.advisor.types import ResponseMetadata

URL = "/api/v1/chat/messages"


class FakeAdvisor:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def send_message(self, message, user_id, conversation_id=None):
        self.calls.append((message, user_id, conversation_id))
        if self.error is not None:
            raise self.error
        return self.response


def await_turns(store, conversation_id, user_id):
    return anyio.run(store.get_recent, conversation_id, user_id, 10)


@pytest.fixture()
def install_advisor(chat_app, conversation_store):
    chat_app.dependency_overrides[get_conversation_store] = lambda: conversation_store

    def _install(advisor):
        chat_app.dependency_overrides[get_advisor_service] = lambda: advisor
        return advisor

    yield _install
    chat_app.dependency_overrides.clear()


def test_missing_user_header_is_unauthorized(client, install_advisor):
    advisor = install_advisor(FakeAdvisor(LLMResponse(content="hi")))

    response = client.post(URL, json={"message": "Hello"})

    assert response.status_code == 401
    assert response.json()["error"]["type"] == "http_error"
    assert advisor.calls == []


def test_blank_user_header_is_unauthorized(client, install_advisor):
    install_advisor(FakeAdvisor(LLMResponse(content="hi")))

    response = client.post(URL, json={"message": "Hello"}, headers={"X-User-Id": "  "})

    assert response.status_code == 401


def test_message_is_answered(client, install_advisor, conversation_store):
    conversation_store.create_conversation("user-1", "conv-1")
    advisor = install_advisor(
        FakeAdvisor(
            LLMResponse(
                content="Stay hydrated.",
                metadata=ResponseMetadata(model="test-model", token_usage={"total_tokens": 9}),
            )
        )
    )

    response = client.post(
        URL,
        json={"message": "Tips?", "conversation_id": "conv-1"},
        headers={"X-User-Id": "user-1"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["content"] == "Stay hydrated."
    assert data["conversation_id"] == "conv-1"
    assert data["metadata"]["model"] == "test-model"
    assert data["metadata"]["token_usage"] == {"total_tokens": 9}
    assert data["metadata"]["fallback"] is False
    assert advisor.calls == [("Tips?", "user-1", "conv-1")]
    turns = await_turns(conversation_store, "conv-1", "user-1")
    assert [(t.role, t.content) for t in turns] == [
        ("user", "Tips?"),
        ("assistant", "Stay hydrated."),
    ]


def test_fallback_answer_is_returned_with_flag(client, install_advisor, conversation_store):
    install_advisor(FakeAdvisor(FallbackProvider().get_response()))

    response = client.post(URL, json={"message": "Tips?"}, headers={"X-User-Id": "user-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["fallback"] is True
    assert "unable to provide a personalized response" in data["content"]
    turns = await_turns(conversation_store, data["conversation_id"], "user-1")
    assert [t.role for t in turns] == ["user", "assistant"]
    assert turns[1].content == data["content"]


def test_malformed_provider_response_is_bad_gateway(client, install_advisor):
    install_advisor(FakeAdvisor(error=MalformedResponseError("bad body")))

    response = client.post(URL, json={"message": "Tips?"}, headers={"X-User-Id": "user-1"})

    assert response.status_code == 502
    assert response.json()["error"]["message"] == "The advisor returned an unexpected response"


@pytest.mark.parametrize("payload", [{"message": "   "}, {"message": ""}, {}])
def test_invalid_message_is_rejected(client, install_advisor, payload):
    advisor = install_advisor(FakeAdvisor(LLMResponse(content="hi")))

    response = client.post(URL, json=payload, headers={"X-User-Id": "user-1"})

    assert response.status_code == 422
    assert response.json()["error"]["type"] == "validation_error"
    assert advisor.calls == []


def test_overlong_message_is_rejected(client, install_advisor):
    install_advisor(FakeAdvisor(LLMResponse(content="hi")))

    response = client.post(
        URL, json={"message": "x" * 2001}, headers={"X-User-Id": "user-1"}
    )

    assert response.status_code == 422


@pytest.mark.anyio
async def test_user_dependency_sets_logging_context():
    from app.api.deps import get_current_user_id

    token = user_id_var.set(None)
    try:
        assert await get_current_user_id(" user-7 ") == "user-7"
        assert user_id_var.get() == "user-7"
    finally:
        user_id_var.reset(token)


@pytest.mark.anyio
async def test_full_app_echoes_request_id_and_wraps_errors():
    from httpx import ASGITransport, AsyncClient

    from app.main import app

    app.dependency_overrides[get_advisor_service] = lambda: FakeAdvisor(
        LLMResponse(content="hi")
    )
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            health = await client.get("/health", headers={"X-Request-Id": "req-42"})
            missing_user = await client.post(
                URL, json={"message": "Hello"}, headers={"X-Request-Id": "req-43"}
            )
    finally:
        app.dependency_overrides.clear()

    assert health.headers["X-Request-Id"] == "req-42"
    assert missing_user.status_code == 401
    assert missing_user.headers["X-Request-Id"] == "req-43"
    assert missing_user.json()["error"]["request_id"] == "req-43"


def test_foreign_conversation_id_starts_a_new_conversation(
    client, install_advisor, conversation_store
):
    conversation_store.create_conversation("user-b", "conv-of-user-b")
    advisor = install_advisor(FakeAdvisor(LLMResponse(content="hi")))

    response = client.post(
        URL,
        json={"message": "Hello", "conversation_id": "conv-of-user-b"},
        headers={"X-User-Id": "user-a"},
    )

    assert response.status_code == 200
    new_id = response.json()["conversation_id"]
    assert new_id != "conv-of-user-b"
    assert advisor.calls == [("Hello", "user-a", new_id)]
    assert await_turns(conversation_store, "conv-of-user-b", "user-b") == []
    assert conversation_store.get_title(new_id).startswith("Hello - ")


def test_second_message_sees_first_exchange(
    chat_app,
    client,
    conversation_store,
    health_store,
    provider_config,
    recorded_sleeps,
    fake_provider,
    http_response,
):
    from app.services.advisor import AdvisorService
    from app.services.advisor.context import ContextAssembler
    from app.services.advisor.dispatcher import RequestDispatcher, RetryPolicy

    service = AdvisorService(
        context_assembler=ContextAssembler(health_store, conversation_store),
        dispatcher=RequestDispatcher(
            provider_config, RetryPolicy(max_retries=1), sleep=recorded_sleeps
        ),
    )
    chat_app.dependency_overrides[get_conversation_store] = lambda: conversation_store
    chat_app.dependency_overrides[get_advisor_service] = lambda: service
    provider = fake_provider(
        http_response(200, {"content": "Try a consistent bedtime."}),
        http_response(200, {"content": "Limit caffeine after noon."}),
    )
    try:
        first = client.post(
            URL, json={"message": "I slept badly"}, headers={"X-User-Id": "user-1"}
        )
        conversation_id = first.json()["conversation_id"]
        second = client.post(
            URL,
            json={"message": "What else?", "conversation_id": conversation_id},
            headers={"X-User-Id": "user-1"},
        )
    finally:
        chat_app.dependency_overrides.clear()

    assert second.json()["conversation_id"] == conversation_id
    context = provider.calls[1]["json"]["messages"][1]["content"]
    assert "user: I slept badly" in context
    assert "assistant: Try a consistent bedtime." in context
    assert "user: What else?" in context
    turns = await_turns(conversation_store, conversation_id, "user-1")
    assert [t.role for t in turns] == ["user", "assistant", "user", "assistant"]


def test_conversation_title_truncates_long_messages():
    title = conversation_title("Why do I keep waking up at three every night?")

    assert title.startswith("Why do I keep waking up at thr... - ")
    assert conversation_title("Hi").startswith("Hi - ")
