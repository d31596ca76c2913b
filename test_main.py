import os
from datetime import datetime
from unittest.mock import MagicMock

import pytest

# Set environment variables before importing
os.environ["TRANSLATION_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = "sk-test"

from fastapi.testclient import TestClient

from config import ProviderConfig
from main import app, get_provider
from providers import CompletionProvider, ErrorKind, OpenAIProvider, ProviderError
from translation_prompts import DIFFICULTY_INSTRUCTIONS


def _config(api_key: str = "sk-test") -> ProviderConfig:
    return ProviderConfig(
        api_key=api_key,
        model="gpt-4.1-mini",
        temperature=0.2,
        max_tokens=2000,
        timeout=(3.0, 60.0),
    )


class StubProvider(CompletionProvider):
    name = "openai"
    credential_env = "OPENAI_API_KEY"

    def __init__(self, reply: str = "Olá, mundo.", error: Exception = None) -> None:
        super().__init__(_config(), session=MagicMock())
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_provider] = lambda: provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["provider"] == "openai"
    assert data["openai_configured"] is True
    datetime.fromisoformat(data["timestamp"])


def test_health_reports_missing_credential(client):
    app.dependency_overrides[get_provider] = lambda: OpenAIProvider(
        _config(api_key=""), session=MagicMock()
    )
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["openai_configured"] is False


def test_translate_success(client, provider):
    response = client.post(
        "/api/translate",
        json={"text": "Hello, world.", "difficulty": "facil"},
    )
    assert response.status_code == 200
    assert response.json() == {"translatedText": "Olá, mundo."}
    assert len(provider.calls) == 1
    system_prompt, user_prompt = provider.calls[0]
    assert DIFFICULTY_INSTRUCTIONS["facil"] in system_prompt
    assert '"""\nHello, world.\n"""' in user_prompt


def test_translate_response_has_cors_headers(client):
    response = client.post(
        "/api/translate",
        json={"text": "Hello, world.", "difficulty": "medio"},
    )
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.parametrize(
    "payload",
    [
        {"difficulty": "facil"},
        {"text": "", "difficulty": "facil"},
        {"text": "   \n\t", "difficulty": "facil"},
        {"text": None, "difficulty": "facil"},
    ],
)
def test_translate_missing_text(client, provider, payload):
    response = client.post("/api/translate", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]
    assert provider.calls == []


def test_translate_missing_difficulty(client, provider):
    response = client.post("/api/translate", json={"text": "Hello"})
    assert response.status_code == 400
    assert "difficulty" in response.json()["error"]
    assert provider.calls == []


def test_translate_missing_both_fields(client, provider):
    response = client.post("/api/translate", json={})
    assert response.status_code == 400
    error = response.json()["error"]
    assert "text" in error
    assert "difficulty" in error
    assert provider.calls == []


def test_translate_unknown_difficulty_uses_medium(client, provider):
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "impossivel"},
    )
    assert response.status_code == 200
    assert len(provider.calls) == 1
    assert DIFFICULTY_INSTRUCTIONS["medio"] in provider.calls[0][0]


def test_translate_english_alias(client, provider):
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "hard"},
    )
    assert response.status_code == 200
    assert DIFFICULTY_INSTRUCTIONS["dificil"] in provider.calls[0][0]


def test_translate_text_too_long(client, provider):
    response = client.post(
        "/api/translate",
        json={"text": "a" * 10001, "difficulty": "medio"},
    )
    assert response.status_code == 400
    assert "error" in response.json()
    assert provider.calls == []


def test_translate_non_object_body(client, provider):
    response = client.post("/api/translate", json=["Hello", "facil"])
    assert response.status_code == 400
    assert response.json()["error"]
    assert provider.calls == []


def test_translate_invalid_json(client, provider):
    response = client.post(
        "/api/translate",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert provider.calls == []


def test_translate_preflight(client):
    response = client.options("/api/translate")
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


@pytest.mark.parametrize("requested_method", ["POST", "GET"])
def test_translate_browser_preflight(client, provider, requested_method):
    response = client.options(
        "/api/translate",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": requested_method,
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"
    assert provider.calls == []


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "TRACE"])
def test_translate_method_not_allowed(client, provider, method):
    response = client.request(method, "/api/translate")
    assert response.status_code == 405
    assert response.json()["error"]
    assert response.headers["allow"] == "POST, OPTIONS"
    assert provider.calls == []


def test_translate_unconfigured_makes_no_call(client):
    session = MagicMock()
    app.dependency_overrides[get_provider] = lambda: OpenAIProvider(
        _config(api_key=""), session=session
    )
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "medio"},
    )
    assert response.status_code == 500
    assert "não configurado" in response.json()["error"]
    session.post.assert_not_called()


def test_translate_auth_error_differs_from_upstream(client, provider):
    provider.error = ProviderError(ErrorKind.AUTH_FAILED, "Incorrect API key provided")
    auth = client.post("/api/translate", json={"text": "Hello", "difficulty": "medio"})

    provider.error = ProviderError(ErrorKind.UPSTREAM, "Bad gateway")
    upstream = client.post("/api/translate", json={"text": "Hello", "difficulty": "medio"})

    assert auth.status_code == 500
    assert upstream.status_code == 500
    assert "OPENAI_API_KEY" in auth.json()["error"]
    assert "Bad gateway" in upstream.json()["error"]
    assert auth.json()["error"] != upstream.json()["error"]


def test_translate_error_kinds_have_distinct_messages(client, provider):
    messages = set()
    for kind in ErrorKind:
        provider.error = ProviderError(kind, "boom")
        response = client.post(
            "/api/translate", json={"text": "Hello", "difficulty": "medio"}
        )
        assert response.status_code == 500
        messages.add(response.json()["error"])
    assert len(messages) == len(ErrorKind)


def test_translate_upstream_error_does_not_leak_key(client):
    session = MagicMock()
    session.post.return_value = MagicMock(
        status_code=500,
        json=MagicMock(
            return_value={"error": {"message": "server error for key sk-test", "code": None}}
        ),
    )
    app.dependency_overrides[get_provider] = lambda: OpenAIProvider(
        _config(api_key="sk-test"), session=session
    )
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "medio"},
    )
    assert response.status_code == 500
    assert "sk-test" not in response.json()["error"]


def test_translate_unexpected_error_returns_json(client, provider):
    provider.error = RuntimeError("socket exploded")
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "medio"},
    )
    assert response.status_code == 500
    assert response.json()["error"]
    assert "socket exploded" not in response.json()["error"]

    provider.error = None
    response = client.post(
        "/api/translate",
        json={"text": "Hello", "difficulty": "medio"},
    )
    assert response.status_code == 200


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]


def test_index_script(client):
    response = client.get("/script.js")
    assert response.status_code == 200
    assert "javascript" in response.headers["content-type"]


def test_unknown_path_uses_error_body(client):
    response = client.get("/api/unknown")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
