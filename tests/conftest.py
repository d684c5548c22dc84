"""
Pytest configuration and fixtures
"""
import json

import httpx
import pytest

from app import create_app
from config import Settings
from genai_client import GenerationClient
from services import build_services

EXAMPLE_RESULT = {
    "analysis": "Positioning weakness identified.",
    "suggestions": ["Rotate vision to flank earlier"],
    "errorsDetected": ["Repeated death to identical angle"],
}


class FakeModel:
    """Stands in for the chat-completions endpoint behind an httpx MockTransport."""

    def __init__(self):
        self.calls = 0
        self.requests = []
        self.content = json.dumps(EXAMPLE_RESULT)
        self.choices = None
        self.status = 200
        self.error_body = {"error": {"message": "quota exceeded", "type": "rate_limit"}}
        self.fail_connect = False
        self.fail_timeout = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.requests.append(json.loads(request.content))
        if self.fail_connect:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_timeout:
            raise httpx.ReadTimeout("read timed out", request=request)
        if self.status != 200:
            return httpx.Response(self.status, json=self.error_body)

        choices = self.choices
        if choices is None:
            choices = [{
                "index": 0,
                "message": {"role": "assistant", "content": self.content},
                "finish_reason": "stop",
            }]
        return httpx.Response(200, json={
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 0,
            "model": "test-model",
            "choices": choices,
        })


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        APP_ID="test-app",
        GENAI_API_KEY="test-key",
        GENAI_MODEL="test-model",
        STORAGE_BACKEND="local",
        LOCAL_STORAGE_DIR=str(tmp_path / "uploads"),
        PUBLIC_BASE_URL="http://testserver",
        SECRET_KEY="test-secret",
        AUDIT_LOG_PATH=str(tmp_path / "audit.txt"),
    )


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def services(settings, fake_model):
    client = GenerationClient.from_settings(settings, transport=httpx.MockTransport(fake_model.handler))
    bundle = build_services(settings, generation_client=client)
    yield bundle
    bundle.close()


@pytest.fixture
def store(services):
    return services.result_store


@pytest.fixture
def app(services):
    app = create_app(services=services)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(services):
    def _headers(user_id="player-1"):
        return {"Authorization": f"Bearer {services.identity.issue_token(user_id)}"}
    return _headers
