import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Set env vars BEFORE any imports that might cache them
os.environ["NOAH_DEV_AUTH_BYPASS"] = "1"
os.environ["NOAH_USAGE_FORCE_FILE"] = "1"
os.environ.setdefault("NOAH_ENV", "test")

from api.dependencies import get_gateway  # noqa: E402
from api.main import app  # noqa: E402
from noah_ai.gateway import AIGateway  # noqa: E402
from noah_ai.llm import ModelResponse  # noqa: E402
from noah_ai.usage import Entitlement, save_entitlement  # noqa: E402


client = TestClient(app)
USER_HEADERS = {"X-User-Id": "tester-uid"}


class StubInvoker:
    def __init__(self, text='{"subtasks": [{"title": "Pack", "estimatedMinutes": 30}]}'):
        self.text = text
        self.calls = []

    def invoke(self, system_prompt, user_prompt, structured_output=True):
        self.calls.append((system_prompt, user_prompt))
        return ModelResponse(text=self.text, input_tokens=80, output_tokens=20)


class StubFetcher:
    def fetch_transcript(self, url):
        return "Transcript text"

    def fetch_metadata(self, url):
        return None


@pytest.fixture
def invoker(tmp_path, monkeypatch):
    monkeypatch.setenv("NOAH_USAGE_STORAGE_DIR", str(tmp_path))
    stub = StubInvoker()
    app.dependency_overrides[get_gateway] = lambda: AIGateway(stub, StubFetcher())
    yield stub
    app.dependency_overrides.pop(get_gateway, None)


def test_health_check():
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["services"]["usage_store"] == "file"
    assert "model" in body


def test_call_success(invoker):
    save_entitlement(Entitlement("tester-uid", plan="premium"))

    resp = client.post(
        "/ai/call",
        json={"action": "breakdown", "context": {"task": {"title": "Move house"}}, "language": "en"},
        headers=USER_HEADERS,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["subtasks"][0]["title"] == "Pack"
    assert body["tokensUsed"] == {"input": 80, "output": 20}
    assert body["monthlyUsage"] == {"used": 100, "limit": 500_000}


def test_usage_endpoint(invoker):
    save_entitlement(Entitlement("tester-uid", plan="team"))
    client.post("/ai/call", json={"action": "prioritize", "context": {"tasks": []}}, headers=USER_HEADERS)

    resp = client.get("/ai/usage", headers=USER_HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["plan"] == "team"
    assert body["used"] == 100
    assert body["limit"] == 2_000_000
    assert body["requestCount"] == 1


def test_free_plan_is_forbidden(invoker):
    resp = client.post("/ai/call", json={"action": "prioritize", "context": {}}, headers=USER_HEADERS)

    assert resp.status_code == 403
    assert resp.json() == {
        "error": {
            "status": "permission-denied",
            "message": "AI features require Premium or Team plan",
        }
    }
    assert invoker.calls == []


def test_budget_exhausted(invoker):
    from noah_ai.usage import increment_usage

    save_entitlement(Entitlement("tester-uid", plan="premium"))
    increment_usage("tester-uid", 500_000, 0)

    resp = client.post("/ai/call", json={"action": "prioritize", "context": {}}, headers=USER_HEADERS)
    assert resp.status_code == 429
    assert resp.json()["error"]["status"] == "resource-exhausted"


def test_unknown_action(invoker):
    resp = client.post("/ai/call", json={"action": "summarize", "context": {}}, headers=USER_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == {"status": "invalid-argument", "message": "Unsupported action: summarize"}


def test_video_without_source(invoker):
    save_entitlement(Entitlement("tester-uid", plan="premium"))
    resp = client.post("/ai/call", json={"action": "youtube_to_note", "context": {}}, headers=USER_HEADERS)
    assert resp.status_code == 412
    assert resp.json()["error"]["status"] == "failed-precondition"


def test_malformed_body(invoker):
    resp = client.post("/ai/call", json={"action": "prioritize", "context": "nope"}, headers=USER_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"]["status"] == "invalid-argument"


def test_missing_user_header(invoker):
    resp = client.post("/ai/call", json={"action": "prioritize"})
    assert resp.status_code == 401
    assert resp.json()["error"]["status"] == "unauthenticated"


def test_bearer_token_verified(invoker, monkeypatch):
    monkeypatch.delenv("NOAH_DEV_AUTH_BYPASS")
    save_entitlement(Entitlement("firebase-uid", plan="premium"))

    with patch("noah_ai.api.auth.ensure_firebase_app"), \
            patch("noah_ai.api.auth.firebase_auth.verify_id_token", return_value={"uid": "firebase-uid"}) as verify:
        resp = client.post(
            "/ai/call",
            json={"action": "prioritize", "context": {"tasks": []}},
            headers={"Authorization": "Bearer good-token"},
        )

    assert resp.status_code == 200
    verify.assert_called_once_with("good-token")


def test_bad_bearer_token(invoker, monkeypatch):
    monkeypatch.delenv("NOAH_DEV_AUTH_BYPASS")

    with patch("noah_ai.api.auth.ensure_firebase_app"), \
            patch("noah_ai.api.auth.firebase_auth.verify_id_token", side_effect=ValueError("expired")):
        resp = client.post(
            "/ai/call",
            json={"action": "prioritize"},
            headers={"Authorization": "Bearer stale"},
        )

    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid authentication token"
    assert invoker.calls == []


def test_null_language_defaults(invoker):
    save_entitlement(Entitlement("tester-uid", plan="premium"))

    resp = client.post(
        "/ai/call",
        json={"action": "prioritize", "context": {"tasks": []}, "language": None},
        headers=USER_HEADERS,
    )

    assert resp.status_code == 200
    system_prompt, _ = invoker.calls[0]
    assert "한국어로 응답하세요." in system_prompt


def test_usage_works_without_model_configured(tmp_path, monkeypatch):
    from noah_ai.errors import Internal

    def unconfigured_gateway():
        raise Internal("AI processing failed. Please try again.")

    monkeypatch.setenv("NOAH_USAGE_STORAGE_DIR", str(tmp_path))
    app.dependency_overrides[get_gateway] = unconfigured_gateway
    try:
        save_entitlement(Entitlement("tester-uid", plan="premium"))
        resp = client.get("/ai/usage", headers=USER_HEADERS)
    finally:
        app.dependency_overrides.pop(get_gateway, None)

    assert resp.status_code == 200
    assert resp.json()["plan"] == "premium"
    assert resp.json()["used"] == 0


def test_health_reports_storage_backend():
    with patch("api.main.force_file_fallback", return_value=False):
        resp = client.get("/health")
    assert resp.json()["services"]["usage_store"] == "firestore"
