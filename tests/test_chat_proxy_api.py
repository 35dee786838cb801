import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.exception_handlers import register_exception_handlers
from app.llm.api.handler import LLMHandler
from app.llm.api.route import chat_router, llm_router
from app.llm.service.errors import ModelUnavailable, RateLimited, TransientError
from app.llm.service.llm_service import LLMService
from app.llm.service.router_service import FallbackRouter
from conftest import FakeProvider, candidates


VALID_BODY = {
    "contents": [{"role": "user", "parts": [{"text": "How do I price my product?"}]}],
    "systemInstruction": "You are AN Business Mind",
}


def build_app(providers, candidate_list, **router_kwargs) -> FastAPI:
    router = FallbackRouter(providers, candidate_list, **router_kwargs)
    service = LLMService(router, credentials={"gemini": "AIzaSyExampleKey"})
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(chat_router)
    app.include_router(llm_router)
    app.state.llm_handler = LLMHandler(service)
    return app


@pytest.fixture
def gemini():
    return FakeProvider("gemini", {"gemini-2.0-flash": ModelUnavailable("404"), "gemini-2.5-flash": "Start with value."})


@pytest.fixture
def client(gemini):
    app = build_app({"gemini": gemini}, candidates("gemini:gemini-2.0-flash", "gemini:gemini-2.5-flash"))
    return TestClient(app)


def test_successful_chat_returns_text_and_serving_model(client, gemini):
    res = client.post("/chat", json=VALID_BODY)

    assert res.status_code == 200
    assert res.json() == {"text": "Start with value.", "usedModel": "gemini-2.5-flash", "usedProvider": "gemini"}
    assert gemini.calls == ["gemini-2.0-flash", "gemini-2.5-flash"]


@pytest.mark.parametrize(
    "body",
    [
        b"{not json",
        b"[]",
        b'{"contents": []}',
        b'{"contents": [{"role": "system", "parts": []}]}',
        b"",
    ],
)
def test_bad_requests_answer_400_without_calling_a_provider(client, gemini, body):
    res = client.post("/chat", content=body, headers={"Content-Type": "application/json"})

    assert res.status_code == 400
    assert res.json()["error"] == "Bad Request"
    assert gemini.calls == []


def test_missing_credential_answers_500_without_calling_a_provider():
    gemini = FakeProvider("gemini", enabled=False)
    client = TestClient(build_app({"gemini": gemini}, candidates("gemini:gemini-2.0-flash")))

    res = client.post("/chat", json=VALID_BODY)

    assert res.status_code == 500
    assert res.json() == {"error": "API_KEY is not configured"}
    assert gemini.calls == []


def test_all_candidates_failing_reports_last_error_with_tip():
    gemini = FakeProvider("gemini", {"a": TransientError("overloaded"), "b": RateLimited("quota exceeded")})
    client = TestClient(build_app({"gemini": gemini}, candidates("gemini:a", "gemini:b")))

    res = client.post("/chat", json=VALID_BODY)

    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "AI Connection Error"
    assert body["details"] == "quota exceeded"
    assert "diag=1" in body["tip"]
    assert body["errorKind"] == "RateLimited"
    assert [a["candidate"] for a in body["attempts"]] == ["gemini:a", "gemini:b"]
    assert body["attempts"][0]["errorKind"] == "TransientError"


@pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE"])
def test_other_methods_are_not_allowed(client, method):
    res = client.request(method, "/chat")

    assert res.status_code == 405
    assert res.json() == {"error": "Method not allowed"}


def test_get_without_diag_is_not_allowed(client):
    res = client.get("/chat")
    assert res.status_code == 405


def test_diag_probes_every_candidate(client):
    res = client.get("/chat", params={"diag": "1"})

    assert res.status_code == 200
    report = res.json()
    assert report["diagnostic"] == "Model Probe Results"
    assert report["credentialConfigured"] is True
    assert report["providers"] == [{"provider": "gemini", "configured": True, "keyPrefix": "AIzaS..."}]
    assert [r["status"] for r in report["results"]] == ["FAILED", "SUCCESS"]
    assert "AIzaSyExampleKey" not in res.text


def test_diag_without_credentials_skips_probing():
    gemini = FakeProvider("gemini", enabled=False)
    client = TestClient(build_app({"gemini": gemini}, candidates("gemini:gemini-2.0-flash")))

    report = client.get("/chat", params={"diag": "1"}).json()

    assert report["credentialConfigured"] is False
    assert report["results"] == []
    assert gemini.calls == []


def test_provider_listing(client):
    client.post("/chat", json=VALID_BODY)

    res = client.get("/llm/providers")

    assert res.status_code == 200
    providers = res.json()["data"]["providers"]
    assert providers[0]["name"] == "gemini"
    assert providers[0]["status"] == "active"


def test_missing_handler_is_503():
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(chat_router)

    res = TestClient(app).post("/chat", json=VALID_BODY)

    assert res.status_code == 503
