"""Tests for the REST API endpoints."""

from unittest.mock import AsyncMock, patch

import httpx

from ecocampus.ai import report
from ecocampus.ai.report import AIServiceError


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_analyze_without_key(client):
    resp = client.post("/api/analyze", json={"prompt": "hi"})
    assert resp.status_code == 500
    assert resp.json()["error"].startswith("Server Configuration Error: API Key not found.")


def test_analyze_returns_text(make_client):
    client = make_client(ECOCAMPUS_AI_API_KEY="k")
    with patch("ecocampus.api.routes.generate_content", AsyncMock(return_value="report")) as gen:
        resp = client.post("/api/analyze", json={"prompt": "hi"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "report"}
    assert gen.await_args.args[:2] == ("hi", "k")


def test_analyze_missing_prompt(make_client):
    client = make_client(ECOCAMPUS_AI_API_KEY="k")
    assert client.post("/api/analyze", json={}).status_code == 400
    resp = client.post("/api/analyze", content=b"not json")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing prompt in request body."}


def test_analyze_upstream_error(make_client):
    client = make_client(ECOCAMPUS_AI_API_KEY="k")
    failure = AsyncMock(side_effect=AIServiceError("[429 RESOURCE_EXHAUSTED] quota", 429))
    with patch("ecocampus.api.routes.generate_content", failure):
        resp = client.post("/api/analyze", json={"prompt": "hi"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "[429 RESOURCE_EXHAUSTED] quota"}


def test_analyze_wrong_method(client):
    resp = client.get("/api/analyze")
    assert resp.status_code == 405
    assert resp.json() == {"error": "Method not allowed. Use POST."}


def test_unknown_api_path_is_404(client):
    resp = client.get("/api/nothing", follow_redirects=False)
    assert resp.status_code == 404
    assert "detail" in resp.json()


def test_api_routes_set_no_session_cookie(client):
    resp = client.get("/health")
    assert "ecocampus_session" not in resp.cookies


def test_analyze_non_json_upstream(make_client):
    real = report.generate_content

    async def garbled(prompt, api_key, model, base_url, timeout):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="oops"))
        return await real(prompt, api_key, model, base_url, timeout, transport)

    client = make_client(ECOCAMPUS_AI_API_KEY="k")
    with patch("ecocampus.api.routes.generate_content", garbled):
        resp = client.post("/api/analyze", json={"prompt": "hi"})
    assert resp.status_code == 500
    assert resp.json()["error"].startswith("Invalid response from AI service")
