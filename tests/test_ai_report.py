"""Tests for the AI report requester."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from ecocampus.ai.report import (
    LEAKED_KEY_MESSAGE,
    MISSING_KEY_MESSAGE,
    build_prompt,
    describe_failure,
    generate_content,
    generate_energy_report,
)
from ecocampus.config import Settings
from ecocampus.records.models import Alert, Building, Sensor


def _snapshot():
    buildings = [Building(id="B1", name="Library", total_consumption=120.5, occupancy=40)]
    alerts = [
        Alert(id="1", title="AC Left On", message="Hall 3", severity="medium"),
        Alert(id="2", title="Old", message="done", resolved=True),
    ]
    sensors = [Sensor(id=f"S-{i}", name=f"Sensor {i}", value=i) for i in range(7)]
    return buildings, alerts, sensors


def _gemini_ok(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestPrompt:
    def test_snapshot_serialized(self):
        prompt = build_prompt(*_snapshot())
        assert '"kwh": 120.5' in prompt
        assert '"title": "AC Left On"' in prompt
        assert "Old" not in prompt
        assert "Sensor 4" in prompt
        assert "Sensor 5" not in prompt
        assert "Format the response in Markdown" in prompt


class TestDescribeFailure:
    def test_leaked_key_gets_fixed_message(self):
        msg = describe_failure("[403 PERMISSION_DENIED] Your API key was reported as leaked.", "m")
        assert msg == LEAKED_KEY_MESSAGE

    def test_revoked_key(self):
        assert describe_failure("API key revoked", "m") == LEAKED_KEY_MESSAGE

    def test_quota(self):
        msg = describe_failure("[429 RESOURCE_EXHAUSTED] quota", "m")
        assert msg.startswith("Failed to generate AI report. Error: ")
        assert msg.endswith("(Quota exceeded).")

    def test_permission(self):
        assert "(Permission denied." in describe_failure("permission missing", "m")

    def test_proxy_not_found(self):
        assert "(Proxy endpoint not found." in describe_failure("Server responded with 404", "m")

    def test_model_not_found(self):
        msg = describe_failure("[404 NOT_FOUND] models/gemini-x is not found", "gemini-x")
        assert msg.endswith("(Model 'gemini-x' not found).")


class TestGenerateContent:
    @pytest.mark.asyncio
    async def test_calls_generate_content_endpoint(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_gemini_ok("Report"))

        text = await generate_content(
            "hello",
            "key-123",
            "gemini-2.5-flash",
            "https://ai.example",
            transport=httpx.MockTransport(handler),
        )
        assert text == "Report"
        assert seen[0].url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert seen[0].headers["x-goog-api-key"] == "key-123"
        assert json.loads(seen[0].content) == {"contents": [{"parts": [{"text": "hello"}]}]}


class TestGenerateEnergyReport:
    @pytest.mark.asyncio
    async def test_direct_call_in_development(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_gemini_ok("## Summary"))

        cfg = Settings(environment="development", ai_api_key="key-123")
        text = await generate_energy_report(
            *_snapshot(), cfg, transport=httpx.MockTransport(handler)
        )
        assert text == "## Summary"

    @pytest.mark.asyncio
    async def test_leaked_key_from_service(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                json={
                    "error": {
                        "code": 403,
                        "message": "Your API key was reported as leaked. Please use another API key.",
                        "status": "PERMISSION_DENIED",
                    }
                },
            )

        cfg = Settings(environment="development", ai_api_key="key-123")
        text = await generate_energy_report(
            *_snapshot(), cfg, transport=httpx.MockTransport(handler)
        )
        assert text == LEAKED_KEY_MESSAGE

    @pytest.mark.asyncio
    async def test_production_uses_proxy(self):
        proxy = AsyncMock(spec=httpx.AsyncClient)
        proxy.post.return_value = httpx.Response(200, json={"text": "From proxy"})
        cfg = Settings(environment="production", ai_api_key="server-key")
        text = await generate_energy_report(*_snapshot(), cfg, proxy_client=proxy)
        assert text == "From proxy"
        path = proxy.post.await_args.args[0]
        assert path == "/api/analyze"
        assert "Library" in proxy.post.await_args.kwargs["json"]["prompt"]

    @pytest.mark.asyncio
    async def test_proxy_error_is_described(self):
        proxy = AsyncMock(spec=httpx.AsyncClient)
        proxy.post.return_value = httpx.Response(500, json={"error": "[429 RESOURCE_EXHAUSTED] x"})
        cfg = Settings(environment="production")
        text = await generate_energy_report(*_snapshot(), cfg, proxy_client=proxy)
        assert text.endswith("(Quota exceeded).")

    @pytest.mark.asyncio
    async def test_proxy_unreachable(self):
        proxy = AsyncMock(spec=httpx.AsyncClient)
        proxy.post.side_effect = httpx.ConnectError("refused")
        cfg = Settings(environment="production")
        text = await generate_energy_report(*_snapshot(), cfg, proxy_client=proxy)
        assert text == "Failed to generate AI report. Error: refused"

    @pytest.mark.asyncio
    async def test_no_key_and_no_proxy(self):
        cfg = Settings(environment="production")
        assert await generate_energy_report(*_snapshot(), cfg) == MISSING_KEY_MESSAGE

    @pytest.mark.asyncio
    async def test_non_json_service_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        cfg = Settings(environment="development", ai_api_key="key-123")
        text = await generate_energy_report(
            *_snapshot(), cfg, transport=httpx.MockTransport(handler)
        )
        assert text.startswith("Failed to generate AI report. Error: Invalid response")

    @pytest.mark.asyncio
    async def test_non_json_proxy_response(self):
        proxy = AsyncMock(spec=httpx.AsyncClient)
        proxy.post.return_value = httpx.Response(200, text="oops")
        cfg = Settings(environment="production")
        text = await generate_energy_report(*_snapshot(), cfg, proxy_client=proxy)
        assert text.startswith("Failed to generate AI report. Error: Invalid response")

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_text(self):
        proxy = AsyncMock(spec=httpx.AsyncClient)
        proxy.post.side_effect = RuntimeError("boom")
        cfg = Settings(environment="production")
        text = await generate_energy_report(*_snapshot(), cfg, proxy_client=proxy)
        assert text == "Failed to generate AI report. Error: boom"
