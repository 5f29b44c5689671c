"""AI energy report requester.

Builds a prompt over the current campus snapshot and sends it either
straight to the Gemini REST API (development, when a client-visible key is
configured) or through the same-origin ``/api/analyze`` proxy. Callers always
get text back; failures are turned into readable messages.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ecocampus.config import Settings
from ecocampus.records.models import Alert, Building, Sensor

logger = logging.getLogger(__name__)

LEAKED_KEY_MESSAGE = (
    "CRITICAL ERROR: Your API key was reported as leaked and has been blocked by Google. "
    "You must generate a new API key at aistudio.google.com and update your configuration."
)
MISSING_KEY_MESSAGE = (
    "API Key is missing. Please set the API_KEY environment variable to use AI features."
)
PROXY_PATH = "/api/analyze"


class AIServiceError(Exception):
    """The AI service or the proxy in front of it returned an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_prompt(
    buildings: Sequence[Building], alerts: Sequence[Alert], sensors: Sequence[Sensor]
) -> str:
    building_rows = [
        {"name": b.name, "kwh": b.total_consumption, "occupancy": b.occupancy, "status": b.status}
        for b in buildings
    ]
    alert_rows = [
        {"title": a.title, "msg": a.message, "severity": a.severity}
        for a in alerts
        if not a.resolved
    ]
    sensor_rows = [{"name": s.name, "val": s.value, "status": s.status} for s in sensors[:5]]
    return f"""
You are an expert Facility Manager and Energy Analyst for a large university campus.
Analyze the following snapshot of campus data and provide a concise, actionable report.

Current Data:
Buildings Status: {json.dumps(building_rows)}
Active Alerts: {json.dumps(alert_rows)}
Key Sensors: {json.dumps(sensor_rows)}

Please provide:
1. A summary of the current energy health.
2. Identification of "Wastage Hotspots" (where energy is high but occupancy might be low).
3. 3 specific recommendations to reduce carbon footprint today.
4. A prediction on potential failures based on the alerts.

Format the response in Markdown. Use bolding and lists for readability. \
Keep it professional but urgent where necessary.
"""


def _gemini_error(resp: httpx.Response) -> AIServiceError:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        detail = f"[{resp.status_code} {error.get('status', resp.reason_phrase)}] {error['message']}"
    else:
        detail = f"[{resp.status_code} {resp.reason_phrase}] {resp.text}".strip()
    return AIServiceError(detail, status_code=resp.status_code)


def _json_body(resp: httpx.Response, source: str) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        raise AIServiceError(
            f"Invalid response from {source} (status {resp.status_code})",
            status_code=resp.status_code,
        ) from None
    if not isinstance(data, dict):
        raise AIServiceError(f"Invalid response from {source}", status_code=resp.status_code)
    return data


def _response_text(data: dict[str, Any]) -> str:
    parts: list[str] = []
    for candidate in data.get("candidates") or []:
        content = candidate.get("content") or {}
        parts.extend(p["text"] for p in content.get("parts") or [] if p.get("text"))
        if parts:
            break
    return "".join(parts)


async def generate_content(
    prompt: str,
    api_key: str,
    model: str,
    base_url: str,
    timeout: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Call Gemini ``generateContent`` and return the concatenated text.

    Raises AIServiceError on transport failures and error responses.
    """
    url = f"{base_url.rstrip('/')}/v1beta/models/{model}:generateContent"
    body = {"contents": [{"parts": [{"text": prompt}]}]}
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(url, json=body, headers={"x-goog-api-key": api_key})
    except httpx.HTTPError as e:
        raise AIServiceError(str(e) or type(e).__name__) from e
    if resp.is_error:
        raise _gemini_error(resp)
    return _response_text(_json_body(resp, "AI service"))


async def _via_proxy(prompt: str, proxy_client: httpx.AsyncClient) -> str:
    try:
        resp = await proxy_client.post(PROXY_PATH, json={"prompt": prompt})
    except httpx.HTTPError as e:
        raise AIServiceError(str(e) or type(e).__name__) from e
    if resp.is_error:
        try:
            detail = resp.json().get("error")
        except (ValueError, AttributeError):
            detail = None
        raise AIServiceError(
            detail or f"Server responded with {resp.status_code}", status_code=resp.status_code
        )
    text = _json_body(resp, "server").get("text")
    return text if isinstance(text, str) and text else "No analysis returned from server."


def describe_failure(message: str, model: str) -> str:
    """Turn an AI failure into the text shown in place of the report."""
    lowered = message.lower()
    if any(word in lowered for word in ("leaked", "revoked", "compromised")):
        return LEAKED_KEY_MESSAGE
    msg = "Failed to generate AI report."
    if message:
        msg += f" Error: {message}"
    if "404" in msg and "model" not in msg:
        msg += " (Proxy endpoint not found. Ensure the server is running with an AI key configured)."
    if "model" in msg and "404" in msg:
        msg += f" (Model '{model}' not found)."
    if "403" in msg or "permission" in msg:
        msg += " (Permission denied. Check API key restrictions)."
    if "429" in msg:
        msg += " (Quota exceeded)."
    return msg


async def generate_energy_report(
    buildings: Sequence[Building],
    alerts: Sequence[Alert],
    sensors: Sequence[Sensor],
    cfg: Settings,
    proxy_client: httpx.AsyncClient | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Request a narrative report. Never raises; errors come back as text."""
    prompt = build_prompt(buildings, alerts, sensors)
    client_key = cfg.client_ai_api_key
    try:
        if client_key:
            logger.info("Requesting AI report directly (key %s...)", client_key[:4])
            text = await generate_content(
                prompt, client_key, cfg.ai_model, cfg.ai_base_url, cfg.ai_timeout, transport
            )
            return text or "No analysis could be generated."
        if proxy_client is None:
            return MISSING_KEY_MESSAGE
        logger.info("Requesting AI report through %s", PROXY_PATH)
        return await _via_proxy(prompt, proxy_client)
    except AIServiceError as e:
        logger.error("AI report failed: %s", e.message)
        return describe_failure(e.message, cfg.ai_model)
    except Exception as e:
        logger.exception("Unexpected error generating AI report")
        return describe_failure(str(e) or type(e).__name__, cfg.ai_model)
