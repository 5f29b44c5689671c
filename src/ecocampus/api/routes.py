"""REST API endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ecocampus.ai.report import AIServiceError, generate_content
from ecocampus.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/analyze")
async def analyze(request: Request) -> JSONResponse:
    """AI proxy: run a prompt with the server-side key."""
    cfg: Settings = request.app.state.cfg
    if not cfg.ai_api_key:
        logger.error("AI proxy called but no API key is configured")
        return _error(
            "Server Configuration Error: API Key not found. "
            "Please set API_KEY in the server environment.",
            500,
        )

    try:
        body = await request.json()
    except ValueError:
        body = None
    prompt = body.get("prompt") if isinstance(body, dict) else None
    if not prompt or not isinstance(prompt, str):
        return _error("Missing prompt in request body.", 400)

    try:
        text = await generate_content(
            prompt, cfg.ai_api_key, cfg.ai_model, cfg.ai_base_url, cfg.ai_timeout
        )
    except AIServiceError as e:
        logger.error("Upstream AI error: %s", e.message)
        return _error(e.message or "Internal Server Error", 500)
    return JSONResponse({"text": text})


@router.api_route("/analyze", methods=["GET", "PUT", "PATCH", "DELETE"])
async def analyze_wrong_method() -> JSONResponse:
    return _error("Method not allowed. Use POST.", 405)
