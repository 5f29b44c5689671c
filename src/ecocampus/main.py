"""EcoCampus application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ecocampus import database
from ecocampus.auth.provider import OfflineAuthClient, SupabaseAuthClient
from ecocampus.auth.session import parse_demo_credentials
from ecocampus.config import Settings, load_config, settings
from ecocampus.sessions import AuthClientFactory, SessionRegistry
from ecocampus.store.client import StoreClient
from ecocampus.store.mock import seed_store

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

SESSION_COOKIE = "ecocampus_session"
REFRESH_COOKIE = "ecocampus_refresh"


def _create_store(cfg: Settings) -> StoreClient:
    """Factory: instantiate the configured table backend."""
    if cfg.store_mode == "rest":
        from ecocampus.store.rest import RestTableBackend

        if cfg.supabase_url and cfg.supabase_anon_key:
            return StoreClient(RestTableBackend(cfg.supabase_url, cfg.supabase_anon_key))
        logger.warning("REST store selected but Supabase credentials not configured")
    elif cfg.store_mode != "sql":
        logger.warning("Unknown store mode '%s', using sql", cfg.store_mode)

    from ecocampus.store.sql import SqlTableBackend

    return StoreClient(SqlTableBackend(database.engine))


def _create_auth_factory(cfg: Settings) -> AuthClientFactory:
    """Factory: build one auth client per browser session."""
    if cfg.auth_mode == "supabase":
        url, key = cfg.supabase_url, cfg.supabase_anon_key
        if url and key:
            return lambda refresh_token: SupabaseAuthClient(url, key, refresh_token=refresh_token)
        logger.warning("Supabase auth selected but credentials not configured")
    elif cfg.auth_mode != "none":
        logger.warning("Unknown auth mode '%s', auth disabled", cfg.auth_mode)
    return lambda refresh_token: OfflineAuthClient()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    cfg = load_config()
    app.state.cfg = cfg

    if cfg.store_mode != "rest":
        if database.engine.url.database:
            cfg.db_path.parent.mkdir(parents=True, exist_ok=True)
        database.init_db()
        logger.info("Database initialized")

    store = _create_store(cfg)
    app.state.store = store
    if cfg.seed_demo_data:
        await seed_store(store)

    demo_credentials = parse_demo_credentials(cfg.get_demo_entries())
    if demo_credentials:
        logger.info("Demo sign-in enabled for %d account(s)", len(demo_credentials))
    registry = SessionRegistry(
        _create_auth_factory(cfg), demo_credentials, idle_timeout=cfg.session_idle_timeout
    )
    await registry.start()
    app.state.sessions = registry

    # Reports without a client-visible key go through /api/analyze in-process
    app.state.proxy_client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://ecocampus.internal",
        timeout=cfg.ai_timeout,
    )
    key_status = f"present ({cfg.ai_api_key[:4]}...)" if cfg.ai_api_key else "MISSING"
    logger.info("AI API key: %s", key_status)

    yield

    await registry.close_all()
    await app.state.proxy_client.aclose()
    await store.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="EcoCampus",
    description="Campus energy and IoT monitoring",
    version="0.1.0",
    lifespan=lifespan,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' https://unpkg.com; "
            "style-src 'self' 'unsafe-inline'"
        )
        return response


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Attach the browser's session context to ``request.state.session``.

    API and health routes are stateless and skip the session lookup.
    """

    async def dispatch(self, request, call_next):
        path = request.url.path
        if path == "/health" or path.startswith("/api/"):
            return await call_next(request)

        registry: SessionRegistry = request.app.state.sessions
        session_id = request.cookies.get(SESSION_COOKIE)
        refresh_cookie = request.cookies.get(REFRESH_COOKIE)
        ctx = await registry.get_or_create(session_id, refresh_cookie)
        request.state.session = ctx

        response = await call_next(request)

        secure = settings.session_cookie_secure
        if ctx.id != session_id:
            response.set_cookie(
                SESSION_COOKIE, ctx.id, httponly=True, samesite="lax", secure=secure
            )
        refresh_token = getattr(ctx.auth.client, "refresh_token", None)
        if refresh_token and refresh_token != refresh_cookie:
            response.set_cookie(
                REFRESH_COOKIE, refresh_token, httponly=True, samesite="lax", secure=secure
            )
        elif not refresh_token and refresh_cookie and not ctx.auth.loading:
            response.delete_cookie(REFRESH_COOKIE)
        return response


app.add_middleware(SessionCookieMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# Register routers
from ecocampus.api.routes import router as api_router  # noqa: E402
from ecocampus.ui.routes import router as ui_router  # noqa: E402

app.include_router(api_router)
app.include_router(ui_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.exception_handler(404)
async def not_found(request: Request, exc: HTTPException) -> Response:
    """Unknown pages fall back to the landing page; unknown API paths stay 404."""
    if request.url.path.startswith("/api/"):
        return JSONResponse({"detail": exc.detail}, status_code=404)
    return RedirectResponse("/", status_code=303)


def main() -> None:
    import uvicorn

    logger.info("Starting EcoCampus on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
