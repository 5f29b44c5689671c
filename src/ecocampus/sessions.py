"""Per-browser session contexts.

Each browser gets a ``SessionContext`` keyed by the session cookie. The
context owns that browser's auth session manager and whichever view
controller the browser is currently looking at.
"""

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from typing import TypeVar

from ecocampus.auth.provider import AuthClient
from ecocampus.auth.session import DemoCredential, SessionManager
from ecocampus.views.controller import ViewController

logger = logging.getLogger(__name__)

V = TypeVar("V", bound=ViewController)

AuthClientFactory = Callable[[str | None], AuthClient]


class SessionContext:
    def __init__(self, session_id: str, auth: SessionManager) -> None:
        self.id = session_id
        self.auth = auth
        self.view: ViewController | None = None
        self.last_seen = time.monotonic()
        self._init_task: asyncio.Task[None] | None = None

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    async def ready(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the session to resolve.

        Returns False while it is still loading so the caller can show the
        loading page instead of guessing.
        """
        if self._init_task is None or self._init_task.done():
            return not self.auth.loading
        try:
            await asyncio.wait_for(asyncio.shield(self._init_task), timeout)
        except TimeoutError:
            return False
        return not self.auth.loading

    async def mount(self, view: V) -> V:
        """Make ``view`` the mounted controller, unmounting the previous one."""
        previous, self.view = self.view, view
        if previous is not None:
            await previous.unmount()
        await view.mount()
        return view

    def current(self, cls: type[V]) -> V | None:
        """The mounted controller if it is a ``cls``, else None."""
        return self.view if isinstance(self.view, cls) else None

    async def unmount(self) -> None:
        if self.view is not None:
            await self.view.unmount()
            self.view = None

    async def close(self) -> None:
        await self.unmount()
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        self.auth.close()
        await self.auth.client.close()


class SessionRegistry:
    """All live session contexts, with idle eviction."""

    def __init__(
        self,
        auth_factory: AuthClientFactory,
        demo_credentials: list[DemoCredential] | None = None,
        idle_timeout: float = 3600,
    ) -> None:
        self.auth_factory = auth_factory
        self.demo_credentials = list(demo_credentials or [])
        self.idle_timeout = idle_timeout
        self._contexts: dict[str, SessionContext] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._contexts)

    def get(self, session_id: str | None) -> SessionContext | None:
        ctx = self._contexts.get(session_id) if session_id else None
        if ctx is not None:
            ctx.touch()
        return ctx

    async def get_or_create(
        self, session_id: str | None, refresh_token: str | None = None
    ) -> SessionContext:
        ctx = self.get(session_id)
        if ctx is not None:
            return ctx
        client = self.auth_factory(refresh_token)
        ctx = SessionContext(secrets.token_urlsafe(24), SessionManager(client, self.demo_credentials))
        self._contexts[ctx.id] = ctx
        if refresh_token:
            # Restoring a remote session takes a network round trip
            ctx._init_task = asyncio.create_task(ctx.auth.initialize())
        else:
            await ctx.auth.initialize()
        logger.debug("Session %s... created", ctx.id[:4])
        return ctx

    async def evict_idle(self, now: float | None = None) -> int:
        """Close contexts idle longer than the timeout. Returns how many."""
        now = time.monotonic() if now is None else now
        stale = [c for c in self._contexts.values() if now - c.last_seen > self.idle_timeout]
        for ctx in stale:
            self._contexts.pop(ctx.id, None)
            try:
                await ctx.close()
            except Exception:
                logger.exception("Error closing session %s...", ctx.id[:4])
        if stale:
            logger.info("Evicted %d idle session(s)", len(stale))
        return len(stale)

    async def start(self) -> None:
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def close_all(self) -> None:
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        contexts, self._contexts = list(self._contexts.values()), {}
        for ctx in contexts:
            try:
                await ctx.close()
            except Exception:
                logger.exception("Error closing session %s...", ctx.id[:4])
        logger.info("Closed %d session(s)", len(contexts))

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(min(60.0, self.idle_timeout))
            try:
                await self.evict_idle()
            except Exception:
                logger.exception("Error evicting idle sessions")
