"""Auth session manager: maps remote sessions to a local user.

State machine over loading -> anonymous | authenticated. Demo
credentials, when configured, let a user in without a remote session;
such users carry an id prefixed with ``DEMO_ID_PREFIX``.
"""

import enum
import logging
import secrets
import uuid
from dataclasses import dataclass

from ecocampus.auth.provider import AuthClient, AuthError, AuthEvent, RemoteSession
from ecocampus.records.models import User, UserRole

logger = logging.getLogger(__name__)

DEMO_ID_PREFIX = "demo-"


class AuthState(enum.StrEnum):
    loading = "loading"
    anonymous = "anonymous"
    authenticated = "authenticated"


@dataclass(frozen=True)
class DemoCredential:
    email: str
    password: str
    role: UserRole
    name: str


def parse_demo_credentials(entries: list[str]) -> list[DemoCredential]:
    """Parse ``email:password:ROLE:Name`` entries, skipping malformed ones."""
    credentials: list[DemoCredential] = []
    for entry in entries:
        parts = entry.split(":", 3)
        if len(parts) < 3:
            logger.warning("Ignoring malformed demo credential entry")
            continue
        email, password, role = parts[0].strip(), parts[1], parts[2].strip().upper()
        if role not in UserRole.__members__:
            logger.warning("Ignoring demo credential for %s: unknown role %s", email, role)
            continue
        name = parts[3].strip() if len(parts) == 4 and parts[3].strip() else email.split("@")[0]
        credentials.append(DemoCredential(email, password, UserRole(role), name))
    return credentials


def user_from_session(session: RemoteSession) -> User:
    """Role defaults to STUDENT; name falls back to the email's local part."""
    metadata = session.metadata or {}
    role_value = str(metadata.get("role") or "").upper()
    role = UserRole(role_value) if role_value in UserRole.__members__ else UserRole.STUDENT
    email = session.email or ""
    name = metadata.get("name") or (email.split("@")[0] if email else "") or "User"
    return User(id=session.user_id, name=str(name), email=email, role=role)


def is_demo_user(user: User | None) -> bool:
    return user is not None and user.id.startswith(DEMO_ID_PREFIX)


class SessionManager:
    """Owns the user of one browser session. The only writer of that state."""

    def __init__(self, client: AuthClient, demo_credentials: list[DemoCredential] | None = None):
        self.client = client
        self.demo_credentials = list(demo_credentials or [])
        self.state = AuthState.loading
        self.user: User | None = None
        self._unsubscribe = client.on_auth_state_change(self._on_auth_event)

    @property
    def loading(self) -> bool:
        return self.state == AuthState.loading

    async def initialize(self) -> None:
        """Resolve an existing remote session, if any."""
        try:
            session = await self.client.get_session()
        except AuthError as e:
            logger.warning("Session lookup failed: %s", e.message)
            session = None
        if session is not None:
            self._set_user(user_from_session(session))
        elif self.state == AuthState.loading:
            self.state = AuthState.anonymous

    async def login(self, email: str, password: str) -> User:
        """Sign in remotely, falling back to the demo credential table."""
        try:
            session = await self.client.sign_in_with_password(email, password)
        except Exception as e:
            logger.warning("Remote sign-in failed, checking demo credentials: %s", e)
            demo = self._match_demo(email, password)
            if demo is None:
                raise
            user = User(
                id=f"{DEMO_ID_PREFIX}{uuid.uuid4().hex}",
                name=demo.name,
                email=demo.email,
                role=demo.role,
            )
            self._set_user(user)
            logger.info("Demo session started for %s (%s)", user.email, user.role)
            return user
        # The SIGNED_IN notification has usually mapped the session already
        user = user_from_session(session)
        if self.user != user:
            self._set_user(user)
        return user

    async def sign_up(self, email: str, password: str, role: UserRole) -> None:
        """Register a remote account; failures propagate to the caller."""
        await self.client.sign_up(
            email, password, {"role": role.value, "name": email.split("@")[0]}
        )
        logger.info("Registered %s as %s", email, role)

    async def logout(self) -> None:
        """Sign out remotely and clear the local user regardless of the outcome."""
        try:
            await self.client.sign_out()
        except AuthError as e:
            logger.warning("Remote sign-out failed: %s", e.message)
        finally:
            self.user = None
            self.state = AuthState.anonymous

    def close(self) -> None:
        self._unsubscribe()

    def _match_demo(self, email: str, password: str) -> DemoCredential | None:
        for demo in self.demo_credentials:
            email_match = secrets.compare_digest(demo.email.encode(), email.encode())
            password_match = secrets.compare_digest(demo.password.encode(), password.encode())
            if email_match and password_match:
                return demo
        return None

    def _set_user(self, user: User) -> None:
        self.user = user
        self.state = AuthState.authenticated

    def _on_auth_event(self, event: AuthEvent, session: RemoteSession | None) -> None:
        if session is not None:
            self._set_user(user_from_session(session))
            return
        # Demo users have no remote session to end
        if not is_demo_user(self.user):
            self.user = None
            self.state = AuthState.anonymous
        logger.debug("Auth event %s handled, state=%s", event, self.state)
