"""Application configuration via environment variables and .env file."""

from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "ECOCAMPUS_",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # "development" exposes the AI key to the requester and enables demo users
    environment: str = "production"

    # Logging
    log_level: str = "info"

    # Store backend: "sql" (local SQLite) or "rest" (hosted PostgREST)
    store_mode: str = "sql"
    db_path: Path = Path("./data/ecocampus.db")
    seed_demo_data: bool = False

    # Hosted database / auth provider
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Auth provider: "supabase" or "none" (offline, demo credentials only)
    auth_mode: str = "none"

    # Demo credentials, "email:password:ROLE:Name" entries separated by commas
    # Env: ECOCAMPUS_DEMO_USERS="admin@demo.com:password123:ADMIN:Admin"
    demo_users: Annotated[list[str], NoDecode] = []

    # Generative AI
    ai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ECOCAMPUS_AI_API_KEY", "API_KEY", "ai_api_key"),
    )
    ai_model: str = "gemini-2.5-flash"
    ai_base_url: str = "https://generativelanguage.googleapis.com"
    ai_timeout: float = 60.0

    # Polling (seconds)
    sensor_poll_interval: int = 5
    dashboard_poll_interval: int = 30

    # Browser sessions
    session_idle_timeout: int = 3600  # seconds before an idle session is evicted
    session_cookie_secure: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("demo_users", mode="before")
    @classmethod
    def parse_demo_users(cls, v: object) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [s for s in v if s]
        return []

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def client_ai_api_key(self) -> str:
        """AI key visible to the report requester; empty outside development."""
        if self.is_development and self.ai_api_key:
            return self.ai_api_key
        return ""

    def get_demo_entries(self) -> list[str]:
        """Return demo credential entries, or none at all in production."""
        if self.environment.lower() == "production":
            return []
        return self.demo_users


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
