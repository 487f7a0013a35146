"""Application settings loaded from .env file."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Metadata cache
    METADATA_TTL_MS: int = 600_000

    # Connection defaults offered to the orchestrator's configuration form
    DEFAULT_QUERY_TIMEOUT_SECONDS: int = 30
    DEFAULT_CONNECTION_TIMEOUT_SECONDS: int = 15
    DEFAULT_MAX_SESSIONS: int = 5
    DEFAULT_SESSION_IDLE_TIMEOUT_SECONDS: int = 300

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_SQL_STATEMENTS: bool = True

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
