"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.

Secrets are optional at construction time so that the settings object
can always be built; ``validate_settings`` reports missing ones and the
application lifespan refuses to start until they are provided.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic_settings import BaseSettings, SettingsConfigDict

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

DEFAULT_ALLOWED_MIME_TYPES: list[str] = [
    # Documents
    "application/pdf",
    DOCX_MIME_TYPE,
    "text/plain",
    "text/markdown",
    # Images
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
]

# Secrets the service cannot run without
REQUIRED_SECRETS: tuple[str, ...] = (
    "POSTGRES_PASSWORD",
    "OPENAI_API_KEY",
    "REQUIRED_API_KEY",
)


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required secrets (validated at startup, see ``validate_settings``):
        POSTGRES_PASSWORD, OPENAI_API_KEY, REQUIRED_API_KEY

    Optional env vars:
        POSTGRES_* connection parts, DB_* pool/retry tuning,
        MAX_FILE_SIZE, CHUNK_SIZE, CHUNK_OVERLAP, ALLOWED_MIME_TYPES (JSON list),
        OPENAI_MODEL, ORACLE_TIMEOUT, OLLAMA_*, MAX_TOKENS, TEMPERATURE,
        LOG_LEVEL
    """

    PROJECT_NAME: str = "Lectern"

    # Database
    POSTGRES_USER: str = "lectern"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "lectern"

    # Connection pool and bootstrap retry
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: float = 30.0
    DB_CONNECT_RETRIES: int = 5
    DB_CONNECT_DELAY: float = 5.0

    # Document processing
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    CHUNK_SIZE: int = 1000  # characters per chunk
    CHUNK_OVERLAP: int = 20  # words carried into the next chunk
    ALLOWED_MIME_TYPES: list[str] = DEFAULT_ALLOWED_MIME_TYPES
    TRAINING_DOCS_DIR: str = "training-docs"

    # Relevance oracle (OpenAI chat completions)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-3.5-turbo-16k"
    ORACLE_TIMEOUT: float = 60.0

    # Answer model (Ollama)
    OLLAMA_BASE_URL: str = "http://host.docker.internal:11434"
    OLLAMA_MODEL: str = "llava"
    OLLAMA_TIMEOUT: float = 120.0
    MAX_TOKENS: int = 4096
    TEMPERATURE: float = 0.7

    # Security
    REQUIRED_API_KEY: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@dataclass(frozen=True)
class StartupCheck:
    """Outcome of startup validation."""

    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


def validate_settings(settings: Settings) -> StartupCheck:
    """Report required secrets that are unset or empty."""
    missing = [name for name in REQUIRED_SECRETS if not getattr(settings, name)]
    return StartupCheck(missing=missing)


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
