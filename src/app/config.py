from __future__ import annotations

from functools import lru_cache

from pydantic import AnyUrl, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.app.domain.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_ANON_KEY: str = Field(..., min_length=1)
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    # Deadlines (seconds) applied by the fetch orchestrator
    READ_TIMEOUT_SECONDS: float = 10.0
    MUTATION_TIMEOUT_SECONDS: float = 5.0
    UPLOAD_TIMEOUT_SECONDS: float = 10.0
    IMAGE_PROXY_TIMEOUT_SECONDS: float = 15.0

    RECIPE_IMAGES_BUCKET: str = "recipe-images"
    PLACEHOLDER_IMAGE_URL: str = "/images/recipe-placeholder.svg"


def load_settings(**overrides: object) -> Settings:
    """
    Build settings from the environment (and `.env`).

    Missing or empty gateway credentials are fatal: the pydantic validation
    error is converted into a ConfigurationError naming every offending key.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        errors = []
        for item in exc.errors():
            key = ".".join(str(part) for part in item.get("loc", ())) or "settings"
            if item.get("type") == "missing":
                errors.append(f"{key} is required")
            else:
                errors.append(f"{key}: {item.get('msg')}")
        raise ConfigurationError(errors) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
