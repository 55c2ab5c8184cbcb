from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # Backend
    api_base_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 30.0

    # Pipeline polling
    poll_interval_seconds: float = 5.0
    stall_after_polls: int = 12
    stall_timeout_seconds: float = 300.0
    max_consecutive_poll_errors: int = 5

    # Composition limits
    title_max_length: int = 100
    description_max_length: int = 500
    speed_min: float = 0.7
    speed_max: float = 1.2

    # Sandbox backend seed data (JSON in env vars, e.g. SANDBOX_USER_TOKENS='["a","b"]')
    sandbox_sound_files: dict[str, str] = {
        "rain.mp3": "Rain",
        "ocean.mp3": "Ocean waves",
        "singing_bowl.mp3": "Singing bowl",
    }
    sandbox_user_tokens: list[str] = ["sandbox-user"]
    sandbox_admin_tokens: list[str] = ["sandbox-admin"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
