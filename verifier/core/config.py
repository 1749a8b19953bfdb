"""Application configuration and engine defaults."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment."""

    app_name: str = "Rule Verifier"

    # Context defaults
    optimize_fields: bool = False
    id_field: str = "_id"

    # Paths
    rules_dir: str | None = None

    # Logging
    log_level: str = "WARNING"

    model_config = {
        "env_prefix": "VERIFIER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
