from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # ------------------------------------------------------------------
    # Connector mode
    # ------------------------------------------------------------------
    # "simulator": in-memory chunk/analysis/completion services (default)
    # "live":      HTTP connectors against the URLs below
    connector_mode: Literal["simulator", "live"] = "simulator"

    # ------------------------------------------------------------------
    # External services
    # ------------------------------------------------------------------
    chunk_service_url: str = "http://localhost:5000/api"
    analysis_service_url: str = "http://localhost:5000/api"
    completion_service_url: str = "http://localhost:5000/api/ai/complete"
    api_token: Optional[str] = None  # sent as Bearer token when set

    chunk_timeout_seconds: float = 60.0
    analysis_timeout_seconds: float = 120.0
    completion_timeout_seconds: float = 60.0

    # JSON file mapping document id -> list of chunk texts, used by the simulator
    simulator_documents_file: Optional[str] = None

    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
