"""
Settings for the PerioLifts client, loaded from the environment and ``.env``.

Every variable is prefixed with ``PERIOLIFTS_``, e.g. ``PERIOLIFTS_POCKETBASE_URL``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PERIOLIFTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Backend selection
    # -------------------------------------------------------------------------
    backend: Literal["pocketbase", "appwrite"] = Field(
        default="pocketbase",
        description="Storage backend for workout history and sessions",
    )

    # -------------------------------------------------------------------------
    # PocketBase
    # -------------------------------------------------------------------------
    pocketbase_url: str = Field(
        default="http://localhost:8090",
        description="PocketBase server URL",
    )
    email: Optional[str] = Field(
        default=None,
        description="Account email used for automatic login",
    )
    password: Optional[str] = Field(
        default=None,
        description="Account password used for automatic login",
    )

    # -------------------------------------------------------------------------
    # Appwrite
    # -------------------------------------------------------------------------
    appwrite_endpoint: str = Field(
        default="https://cloud.appwrite.io/v1",
        description="Appwrite API endpoint",
    )
    appwrite_project_id: Optional[str] = Field(default=None, description="Appwrite project id")
    appwrite_database_id: Optional[str] = Field(default=None, description="Appwrite database id")
    appwrite_jwt: Optional[str] = Field(default=None, description="Appwrite user JWT")
    appwrite_history_collection_id: str = Field(
        default="workout_history",
        description="Appwrite collection holding workout history documents",
    )
    appwrite_sessions_collection_id: str = Field(
        default="workout_sessions",
        description="Appwrite collection holding workout session documents",
    )

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds applied to every backend request",
    )

    # -------------------------------------------------------------------------
    # Local state
    # -------------------------------------------------------------------------
    preferences_path: Path = Field(
        default=Path.home() / ".periolifts" / "preferences.json",
        description="JSON file holding unit and rest timer preferences",
    )
    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
