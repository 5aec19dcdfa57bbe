"""Application configuration loaded from environment variables."""

from __future__ import annotations

import json
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """FleetSync application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/fleetsync.db"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # Optional static bearer token guarding the /api routes
    api_token: str = ""

    # Factorial (HR)
    factorial_api_key: str = ""
    factorial_base_url: str = "https://api.factorialhr.com/api/2026-01-01/resources"

    # MyRentACar (rental fleet)
    myrentcar_base_url: str = (
        "https://avi75427.hitech-mysolutions.com/myrentcar/api/MyRentcarServices"
    )
    myrentcar_login_credentials: str = ""

    # Upstream calls
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    page_size: int = Field(default=100, ge=1, le=1000)
    vehicle_detail_batch_size: int = Field(default=100, ge=1)

    # Reconciliation
    cleanup_batch_size: int = Field(default=100, ge=1)
    driver_team_keyword: str = "CHAUFFEUR"

    # Wincpl import
    max_upload_files: int = Field(default=100, ge=1)

    def myrentcar_credentials(self) -> dict[str, str] | None:
        """Decode the MyRentACar login JSON, or None when absent or invalid."""
        raw = self.myrentcar_login_credentials.strip()
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("MYRENTCAR_LOGIN_CREDENTIALS is not valid JSON; adapter disabled")
            return None
        if not isinstance(data, dict):
            logger.warning("MYRENTCAR_LOGIN_CREDENTIALS must be a JSON object; adapter disabled")
            return None
        return {str(key): str(value) for key, value in data.items()}
