"""Settings for the checklist FastAPI application."""

from __future__ import annotations

import os
from typing import List

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

# Search for the nearest .env so running from subdirectories still loads root config.
load_dotenv(find_dotenv(usecwd=True))


def _default_cors_origins() -> List[str]:
    raw = os.getenv("CORE_CORS_ALLOW_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    base_url = os.getenv("APP_BASE_URL")
    return [base_url.strip()] if base_url else []


class ServerSettings(BaseModel):
    """API metadata and HTTP policy for the app."""

    api_title: str = "Team Checklist API"
    api_version: str = "0.1.0"
    log_level: str = Field(
        default_factory=lambda: (os.getenv("LOG_LEVEL") or "INFO").upper()
    )
    cors_allow_origins: List[str] = Field(default_factory=_default_cors_origins)


settings = ServerSettings()
