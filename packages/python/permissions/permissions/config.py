import os

from pydantic import BaseModel, Field


class PermissionsSettings(BaseModel):
    """Runtime configuration for interacting with Ory Keto."""

    keto_read_url: str = Field(
        default_factory=lambda: os.getenv("KETO_READ_URL", "http://keto:4466")
    )
    teams_namespace: str = Field(
        default_factory=lambda: os.getenv("KETO_TEAMS_NAMESPACE", "app:teams")
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("PERMISSIONS_TIMEOUT_SECONDS", "2.0"))
    )


settings = PermissionsSettings()
