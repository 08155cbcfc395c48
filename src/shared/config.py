"""Shared configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ConsoleSettings(BaseSettings):
    """Environment-level settings for the PunchOut console.

    URL fields left unset mean "use the YAML / built-in default".
    """
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")
    api_base_url: str | None = Field(
        default=None, validation_alias="PUNCHOUT_API_URL"
    )
    gateway_base_url: str | None = Field(
        default=None, validation_alias="PUNCHOUT_GATEWAY_URL"
    )
    config_path: str | None = Field(
        default=None, validation_alias="PUNCHOUT_CONFIG"
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }
