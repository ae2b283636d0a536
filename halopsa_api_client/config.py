"""Configuration for the HaloPSA client, read once at startup."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SWAGGER_PATH = Path(__file__).parent / "swagger.json"


class HaloPSASettings(BaseSettings):
    """Connection settings for a HaloPSA instance.

    Values come from keyword arguments or ``HALOPSA_*`` environment
    variables.  Credentials are deliberately not validated here: a
    missing or wrong value surfaces as an authentication failure on
    the first call.
    """

    model_config = SettingsConfigDict(
        env_prefix="HALOPSA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    url: str = ""
    client_id: str = ""
    client_secret: str = ""
    tenant: str = ""

    swagger_path: Optional[Path] = None
    timeout: float = 30.0
    log_level: str = "INFO"

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def description_path(self) -> Path:
        """Path of the API description document to browse."""
        return self.swagger_path or DEFAULT_SWAGGER_PATH


@lru_cache()
def get_settings() -> HaloPSASettings:
    """Return the process-wide settings, loading them on first use."""
    return HaloPSASettings()
