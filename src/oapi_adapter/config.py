"""Configuration for the OpenAPI adapter."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="oapi-adapter")

    spec_url: Optional[str] = Field(default=None)
    spec_path: Optional[str] = Field(default=None)
    spec_format: str = Field(default="json")
    spec_extension_url: Optional[str] = Field(default=None)
    spec_extension_path: Optional[str] = Field(default=None)
    spec_extension_format: str = Field(default="yaml")
    spec_cache_seconds: int = Field(default=3600)

    adapter_transport: str = Field(default="streamable-http")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=9000)
    adapter_auth_token: Optional[str] = Field(default=None)

    adapter_max_concurrency: int = Field(default=20)

    adapter_log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
