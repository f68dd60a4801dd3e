"""Centralized configuration management for the Content MCP system.

This module provides a single source of truth for store connection details,
schema defaults, transport and logging settings.
"""

from __future__ import annotations

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

from ..schema.source import DEFAULT_SCHEMA_ID


class Settings(BaseSettings):
    """Centralized settings for the Content MCP system."""

    # === Content Store Configuration ===
    store_backend: Literal["auto", "http", "memory"] = Field(
        default="auto", description="Store backend: 'auto', 'http', or 'memory'"
    )
    store_project_id: str | None = Field(default=None, description="Project id of the remote content store")
    store_dataset: str = Field(default="production", description="Dataset name")
    store_api_token: str | None = Field(default=None, description="API token for the remote store")
    store_api_host: str = Field(default="api.sanity.io", description="API host of the remote store")
    store_api_version: str = Field(default="2025-02-19", description="Dated API version")
    store_use_cdn: bool = Field(default=False, description="Read through the API CDN")
    store_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # === Schema and Mutation Defaults ===
    default_schema_id: str = Field(default=DEFAULT_SCHEMA_ID, description="Schema document id")
    default_visibility: Literal["sync", "async", "deferred"] = Field(
        default="sync", description="Default mutation visibility"
    )
    query_page_size: int = Field(default=5, ge=1, le=100, description="Default query page size")

    # === HTTP SSE Server Configuration ===
    sse_host: str = Field(default="0.0.0.0", description="SSE server host")
    sse_port: int = Field(default=8000, description="SSE server port")

    # === Logging Configuration ===
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="Tool call log file (rotating)")

    # === Performance Configuration ===
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }

    @field_validator("store_backend", "default_visibility", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.lower() if isinstance(value, str) else value

    @property
    def is_test_environment(self) -> bool:
        """Check if running in test environment."""
        return "PYTEST_CURRENT_TEST" in os.environ

    @property
    def store_configured(self) -> bool:
        """Check if the remote store is properly configured."""
        return bool(self.store_project_id and self.store_project_id.strip())

    @property
    def store_type(self) -> Literal["http", "memory"]:
        """Determine the active store backend type."""
        if self.store_backend in ("http", "memory"):
            return self.store_backend
        # Auto-detect
        return "http" if self.store_configured else "memory"

    @property
    def base_url(self) -> str | None:
        """Root URL of the versioned data API, e.g. ``https://abc123.api.sanity.io/v2025-02-19``."""
        if not self.store_configured:
            return None
        host = "apicdn.sanity.io" if self.store_use_cdn and self.store_api_host == "api.sanity.io" else self.store_api_host
        version = self.store_api_version.lstrip("v")
        return f"https://{self.store_project_id}.{host}/v{version}"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        load_dotenv()  # Load .env file
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (primarily for testing)."""
    global _settings
    _settings = None
