from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphSettings(BaseSettings):
    """Unified configuration for flowgraph.

    Environment variables are prefixed with FLOWGRAPH_. Builders and adapters
    take an instance explicitly; only the CLI reads the module-level default.
    """

    model_config = SettingsConfigDict(env_prefix="FLOWGRAPH_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Reference defaults ---
    default_domain: str = Field(default="core", description="Domain for path-style references")
    default_version: str = Field(default="1.0.0", description="Version for path-style references")

    # --- Runtime fetching ---
    page_size: int = Field(default=100, ge=1)
    request_timeout: float = Field(default=30.0, description="Per-request timeout (seconds)")
    type_fetch_timeout: float = Field(
        default=120.0, description="Deadline for all pages of one component type (seconds)"
    )
    max_concurrent_types: int = Field(default=6, ge=1)

    # --- Graph building ---
    compute_hashes: bool = True
    config_dir: str = Field(default=".flowgraph", description="Workspace config directory")


settings = GraphSettings()
