"""
Runtime environment configuration.

Environments are merged from three places, highest precedence first:

1. explicit overrides passed to `ConfigManager.load`
2. `.env` then `.env.local` in the workspace root (`.env.local` wins)
3. `.flowgraph/config.json` in the workspace root

Env-file variables look like::

    FLOWGRAPH_ACTIVE_ENV=dev
    FLOWGRAPH_ENV_DEV_URL=https://dev.example.com
    FLOWGRAPH_ENV_DEV_DOMAIN=core
    FLOWGRAPH_ENV_DEV_AUTH_TOKEN=...
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Literal

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

ConfigSource = Literal["override", "env-file", "workspace-config"]

ENV_PREFIX = "FLOWGRAPH_ENV_"
ACTIVE_ENV_VAR = "FLOWGRAPH_ACTIVE_ENV"
WORKSPACE_CONFIG = Path(".flowgraph") / "config.json"

ENV_SUFFIXES = (
    "URL",
    "NAME",
    "DOMAIN",
    "AUTH_TOKEN",
    "AUTH_USERNAME",
    "AUTH_PASSWORD",
    "TIMEOUT",
    "VERIFY_SSL",
)

# Ids may contain underscores, so the suffix is matched from the right.
_ENV_VAR_RE = re.compile(rf"^{ENV_PREFIX}(.+?)_({'|'.join(ENV_SUFFIXES)})$")


class ConfigError(LookupError):
    """Unknown environment or unreadable configuration."""


class AuthConfig(BaseModel):
    type: Literal["bearer", "basic", "none"] = "none"
    token: str | None = None
    username: str | None = None
    password: str | None = None


class EnvironmentConfig(BaseModel):
    """Connection details for one runtime environment."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    base_url: str = Field(default="", alias="baseUrl")
    domain: str = "core"
    auth: AuthConfig | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float | None = Field(default=None, description="Request timeout (seconds)")
    verify_ssl: bool | None = Field(default=None, alias="verifySsl")

    @property
    def display_name(self) -> str:
        return self.name or self.id


class GraphConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)
    active_environment: str | None = Field(default=None, alias="activeEnvironment")


def environments_from_env(values: dict[str, str | None]) -> dict[str, EnvironmentConfig]:
    """Build environment configs from FLOWGRAPH_ENV_<ID>_* variables."""
    env_ids: list[str] = []
    for name in values:
        if not name.startswith(ENV_PREFIX):
            continue
        m = _ENV_VAR_RE.match(name)
        if m is None:
            logger.warning(f"Ignoring unrecognized environment variable {name}")
            continue
        if m.group(1).lower() not in env_ids:
            env_ids.append(m.group(1).lower())

    environments: dict[str, EnvironmentConfig] = {}
    for env_id in env_ids:
        prefix = f"{ENV_PREFIX}{env_id.upper()}_"

        def get(suffix: str) -> str | None:
            return values.get(prefix + suffix) or None

        auth = None
        if get("AUTH_TOKEN"):
            auth = AuthConfig(type="bearer", token=get("AUTH_TOKEN"))
        elif get("AUTH_USERNAME") and get("AUTH_PASSWORD"):
            auth = AuthConfig(type="basic", username=get("AUTH_USERNAME"), password=get("AUTH_PASSWORD"))

        timeout = None
        if get("TIMEOUT"):
            try:
                timeout = float(get("TIMEOUT"))
            except ValueError:
                logger.warning(f"Ignoring non-numeric {prefix}TIMEOUT={get('TIMEOUT')!r}")

        verify_ssl = None
        if get("VERIFY_SSL"):
            verify_ssl = get("VERIFY_SSL").lower() == "true"

        environments[env_id] = EnvironmentConfig(
            id=env_id,
            name=get("NAME") or env_id,
            base_url=get("URL") or "",
            domain=get("DOMAIN") or "core",
            auth=auth,
            timeout=timeout,
            verify_ssl=verify_ssl,
        )
    return environments


def _parse_config(raw: dict[str, Any]) -> GraphConfig:
    # Environment entries are keyed by id and may omit it in the body.
    environments = {
        env_id: {"id": env_id, **(body or {})} for env_id, body in (raw.get("environments") or {}).items()
    }
    return GraphConfig.model_validate({**raw, "environments": environments})


class ConfigManager:
    """Merges environment configuration and remembers where each entry came from."""

    def __init__(self):
        self.config = GraphConfig()
        self._sources: dict[str, ConfigSource] = {}

    def load(
        self,
        workspace_root: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> GraphConfig:
        """Load every source, lowest precedence first so later ones win."""
        if workspace_root is not None:
            root = Path(workspace_root)
            self._load_workspace_config(root / WORKSPACE_CONFIG)
            for name in (".env", ".env.local"):
                self._load_env_file(root / name)
        if overrides:
            try:
                parsed = _parse_config(overrides)
            except ValidationError as exc:
                raise ConfigError(f"Invalid configuration overrides: {exc}") from exc
            self._apply(parsed, "override")
        return self.config

    def _load_workspace_config(self, path: Path) -> None:
        if not path.is_file():
            return
        try:
            parsed = _parse_config(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid workspace config {path}: {exc}") from exc
        self._apply(parsed, "workspace-config")
        logger.debug(f"Loaded {len(parsed.environments)} environment(s) from {path}")

    def _load_env_file(self, path: Path) -> None:
        if not path.is_file():
            return
        values = dotenv_values(path)
        parsed = GraphConfig(
            environments=environments_from_env(values),
            active_environment=values.get(ACTIVE_ENV_VAR) or None,
        )
        self._apply(parsed, "env-file")
        logger.debug(f"Loaded {len(parsed.environments)} environment(s) from {path}")

    def _apply(self, parsed: GraphConfig, source: ConfigSource) -> None:
        for env_id, env in parsed.environments.items():
            self.set_environment(env_id, env, source)
        if parsed.active_environment:
            self.set_active_environment(parsed.active_environment, source)

    # --- queries ---

    def get_source(self, key: str) -> ConfigSource | None:
        """Source of `env:<id>` or `activeEnvironment`."""
        return self._sources.get(key)

    def get_environment(self, env_id: str) -> EnvironmentConfig | None:
        return self.config.environments.get(env_id)

    def require_environment(self, env_id: str | None = None) -> EnvironmentConfig:
        """The named environment, or the active one when `env_id` is None."""
        env_id = env_id or self.config.active_environment
        if not env_id:
            raise ConfigError("No environment selected and no active environment configured")
        env = self.get_environment(env_id)
        if env is None:
            known = ", ".join(sorted(self.config.environments)) or "none"
            raise ConfigError(f"Unknown environment {env_id!r} (configured: {known})")
        return env

    def get_active_environment(self) -> EnvironmentConfig | None:
        if not self.config.active_environment:
            return None
        return self.get_environment(self.config.active_environment)

    def all_environments(self) -> dict[str, EnvironmentConfig]:
        return dict(self.config.environments)

    # --- updates ---

    def set_environment(self, env_id: str, env: EnvironmentConfig, source: ConfigSource = "override") -> None:
        self.config.environments[env_id] = env
        self._sources[f"env:{env_id}"] = source

    def set_active_environment(self, env_id: str, source: ConfigSource = "override") -> None:
        self.config.active_environment = env_id
        self._sources["activeEnvironment"] = source

    def save_to_env_file(self, workspace_root: str | Path) -> Path:
        """Write the merged configuration to `.env.local`."""
        lines = ["# flowgraph runtime environments", ""]
        if self.config.active_environment:
            lines += [f"{ACTIVE_ENV_VAR}={self.config.active_environment}", ""]

        for env_id, env in self.config.environments.items():
            prefix = f"{ENV_PREFIX}{env_id.upper()}_"
            lines.append(f"# {env.display_name}")
            if env.name:
                lines.append(f"{prefix}NAME={env.name}")
            lines.append(f"{prefix}URL={env.base_url}")
            lines.append(f"{prefix}DOMAIN={env.domain}")
            if env.auth and env.auth.type == "bearer" and env.auth.token:
                lines.append(f"{prefix}AUTH_TOKEN={env.auth.token}")
            elif env.auth and env.auth.type == "basic" and env.auth.username and env.auth.password:
                lines.append(f"{prefix}AUTH_USERNAME={env.auth.username}")
                lines.append(f"{prefix}AUTH_PASSWORD={env.auth.password}")
            if env.timeout:
                lines.append(f"{prefix}TIMEOUT={env.timeout:g}")
            if env.verify_ssl is not None:
                lines.append(f"{prefix}VERIFY_SSL={str(env.verify_ssl).lower()}")
            lines.append("")

        path = Path(workspace_root) / ".env.local"
        path.write_text("\n".join(lines), encoding="utf-8")
        return path
