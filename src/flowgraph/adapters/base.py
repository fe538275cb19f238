from __future__ import annotations

from typing import Any, Protocol

from ..config import EnvironmentConfig
from ..models import ComponentType


class RuntimeFetchError(RuntimeError):
    """A runtime listing call failed (non-2xx response or exhausted retries)."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RuntimeAdapter(Protocol):
    """Read access to the components a runtime environment has deployed."""

    async def fetch_components_by_type(
        self,
        component_type: ComponentType,
        env: EnvironmentConfig,
        domain: str,
        *,
        page: int = 1,
        page_size: int = 100,
        filter: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def fetch_component(
        self, component_type: ComponentType, instance_id: str, env: EnvironmentConfig, domain: str
    ) -> dict[str, Any] | None: ...

    async def fetch_body(self, href: str, env: EnvironmentConfig) -> dict[str, Any] | None: ...

    async def resolve_definition(
        self, record: dict[str, Any], component_type: ComponentType, env: EnvironmentConfig, domain: str
    ) -> dict[str, Any] | None: ...

    async def test_connection(self, env: EnvironmentConfig, domain: str = "core") -> bool: ...

    async def aclose(self) -> None: ...
