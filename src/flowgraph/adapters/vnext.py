from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import EnvironmentConfig
from ..http import HttpClientFactory, transient_retry
from ..models import COMPONENT_FLOWS, ComponentType
from .base import RuntimeFetchError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1.0"


class VNextRuntimeAdapter:
    """Workflow-runtime API client.

    Every component type is stored as instances of a system flow
    (`sys-tasks`, `sys-flows`, ...), listed at
    `{base_url}/api/v1.0/{domain}/workflows/{flow}/instances`.

    Listing records may come back with empty `attributes`; the body is then
    available on the full instance or behind its `extensions.data.href`.
    One httpx client is kept per environment until `aclose()`.
    """

    def __init__(self, *, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout
        self._transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}

    def _client(self, env: EnvironmentConfig) -> httpx.AsyncClient:
        client = self._clients.get(env.id)
        if client is None:
            headers = {"Accept": "application/json", **env.headers}
            auth = None
            if env.auth and env.auth.type == "bearer" and env.auth.token:
                headers["Authorization"] = f"Bearer {env.auth.token}"
            elif env.auth and env.auth.type == "basic" and env.auth.username and env.auth.password:
                auth = (env.auth.username, env.auth.password)
            client = HttpClientFactory.client(
                base_url=env.base_url.rstrip("/") + API_PREFIX,
                headers=headers,
                auth=auth,
                timeout=env.timeout or self._timeout,
                verify=env.verify_ssl is not False,
                transport=self._transport,
            )
            self._clients[env.id] = client
        return client

    async def aclose(self):
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    @staticmethod
    def _instances_path(component_type: ComponentType, domain: str) -> str:
        return f"/{domain}/workflows/{COMPONENT_FLOWS[ComponentType(component_type)]}/instances"

    @transient_retry()
    async def _get(self, env: EnvironmentConfig, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        return await self._client(env).get(path, params=params)

    async def fetch_components_by_type(
        self,
        component_type: ComponentType,
        env: EnvironmentConfig,
        domain: str,
        *,
        page: int = 1,
        page_size: int = 100,
        filter: str | None = None,
    ) -> list[dict[str, Any]]:
        """All records of one type, following pagination until exhausted."""
        path = self._instances_path(component_type, domain)
        records: list[dict[str, Any]] = []
        while True:
            params: dict[str, Any] = {"page": page, "pageSize": page_size}
            if filter:
                params["filter"] = filter
            try:
                r = await self._get(env, path, params)
            except httpx.HTTPError as exc:
                raise RuntimeFetchError(f"Failed to fetch {ComponentType(component_type).value}: {exc}") from exc
            if not r.is_success:
                raise RuntimeFetchError(
                    f"Failed to fetch {ComponentType(component_type).value}: {r.status_code} {r.reason_phrase}",
                    status_code=r.status_code,
                )

            try:
                data = r.json()
            except ValueError as exc:
                raise RuntimeFetchError(f"Failed to fetch {ComponentType(component_type).value}: {exc}") from exc
            items = data.get("data") if isinstance(data, dict) else None
            if not isinstance(data, dict) or not isinstance(items, (list, type(None))):
                raise RuntimeFetchError(
                    f"Failed to fetch {ComponentType(component_type).value}: unexpected listing shape"
                )
            if not items:
                break
            records.extend(item for item in items if isinstance(item, dict))
            if not (data.get("pagination") or {}).get("next"):
                break
            page += 1
        return records

    async def fetch_component(
        self, component_type: ComponentType, instance_id: str, env: EnvironmentConfig, domain: str
    ) -> dict[str, Any] | None:
        r = await self._get(env, f"{self._instances_path(component_type, domain)}/{instance_id}")
        if not r.is_success:
            return None
        data = r.json()
        return data if isinstance(data, dict) else None

    async def fetch_body(self, href: str, env: EnvironmentConfig) -> dict[str, Any] | None:
        r = await self._get(env, "/" + href.lstrip("/"))
        if not r.is_success:
            return None
        data = r.json()
        if not isinstance(data, dict):
            return None
        # {data: {...}, etag, extensions}; older runtimes return attributes or the bare body
        if isinstance(data.get("data"), dict) and data["data"]:
            return data["data"]
        return data.get("attributes") or data

    async def resolve_definition(
        self, record: dict[str, Any], component_type: ComponentType, env: EnvironmentConfig, domain: str
    ) -> dict[str, Any] | None:
        if record.get("attributes"):
            return record["attributes"]

        label = record.get("key") or record.get("id")
        full = record
        if not record.get("extensions") and record.get("id"):
            try:
                full = await self.fetch_component(component_type, record["id"], env, domain) or record
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Failed to fetch full instance for {label}: {exc}")
            if full.get("attributes"):
                return full["attributes"]

        extensions = full.get("extensions")
        pointer = extensions.get("data") if isinstance(extensions, dict) else None
        href = pointer.get("href") if isinstance(pointer, dict) else None
        if isinstance(href, str) and href:
            try:
                body = await self.fetch_body(href, env)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Failed to fetch body from data extension for {label}: {exc}")
                body = None
            if body:
                return body
        return None

    async def test_connection(self, env: EnvironmentConfig, domain: str = "core") -> bool:
        """True when the runtime answers at all, whatever the status code."""
        try:
            await self._client(env).get(
                self._instances_path(ComponentType.WORKFLOW, domain), params={"page": 1, "pageSize": 1}
            )
        except httpx.HTTPError as exc:
            logger.info(f"Runtime {env.display_name} unreachable: {exc}")
            return False
        return True
