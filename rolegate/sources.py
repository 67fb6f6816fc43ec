"""Policy document sources: embedded constants, files, and HTTP endpoints."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx
import yaml

from rolegate.catalog import default_permissions_map
from rolegate.config.models import PolicySourceConfig


@runtime_checkable
class PolicySource(Protocol):
    """Produces a raw policy document (decoded, not yet validated)."""

    name: str

    async def fetch(self) -> Any: ...


class StaticSource:
    """An in-memory document, e.g. an embedded constant or a login response."""

    def __init__(self, document: Any, name: str = "static") -> None:
        self._document = document
        self.name = name

    async def fetch(self) -> Any:
        return self._document


class BuiltinSource(StaticSource):
    """The default role policy shipped with the package."""

    def __init__(self) -> None:
        super().__init__(default_permissions_map(), name="builtin")


class FileSource:
    """A YAML or JSON policy file on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.name = str(self.path)

    async def fetch(self) -> Any:
        text = self.path.read_text(encoding="utf-8")
        if self.path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)


class HttpSource:
    """A policy document served as JSON by an administrative API."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.name = url
        self._timeout = timeout
        self._headers = headers or {}
        self._client = client

    async def fetch(self) -> Any:
        if self._client is not None:
            return await self._get(self._client)
        async with httpx.AsyncClient() as client:
            return await self._get(client)

    async def _get(self, client: httpx.AsyncClient) -> Any:
        resp = await client.get(self.url, headers=self._headers, timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()


def create_source(config: PolicySourceConfig) -> PolicySource:
    """Create a policy source from app-level config."""
    if config.kind == "builtin":
        return BuiltinSource()

    if config.kind == "file":
        if not config.path:
            raise ValueError("policy.path is required when policy.kind is 'file'")
        return FileSource(config.path)

    if config.kind == "http":
        if not config.url:
            raise ValueError("policy.url is required when policy.kind is 'http'")
        headers = {}
        if config.token_env:
            token = os.environ.get(config.token_env)
            if not token:
                raise ValueError(
                    f"Missing policy token: set environment variable {config.token_env!r}"
                )
            headers["Authorization"] = f"Bearer {token}"
        return HttpSource(config.url, timeout=config.timeout, headers=headers)

    raise ValueError(f"Unsupported policy source: {config.kind!r}")
