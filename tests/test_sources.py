"""Tests for policy sources: files, HTTP, and config-driven creation."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import httpx
import pytest

from rolegate.config.models import PolicySourceConfig
from rolegate.errors import PolicyLoadError
from rolegate.sources import (
    BuiltinSource,
    FileSource,
    HttpSource,
    PolicySource,
    StaticSource,
    create_source,
)
from rolegate.store import PolicyStore

POLICY_YAML = """\
client:
  permissions:
    - id: shoots-view-own
      resource: shoots
      action: view
      conditions:
        ownerId: self
admin:
  - id: clients-create
    resource: clients
    action: create
"""


# -- Files ---------------------------------------------------------------------


@pytest.mark.asyncio
async def test_file_source_reads_yaml(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY_YAML)
    document = await FileSource(path).fetch()
    assert document["client"]["permissions"][0]["conditions"] == {"ownerId": "self"}


@pytest.mark.asyncio
async def test_file_source_reads_json(tmp_path, policy_doc):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps(policy_doc))
    assert await FileSource(path).fetch() == policy_doc


@pytest.mark.asyncio
async def test_store_loads_yaml_file(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY_YAML)
    snapshot = await PolicyStore().load(FileSource(path))
    assert snapshot.roles == ["admin", "client"]
    assert snapshot.source == str(path)


@pytest.mark.asyncio
async def test_missing_file_is_load_error(tmp_path):
    with pytest.raises(PolicyLoadError, match="missing.yaml"):
        await PolicyStore().load(FileSource(tmp_path / "missing.yaml"))


@pytest.mark.asyncio
async def test_invalid_yaml_is_load_error(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("  bad:\nyaml: [unterminated")
    with pytest.raises(PolicyLoadError):
        await PolicyStore().load(FileSource(path))


@pytest.mark.asyncio
async def test_invalid_json_is_load_error(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text("{not json")
    with pytest.raises(PolicyLoadError):
        await PolicyStore().load(FileSource(path))


# -- HTTP ----------------------------------------------------------------------


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_source_fetches_json(policy_doc):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=policy_doc)

    async with _client(handler) as client:
        source = HttpSource(
            "https://api.example.com/permissions",
            headers={"Authorization": "Bearer t0k"},
            client=client,
        )
        assert await source.fetch() == policy_doc
    assert seen["auth"] == "Bearer t0k"


@pytest.mark.asyncio
async def test_http_error_status_is_load_error():
    async with _client(lambda request: httpx.Response(503)) as client:
        source = HttpSource("https://api.example.com/permissions", client=client)
        with pytest.raises(PolicyLoadError) as exc_info:
            await PolicyStore().load(source)
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
    assert exc_info.value.source == "https://api.example.com/permissions"


@pytest.mark.asyncio
async def test_http_transport_error_is_load_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        source = HttpSource("https://api.example.com/permissions", client=client)
        with pytest.raises(PolicyLoadError):
            await PolicyStore().load(source)


@pytest.mark.asyncio
async def test_http_non_json_body_is_load_error():
    async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
        source = HttpSource("https://api.example.com/permissions", client=client)
        with pytest.raises(PolicyLoadError):
            await PolicyStore().load(source)


# -- create_source -------------------------------------------------------------


def test_create_builtin_source():
    source = create_source(PolicySourceConfig())
    assert isinstance(source, BuiltinSource)
    assert isinstance(source, PolicySource)


def test_create_file_source():
    source = create_source(PolicySourceConfig(kind="file", path="policy.yaml"))
    assert isinstance(source, FileSource)
    assert source.name == "policy.yaml"


def test_create_file_source_requires_path():
    with pytest.raises(ValueError, match="policy.path"):
        create_source(PolicySourceConfig(kind="file"))


def test_create_http_source_requires_url():
    with pytest.raises(ValueError, match="policy.url"):
        create_source(PolicySourceConfig(kind="http"))


def test_create_http_source_with_token():
    config = PolicySourceConfig(kind="http", url="https://x.test/p", token_env="ROLEGATE_TOKEN")
    with patch.dict(os.environ, {"ROLEGATE_TOKEN": "abc"}):
        source = create_source(config)
    assert isinstance(source, HttpSource)
    assert source._headers == {"Authorization": "Bearer abc"}


def test_create_http_source_missing_token():
    config = PolicySourceConfig(kind="http", url="https://x.test/p", token_env="ROLEGATE_TOKEN")
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(ValueError, match="ROLEGATE_TOKEN"):
            create_source(config)


def test_static_source_conforms_to_protocol():
    assert isinstance(StaticSource({}), PolicySource)


@pytest.mark.asyncio
async def test_http_invalid_url_is_load_error():
    with pytest.raises(PolicyLoadError) as exc_info:
        await PolicyStore().load(HttpSource("http://[::1"))
    assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)
