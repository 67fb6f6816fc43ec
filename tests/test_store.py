"""Tests for PolicyStore: snapshots, versions, and load ordering."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from rolegate.errors import PolicyLoadError
from rolegate.sources import StaticSource
from rolegate.store import PENDING, PolicySnapshot, PolicyStore


@pytest.fixture()
def store() -> PolicyStore:
    return PolicyStore()


def test_pending_until_first_load(store: PolicyStore):
    assert store.current() is PENDING
    assert store.version == 0
    assert store.stale is False


@pytest.mark.asyncio
async def test_load_publishes_snapshot(store: PolicyStore, policy_source, policy_map):
    snapshot = await store.load(policy_source)
    assert isinstance(snapshot, PolicySnapshot)
    assert store.current() is snapshot
    assert snapshot.version == 1
    assert snapshot.source == "test-policy"
    assert dict(snapshot.permissions) == policy_map
    assert snapshot.roles == ["admin", "client", "editor", "photographer"]


@pytest.mark.asyncio
async def test_snapshot_mapping_is_read_only(store: PolicyStore, policy_source):
    snapshot = await store.load(policy_source)
    with pytest.raises(TypeError):
        snapshot.permissions["intruder"] = snapshot.permissions["admin"]
    rule = snapshot.permissions["client"].permissions[1]
    with pytest.raises(TypeError):
        rule.conditions["ownerId"] = "u999"
    assert rule.conditions == {"ownerId": "self"}


def test_replace_increments_version(store: PolicyStore, policy_map):
    first = store.replace(policy_map)
    second = store.replace({"admin": policy_map["admin"]})
    assert (first.version, second.version) == (1, 2)
    assert store.current() is second
    # the earlier snapshot is untouched
    assert "client" in first.permissions
    assert "client" not in second.permissions


def test_replace_copies_the_input(store: PolicyStore, policy_map):
    snapshot = store.replace(policy_map)
    policy_map.pop("admin")
    assert "admin" in snapshot.permissions


def test_stale_flag_cleared_by_replace(store: PolicyStore, policy_map):
    store.mark_stale()
    assert store.stale is True
    store.replace(policy_map)
    assert store.stale is False


def test_clear_returns_to_pending(store: PolicyStore, policy_map):
    store.replace(policy_map)
    store.clear()
    assert store.current() is PENDING
    # versions keep increasing across clears
    assert store.replace(policy_map).version == 2


# -- Load failures -------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [FileNotFoundError("policy.yaml"), ValueError("bad json"), OSError("disk")],
)
async def test_transport_failure_raises_policy_load_error(store: PolicyStore, error, make_failing_source):
    with pytest.raises(PolicyLoadError) as exc_info:
        await store.load(make_failing_source(error))
    assert exc_info.value.source == "failing"
    assert exc_info.value.__cause__ is error
    assert store.current() is PENDING


@pytest.mark.asyncio
async def test_unexpected_source_error_is_wrapped(store: PolicyStore, make_failing_source):
    error = RuntimeError("plugin crashed")
    with pytest.raises(PolicyLoadError) as exc_info:
        await store.load(make_failing_source(error))
    assert exc_info.value.__cause__ is error
    assert store.current() is PENDING


@pytest.mark.asyncio
async def test_malformed_document_raises_policy_load_error(store: PolicyStore):
    with pytest.raises(PolicyLoadError) as exc_info:
        await store.load(StaticSource({"admin": [{"id": "x"}]}))
    assert isinstance(exc_info.value.__cause__, ValidationError)


@pytest.mark.asyncio
async def test_failed_load_keeps_last_known_good(store: PolicyStore, policy_source):
    good = await store.load(policy_source)
    with pytest.raises(PolicyLoadError):
        await store.load(StaticSource("not a policy"))
    assert store.current() is good


# -- Concurrent loads ----------------------------------------------------------


@pytest.mark.asyncio
async def test_superseded_load_is_discarded(store: PolicyStore, make_gated_source):
    slow = make_gated_source({"old": []}, name="slow")
    task = asyncio.create_task(store.load(slow))
    await asyncio.sleep(0)

    fast = await store.load(StaticSource({"new": []}, name="fast"))
    slow.release.set()
    result = await task

    assert result is fast
    assert store.current() is fast
    assert store.version == 1
    assert "old" not in store.current().permissions


@pytest.mark.asyncio
async def test_loads_completing_in_order_both_publish(store: PolicyStore, make_gated_source):
    first = make_gated_source({"first": []}, name="first")
    second = make_gated_source({"second": []}, name="second")
    t1 = asyncio.create_task(store.load(first))
    t2 = asyncio.create_task(store.load(second))
    await asyncio.sleep(0)

    first.release.set()
    await t1
    assert store.current().source == "first"

    second.release.set()
    await t2
    assert store.current().source == "second"
    assert store.version == 2


@pytest.mark.asyncio
async def test_replace_supersedes_in_flight_load(store: PolicyStore, policy_map, make_gated_source):
    slow = make_gated_source({"old": []})
    task = asyncio.create_task(store.load(slow))
    await asyncio.sleep(0)

    replaced = store.replace(policy_map)
    slow.release.set()
    await task
    assert store.current() is replaced


@pytest.mark.asyncio
async def test_clear_discards_in_flight_load(store: PolicyStore, make_gated_source):
    slow = make_gated_source({"old": []})
    task = asyncio.create_task(store.load(slow))
    await asyncio.sleep(0)

    store.clear()
    slow.release.set()
    assert await task is PENDING
    assert store.current() is PENDING
