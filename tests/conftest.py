"""Shared test fixtures for rolegate."""

import asyncio

import pytest

from rolegate.config.models import RolegateConfig
from rolegate.models import parse_permissions_map
from rolegate.sources import StaticSource


class GatedSource:
    """A source whose fetch blocks until ``release`` is set."""

    def __init__(self, document, name="gated"):
        self.name = name
        self._document = document
        self.release = asyncio.Event()
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        await self.release.wait()
        return self._document


class FailingSource:
    def __init__(self, error, name="failing"):
        self.name = name
        self._error = error

    async def fetch(self):
        raise self._error


@pytest.fixture
def policy_doc():
    """A small policy covering the conditional, unconditional, and missing cases."""
    return {
        "client": {
            "role": "client",
            "permissions": [
                {"id": "dashboard-view", "resource": "dashboard", "action": "view"},
                {
                    "id": "shoots-view-own",
                    "resource": "shoots",
                    "action": "view",
                    "conditions": {"ownerId": "self"},
                },
            ],
        },
        "admin": {
            "role": "admin",
            "permissions": [
                {"id": "clients-create", "resource": "clients", "action": "create"},
                {"id": "clients-view", "resource": "clients", "action": "view"},
            ],
        },
        "editor": {
            "role": "editor",
            "permissions": [
                {"id": "invoices-view", "resource": "invoices", "action": "view"},
            ],
        },
        "photographer": {
            "role": "photographer",
            "permissions": [
                {
                    "id": "shoots-view-assigned",
                    "resource": "shoots",
                    "action": "view",
                    "conditions": {"assigneeId": "self"},
                },
                {
                    "id": "shoots-view-published",
                    "resource": "shoots",
                    "action": "view",
                    "conditions": {"status": ["published", "delivered"]},
                },
            ],
        },
    }


@pytest.fixture
def policy_map(policy_doc):
    return parse_permissions_map(policy_doc)


@pytest.fixture
def policy_source(policy_doc):
    return StaticSource(policy_doc, name="test-policy")


@pytest.fixture
def sample_config():
    return RolegateConfig()


@pytest.fixture
def make_gated_source():
    return GatedSource


@pytest.fixture
def make_failing_source():
    return FailingSource
