"""Shared test fixtures for all test modules."""

from pathlib import Path
from typing import Any

import pytest
from tests.helpers import ENDPOINT, FakeClock, FakeTransport

from faultline.adapters.storage.in_memory import InMemoryKeyValueStore


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a recording transport double."""
    return FakeTransport()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Provide an empty in-memory key/value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def state_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for key/value store tests."""
    return str(tmp_path / "state.db")


@pytest.fixture
def environment():
    """Provide a fixed environment attribute provider."""

    def _environment() -> dict[str, Any]:
        return {
            "application": "test-app",
            "hostname": "test-host",
            "process.age": 0,
        }

    return _environment


@pytest.fixture
def make_client(transport, store, environment, clock):
    """Factory fixture building a ReportClient wired to test doubles.

    Usage:
        def test_something(make_client):
            client = make_client(rateLimit=2)
    """
    from faultline.client import ReportClient

    def _make(**options: Any) -> ReportClient:
        options.setdefault("endpoint", ENDPOINT)
        options.setdefault("enableMetricsSupport", False)
        return ReportClient(
            options,
            transport=transport,
            store=store,
            environment=environment,
            clock=clock,
            random_source=lambda: 0.5,
        )

    return _make
