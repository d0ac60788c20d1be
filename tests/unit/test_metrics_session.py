"""Tests for the usage metrics session."""

import asyncio

import pytest
from tests.helpers import ENDPOINT, TOKEN, UNIVERSE, FakeClock, FakeTransport

from faultline.adapters.storage.in_memory import InMemoryKeyValueStore
from faultline.core.errors import ConfigurationError
from faultline.core.metrics_session import (
    LAST_ACTIVE_KEY,
    LAUNCH_METRIC_GROUP,
    PERSISTENCE_INTERVAL_SECONDS,
    SESSION_ID_KEY,
    MetricsSession,
)

pytestmark = [pytest.mark.core, pytest.mark.tier(1)]


def _attributes() -> dict:
    return {
        "application": "test-app",
        "guid": "guid-1",
        "flag": True,
        "count": 3,
        "skipped": {"nested": 1},
        "empty": "",
    }


@pytest.fixture
def visible() -> dict[str, bool]:
    return {"value": True}


@pytest.fixture
def make_session(
    transport: FakeTransport, store: InMemoryKeyValueStore, clock, visible
):
    def _make(**kwargs) -> MetricsSession:
        kwargs.setdefault("endpoint", ENDPOINT)
        return MetricsSession(
            transport=transport,
            attribute_provider=_attributes,
            store=store,
            clock=clock,
            is_visible=lambda: visible["value"],
            **kwargs,
        )

    return _make


class TestConfiguration:
    """Tests for endpoint resolution at construction."""

    def test_resolves_universe_and_token(self, make_session) -> None:
        session = make_session()
        assert session.universe == UNIVERSE
        assert session.token == TOKEN
        assert session.unique_endpoint.startswith(
            "https://events.backtrace.io/api/unique-events/submit?"
        )
        assert f"universe={UNIVERSE}" in session.summed_endpoint

    def test_custom_metrics_url(self, make_session) -> None:
        session = make_session(metrics_url="http://metrics.local")
        assert session.unique_endpoint.startswith("http://metrics.local/api/")

    def test_missing_endpoint(self, make_session) -> None:
        with pytest.raises(ConfigurationError, match="missing 'endpoint'"):
            make_session(endpoint="")

    def test_unresolvable_endpoint(self, make_session) -> None:
        with pytest.raises(ConfigurationError, match="Invalid Backtrace submission"):
            make_session(endpoint="http://localhost:8080")

    def test_missing_token(self, make_session) -> None:
        with pytest.raises(ConfigurationError, match="missing 'token'"):
            make_session(endpoint="https://foo.example.com")

    def test_explicit_token_for_generic_host(self, make_session) -> None:
        session = make_session(endpoint="https://foo.example.com", token="tok")
        assert (session.universe, session.token) == ("foo", "tok")


class TestStart:
    """Tests for session start and launch events."""

    @pytest.mark.tra("Core.Metrics.Launch")
    async def test_first_launch_sends_unique_and_summed_events(
        self,
        make_session,
        transport: FakeTransport,
        store: InMemoryKeyValueStore,
        clock: FakeClock,
    ) -> None:
        session = make_session()
        await session.start()
        try:
            unique = transport.metrics_to("unique-events")
            summed = transport.metrics_to("summed-events")
            assert len(unique) == 1
            assert len(summed) == 1
            assert summed[0]["summed_events"][0]["metric_group"] == LAUNCH_METRIC_GROUP
            assert unique[0]["unique_events"][0]["unique"] == ["guid"]
            assert session.session_id is not None
            assert store.snapshot()[SESSION_ID_KEY] == session.session_id
            assert store.snapshot()[LAST_ACTIVE_KEY] == str(int(clock()))
            assert session.running
        finally:
            await session.stop()
        assert not session.running

    @pytest.mark.tra("Core.Metrics.SessionContinuity")
    async def test_restart_within_interval_keeps_session(
        self,
        make_session,
        transport: FakeTransport,
        store: InMemoryKeyValueStore,
        clock: FakeClock,
    ) -> None:
        store._values.update(
            {SESSION_ID_KEY: "existing", LAST_ACTIVE_KEY: str(int(clock()))}
        )
        clock.advance(PERSISTENCE_INTERVAL_SECONDS)
        session = make_session()
        await session.start()
        await session.stop()
        assert session.session_id == "existing"
        assert transport.metrics == []
        assert session.last_active == int(clock())

    async def test_restart_after_interval_starts_new_session(
        self,
        make_session,
        transport: FakeTransport,
        store: InMemoryKeyValueStore,
        clock: FakeClock,
    ) -> None:
        store._values.update(
            {SESSION_ID_KEY: "existing", LAST_ACTIVE_KEY: str(int(clock()))}
        )
        clock.advance(PERSISTENCE_INTERVAL_SECONDS + 1)
        session = make_session()
        await session.start()
        await session.stop()
        assert session.session_id not in (None, "existing")
        assert len(transport.metrics_to("unique-events")) == 1
        assert transport.metrics_to("summed-events") == []

    async def test_malformed_last_active_starts_new_session(
        self,
        make_session,
        transport: FakeTransport,
        store: InMemoryKeyValueStore,
    ) -> None:
        store._values.update({SESSION_ID_KEY: "existing", LAST_ACTIVE_KEY: "soon"})
        session = make_session()
        await session.start()
        await session.stop()
        assert session.session_id != "existing"

    async def test_stop_without_start_is_noop(self, make_session) -> None:
        await make_session().stop()


class TestPersistSession:
    """Tests for session persistence and heartbeats."""

    async def test_persist_refreshes_last_active(
        self, make_session, store: InMemoryKeyValueStore, clock: FakeClock
    ) -> None:
        session = make_session()
        await session.persist_session()
        session_id = session.session_id
        clock.advance(600)
        await session.persist_session()
        assert session.session_id == session_id
        assert store.snapshot()[LAST_ACTIVE_KEY] == str(int(clock()))

    async def test_hidden_application_does_not_persist(
        self,
        make_session,
        store: InMemoryKeyValueStore,
        visible: dict[str, bool],
    ) -> None:
        visible["value"] = False
        await make_session().persist_if_visible()
        assert store.snapshot() == {}

    async def test_visible_application_persists(
        self, make_session, store: InMemoryKeyValueStore
    ) -> None:
        await make_session().persist_if_visible()
        assert LAST_ACTIVE_KEY in store.snapshot()

    async def test_heartbeat_extends_session_while_visible(
        self,
        make_session,
        store: InMemoryKeyValueStore,
        clock: FakeClock,
        visible: dict[str, bool],
    ) -> None:
        session = make_session(heartbeat_interval=0.01)
        await session.start()
        try:
            clock.advance(60)
            await asyncio.sleep(0.05)
            assert store.snapshot()[LAST_ACTIVE_KEY] == str(int(clock()))

            visible["value"] = False
            hidden_at = int(clock())
            clock.advance(60)
            await asyncio.sleep(0.05)
            assert store.snapshot()[LAST_ACTIVE_KEY] == str(hidden_at)
        finally:
            await session.stop()


class TestEvents:
    """Tests for metrics payloads and delivery failures."""

    def test_event_attributes_are_stringified(self, make_session) -> None:
        attributes = make_session().event_attributes()
        assert attributes["application"] == "test-app"
        assert attributes["flag"] == "true"
        assert attributes["count"] == "3"
        assert attributes["application.version"] == "unknown"
        assert "skipped" not in attributes
        assert "empty" not in attributes

    async def test_unique_payload_shape(self, make_session, clock: FakeClock) -> None:
        session = make_session()
        await session.persist_session()
        payload = session.unique_event_payload()
        assert payload["application"] == "test-app"
        assert payload["appversion"] == "unknown"
        assert payload["metadata"] == {"dropped_events": 0}
        event = payload["unique_events"][0]
        assert event["timestamp"] == int(clock())
        assert event["unique"] == ["guid"]
        assert event["attributes"]["application.session"] == session.session_id

    def test_summed_payload_shape(self, make_session) -> None:
        payload = make_session().summed_event_payload("Custom Group")
        assert payload["summed_events"][0]["metric_group"] == "Custom Group"
        assert "unique_events" not in payload

    async def test_rejected_metrics_return_false(
        self, make_session, transport: FakeTransport
    ) -> None:
        transport.metrics_accepted = False
        assert await make_session().send_unique_event() is False

    @pytest.mark.tra("Core.Metrics.FailuresSwallowed")
    async def test_metrics_exceptions_are_swallowed(
        self,
        make_session,
        transport: FakeTransport,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        transport.metrics_error = ConnectionError("offline")
        session = make_session()
        with caplog.at_level("DEBUG", logger="faultline.core.metrics_session"):
            await session.start()
            await session.stop()
        assert session.session_id is not None
        assert "offline" in caplog.text

    @pytest.mark.tra("Core.Metrics.FailuresSwallowed.AttributeProvider")
    async def test_failing_attribute_provider_is_swallowed(
        self,
        transport: FakeTransport,
        store: InMemoryKeyValueStore,
        clock: FakeClock,
    ) -> None:
        """Payload construction errors never escape event emission or start()."""

        def broken_provider() -> dict:
            raise RuntimeError("provider broke")

        session = MetricsSession(
            ENDPOINT, transport, broken_provider, store, clock=clock
        )
        assert await session.send_unique_event() is False
        assert await session.send_summed_event(LAUNCH_METRIC_GROUP) is False

        await session.start()
        try:
            assert session.running
            assert session.session_id is not None
            assert store.snapshot()[LAST_ACTIVE_KEY] == str(int(clock()))
        finally:
            await session.stop()
        assert transport.metrics == []
