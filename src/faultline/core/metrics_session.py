"""Usage metrics session.

Tracks an anonymous session identity that survives restarts through a
key/value store, and emits "unique" and "summed" usage events to the
metrics endpoints. Runs independently of report submission: metrics
failures are logged and never raised.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any
from uuid import uuid4

from faultline.core.attributes import stringify_attributes
from faultline.core.endpoint import metrics_endpoints, resolve_endpoint
from faultline.core.errors import ConfigurationError
from faultline.core.ports import (
    AttributeProvider,
    KeyValueStorePort,
    ReportTransportPort,
)

logger = logging.getLogger(__name__)

# Thirty minutes of inactivity ends a session
PERSISTENCE_INTERVAL_SECONDS = 1800
HEARTBEAT_INTERVAL_SECONDS = 60.0

SESSION_ID_KEY = "sessionId"
LAST_ACTIVE_KEY = "lastActive"

LAUNCH_METRIC_GROUP = "Application Launches"
UNIQUE_ATTRIBUTE = "guid"


def _parse_timestamp(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug("Ignoring malformed %s value %r", LAST_ACTIVE_KEY, value)
        return None


class MetricsSession:
    """Session continuity and aggregate usage events.

    Args:
        endpoint: Submission endpoint the universe and token are resolved from.
        transport: Adapter used to POST metrics payloads.
        attribute_provider: Returns the live client attributes.
        store: Durable key/value store for the session fields.
        token: Explicit submission token.
        metrics_url: Metrics host (default: https://events.backtrace.io).
        clock: Returns the current time in seconds since epoch.
        is_visible: Returns True while the application is in the foreground;
            heartbeats only extend the session while it does.
        heartbeat_interval: Seconds between heartbeats.

    Raises:
        ConfigurationError: If universe or token cannot be resolved.
    """

    def __init__(
        self,
        endpoint: str,
        transport: ReportTransportPort,
        attribute_provider: AttributeProvider | Callable[[], Mapping[str, Any]],
        store: KeyValueStorePort,
        token: str | None = None,
        metrics_url: str | None = None,
        clock: Callable[[], float] = time.time,
        is_visible: Callable[[], bool] = lambda: True,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
    ) -> None:
        if not endpoint:
            raise ConfigurationError("Backtrace: missing 'endpoint' option.")
        params = resolve_endpoint(endpoint, token)
        if params is None:
            raise ConfigurationError(
                "Invalid Backtrace submission parameters. "
                "Cannot create a submission URL to metrics support"
            )
        if not params.token:
            raise ConfigurationError(
                "Backtrace: missing 'token' option or it could not be parsed "
                "from the endpoint."
            )
        self.universe = params.universe
        self.token = params.token
        self.unique_endpoint, self.summed_endpoint = metrics_endpoints(
            params, metrics_url
        )
        self._transport = transport
        self._attribute_provider = attribute_provider
        self._store = store
        self._clock = clock
        self._is_visible = is_visible
        self._heartbeat_interval = heartbeat_interval
        self._session_id: str | None = None
        self._last_active: int | None = None
        self._heartbeat: asyncio.Task[None] | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def last_active(self) -> int | None:
        return self._last_active

    @property
    def running(self) -> bool:
        return self._heartbeat is not None and not self._heartbeat.done()

    def _now(self) -> int:
        return int(self._clock())

    async def start(self) -> None:
        """Load or create the session and start the heartbeat.

        A missing stored session counts as an application launch: a new
        session is created and one unique plus one summed event are sent.
        """
        stored_session = await self._store.get(SESSION_ID_KEY)
        if stored_session:
            self._session_id = stored_session
            self._last_active = _parse_timestamp(await self._store.get(LAST_ACTIVE_KEY))
        else:
            await self._create_session()
            await self.send_unique_event()
            await self.send_summed_event(LAUNCH_METRIC_GROUP)

        await self.persist_session()
        if self._heartbeat is None:
            self._heartbeat = asyncio.get_running_loop().create_task(
                self._run_heartbeat()
            )

    async def stop(self) -> None:
        """Cancel the heartbeat."""
        if self._heartbeat is None:
            return
        self._heartbeat.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._heartbeat
        self._heartbeat = None

    async def persist_session(self) -> None:
        """Refresh the session, starting a new one after a long inactivity gap.

        Always records the current time as the last active time.
        """
        now = self._now()
        if (
            self._last_active is None
            or now - self._last_active > PERSISTENCE_INTERVAL_SECONDS
        ):
            await self._create_session()
            await self.send_unique_event()
        await self._set_last_active(now)

    async def persist_if_visible(self) -> None:
        """Persist the session only while the application is visible."""
        if self._is_visible():
            await self.persist_session()

    async def _run_heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await self.persist_if_visible()
            except Exception:
                logger.warning("Failed to persist metrics session", exc_info=True)

    async def _create_session(self) -> str:
        session_id = str(uuid4())
        self._session_id = session_id
        await self._store.set(SESSION_ID_KEY, session_id)
        await self._set_last_active(self._now())
        logger.debug("Started metrics session %s", session_id)
        return session_id

    async def _set_last_active(self, timestamp: int) -> None:
        self._last_active = timestamp
        await self._store.set(LAST_ACTIVE_KEY, str(timestamp))

    def event_attributes(self) -> dict[str, str]:
        """Build the attribute set attached to metrics events.

        Client attributes are filtered to primitives and stringified. The
        session id is injected and ``application.version`` defaults to
        ``unknown``.
        """
        attributes = {
            "application.session": self._session_id or "",
            "application.version": "unknown",
        }
        attributes.update(stringify_attributes(self._attribute_provider()))
        return attributes

    def _payload(self, events_key: str, event: dict[str, Any]) -> dict[str, Any]:
        attributes = self.event_attributes()
        event["attributes"] = attributes
        return {
            "application": attributes.get("application"),
            "appversion": attributes["application.version"],
            "metadata": {"dropped_events": 0},
            events_key: [event],
        }

    def unique_event_payload(self) -> dict[str, Any]:
        return self._payload(
            "unique_events",
            {"timestamp": self._now(), "unique": [UNIQUE_ATTRIBUTE]},
        )

    def summed_event_payload(self, metric_group: str) -> dict[str, Any]:
        return self._payload(
            "summed_events",
            {"timestamp": self._now(), "metric_group": metric_group},
        )

    async def send_unique_event(self) -> bool:
        """POST a unique event for the current session."""
        return await self._send(self.unique_endpoint, self.unique_event_payload)

    async def send_summed_event(self, metric_group: str) -> bool:
        """POST a summed event for the given metric group."""
        return await self._send(
            self.summed_endpoint, lambda: self.summed_event_payload(metric_group)
        )

    async def _send(
        self, url: str, build_payload: Callable[[], dict[str, Any]]
    ) -> bool:
        try:
            accepted = await self._transport.send_metrics(url, build_payload())
        except Exception as e:
            logger.debug("Metrics submission to %s raised: %s", url, e)
            return False
        if not accepted:
            logger.debug("Metrics submission to %s was not accepted", url)
        return accepted
