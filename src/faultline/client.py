"""Report client.

Owns the configuration, breadcrumb trail, admission gates, submission
pipeline and metrics session of one reporting agent.
"""

import logging
import random
import time
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from faultline.adapters.environment import EnvironmentAttributes, installation_guid
from faultline.adapters.storage.in_memory import InMemoryKeyValueStore
from faultline.adapters.transport.httpx_transport import HttpxReportTransport
from faultline.config import ClientOptions
from faultline.core.breadcrumbs import DEFAULT_LEVEL, DEFAULT_TYPE, BreadcrumbBuffer
from faultline.core.endpoint import submission_url
from faultline.core.errors import ReportSubmissionError
from faultline.core.metrics_session import MetricsSession
from faultline.core.models import Report, Result, ResultStatus
from faultline.core.pipeline import ReportPipeline, ResultCallback
from faultline.core.ports import (
    AttributeProvider,
    KeyValueStorePort,
    ReportTransportPort,
)
from faultline.core.ratelimit import RateLimiter
from faultline.core.sampling import Sampler

logger = logging.getLogger(__name__)

Payload = BaseException | str


class ReportClient:
    """Error reporting client.

    Example:
        ```python
        async with ReportClient({"endpoint": url, "token": token}) as client:
            try:
                risky()
            except Exception as e:
                await client.report_async(e, {"order.id": 42})
        ```

    Args:
        options: ClientOptions, or a mapping accepted by ClientOptions.from_mapping.
        transport: Delivery adapter (default: HttpxReportTransport).
        store: Durable state for the installation guid and metrics session
            (default: in-memory).
        environment: Environment attribute provider
            (default: EnvironmentAttributes).
        clock: Returns the current time in seconds since epoch.
        random_source: Uniform [0, 1) source for sampling.
        is_visible: Returns True while the application is in the foreground.

    Raises:
        ConfigurationError: If the options are invalid or the metrics
            session cannot resolve a universe and token.
    """

    def __init__(
        self,
        options: ClientOptions | Mapping[str, Any],
        transport: ReportTransportPort | None = None,
        store: KeyValueStorePort | None = None,
        environment: AttributeProvider | None = None,
        clock: Callable[[], float] = time.time,
        random_source: Callable[[], float] = random.random,
        is_visible: Callable[[], bool] = lambda: True,
    ) -> None:
        if not isinstance(options, ClientOptions):
            options = ClientOptions.from_mapping(options)
        self.options = options
        self.submission_url = submission_url(options.endpoint, options.token)
        self._owns_transport = transport is None
        self._transport: ReportTransportPort = transport or HttpxReportTransport(
            self.submission_url, timeout=options.timeout
        )
        self._store: KeyValueStorePort = store or InMemoryKeyValueStore()
        self._environment = environment or EnvironmentAttributes()
        self._clock = clock
        self._memorized: dict[str, Any] = {}
        self._guid: str | None = None

        self.breadcrumbs = BreadcrumbBuffer(options.breadcrumb_limit)
        self.rate_limiter = RateLimiter(options.rate_limit, clock=clock)
        self.sampler = Sampler(options.sampling, random_source=random_source)
        self.pipeline = ReportPipeline(
            self._transport,
            self.rate_limiter,
            self.sampler,
            self.breadcrumbs,
            report_filter=options.filter,
            default_attributes=self._client_attributes,
        )
        self.metrics: MetricsSession | None = None
        if options.enable_metrics_support:
            self.metrics = MetricsSession(
                options.endpoint,
                self._transport,
                self._client_attributes,
                self._store,
                token=options.token,
                metrics_url=options.metrics_submission_url,
                clock=clock,
                is_visible=is_visible,
            )

    def _client_attributes(self) -> dict[str, Any]:
        attributes = dict(self._environment())
        if self._guid:
            attributes["guid"] = self._guid
        attributes.update(self.options.user_attributes)
        attributes.update(self._memorized)
        return attributes

    @property
    def attributes(self) -> dict[str, Any]:
        """Environment, user and memorized attributes, later sources winning."""
        return self._client_attributes()

    def memorize(self, key: str, value: Any) -> None:
        """Remember a value that will be attached to subsequent reports."""
        self._memorized[key] = value

    def set_attribute(self, key: str, value: Any) -> None:
        """Set a client attribute attached to reports and metrics events."""
        self._memorized[key] = value

    async def start(self) -> None:
        """Load the installation guid and start the metrics session.

        Metrics failures are logged and do not prevent reporting.
        """
        try:
            self._guid = await installation_guid(self._store)
        except Exception:
            logger.warning("Failed to load installation guid", exc_info=True)
        if self.metrics is None:
            return
        try:
            await self.metrics.start()
        except Exception:
            logger.warning("Failed to start metrics session", exc_info=True)

    async def close(self) -> None:
        """Wait for in-flight reports, stop metrics and release the transport."""
        await self.pipeline.drain()
        if self.metrics is not None:
            await self.metrics.stop()
        if self._owns_transport and isinstance(self._transport, HttpxReportTransport):
            await self._transport.aclose()

    async def __aenter__(self) -> "ReportClient":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def create_report(
        self,
        payload: Payload,
        attributes: Mapping[str, Any] | None = None,
        attachment: str | bytes | Mapping[str, Any] | None = None,
    ) -> Report:
        """Create a report carrying a snapshot of the breadcrumb trail."""
        return Report(
            payload=payload,
            attributes=dict(attributes or {}),
            breadcrumbs=self.breadcrumbs.snapshot(),
            attachment=attachment,
            timestamp=int(self._clock()),
        )

    async def send_async(self, report: Report) -> Result:
        """Submit an existing report and wait for the outcome."""
        return await self.pipeline.submit(report)

    def send_report(
        self, report: Report, callback: ResultCallback | None = None
    ) -> Result:
        """Submit an existing report without waiting for delivery."""
        return self.pipeline.submit_nowait(report, callback)

    async def report_async(
        self,
        payload: Payload,
        attributes: Mapping[str, Any] | None = None,
        attachment: str | bytes | Mapping[str, Any] | None = None,
    ) -> Result:
        """Create and submit a report, waiting for the outcome.

        Raises:
            ReportSubmissionError: If delivery failed (``ServerError``).
        """
        report = self.create_report(payload, attributes, attachment)
        result = await self.pipeline.submit(report)
        if result.status is ResultStatus.SERVER_ERROR:
            raise ReportSubmissionError(result)
        return result

    def report_nowait(
        self,
        payload: Payload,
        attributes: Mapping[str, Any] | None = None,
        attachment: str | bytes | Mapping[str, Any] | None = None,
        callback: ResultCallback | None = None,
    ) -> Result:
        """Create and submit a report without waiting for delivery.

        Returns ``InProcessing`` for admitted reports; the final result is
        passed to the callback.
        """
        report = self.create_report(payload, attributes, attachment)
        return self.pipeline.submit_nowait(report, callback)

    def leave_breadcrumb(
        self,
        message: str,
        attributes: Mapping[str, Any] | None = None,
        timestamp: int | None = None,
        level: str = DEFAULT_LEVEL,
        type: str = DEFAULT_TYPE,
    ) -> None:
        """Record an event in the breadcrumb trail.

        Raises:
            ValueError: If message is empty.
        """
        if not message:
            raise ValueError("Breadcrumb must include message")
        self.breadcrumbs.add(message, attributes, timestamp, level, type)
