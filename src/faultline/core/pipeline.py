"""Report submission pipeline.

Runs the admission checks (user filter, sampling, rate limit) in order,
dispatches admitted reports through the transport and classifies the
outcome. Outcomes delivered through the callback path are recorded as
breadcrumbs.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from faultline.core.breadcrumbs import BreadcrumbBuffer
from faultline.core.errors import InvalidReportError
from faultline.core.models import Report, Result, ResultStatus
from faultline.core.ports import ReportTransportPort
from faultline.core.ratelimit import RateLimiter
from faultline.core.results import classify_exception
from faultline.core.sampling import Sampler

logger = logging.getLogger(__name__)

ReportFilter = Callable[[Report], bool]
ResultCallback = Callable[[BaseException | None, Result], None]

SENT_BREADCRUMB_MESSAGE = "Report sent to Backtrace"


class ReportPipeline:
    """Admission control and dispatch for individual reports.

    Args:
        transport: Adapter delivering reports to the remote side.
        rate_limiter: Client-side per-minute admission gate.
        sampler: Probabilistic admission gate.
        breadcrumbs: Trail receiving one entry per report dispatched through
            submit_nowait.
        report_filter: Predicate; returning True drops the report.
        default_attributes: Returns attributes merged into admitted reports.
    """

    def __init__(
        self,
        transport: ReportTransportPort,
        rate_limiter: RateLimiter,
        sampler: Sampler,
        breadcrumbs: BreadcrumbBuffer,
        report_filter: ReportFilter | None = None,
        default_attributes: Callable[[], Mapping[str, Any]] | None = None,
    ) -> None:
        self._transport = transport
        self._rate_limiter = rate_limiter
        self._sampler = sampler
        self._breadcrumbs = breadcrumbs
        self._filter = report_filter
        self._default_attributes = default_attributes
        self._pending: set[asyncio.Task[Result]] = set()

    @property
    def pending(self) -> int:
        """Number of dispatches still in flight."""
        return len(self._pending)

    def check_admission(self, report: Report) -> Result | None:
        """Run the admission checks in order.

        Returns:
            The skip result (FilterHit, SamplingHit or LimitReached), or
            None when the report is admitted.

        Raises:
            InvalidReportError: If the report has no identifier.
        """
        if not report.uuid:
            raise InvalidReportError(
                "Invalid report object. Please pass an instance of Report "
                "created by the client."
            )
        if self._filter is not None and self._filter(report):
            return Result.on_filter_hit(report)
        if self._sampler.is_hit():
            return Result.on_sampling_hit(report)
        if self._rate_limiter.should_skip(report):
            return Result.on_limit_reached(report)
        return None

    async def submit(self, report: Report) -> Result:
        """Submit a report and wait for the final outcome.

        Never returns an ``InProcessing`` result.
        """
        skipped = self.check_admission(report)
        if skipped is not None:
            logger.debug("Report %s skipped: %s", report.uuid, skipped.status.value)
            return skipped
        return await self._dispatch(report)

    def submit_nowait(
        self, report: Report, callback: ResultCallback | None = None
    ) -> Result:
        """Submit a report without waiting for delivery.

        Skips are returned (and passed to the callback) immediately.
        Admitted reports return ``InProcessing``; the final result is
        passed to ``callback(error, result)`` once the send completes, and
        the outcome is recorded in the breadcrumb trail.

        Raises:
            InvalidReportError: If the report has no identifier.
            RuntimeError: If called outside a running event loop.
        """
        skipped = self.check_admission(report)
        if skipped is not None:
            logger.debug("Report %s skipped: %s", report.uuid, skipped.status.value)
            if callback is not None:
                _invoke(callback, skipped)
            return skipped

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._dispatch(report, record=True))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if callback is not None:

            def _deliver(done: asyncio.Task[Result]) -> None:
                if not done.cancelled():
                    _invoke(callback, done.result())

            task.add_done_callback(_deliver)
        return Result.processing(report)

    async def drain(self) -> None:
        """Wait until every in-flight dispatch has completed."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _dispatch(self, report: Report, record: bool = False) -> Result:
        try:
            if self._default_attributes is not None:
                report.add_attributes(self._default_attributes())
            result = await self._transport.send(report)
        except Exception as e:
            logger.warning("Failed to submit report %s: %s", report.uuid, e)
            result = classify_exception(report, e)
        if result.status is ResultStatus.SERVER_ERROR:
            logger.info("Report %s rejected: %s", report.uuid, result.message)
        if record:
            self._record(result)
        return result

    def _record(self, result: Result) -> None:
        if not self._breadcrumbs.is_enabled():
            return
        self._breadcrumbs.add(
            SENT_BREADCRUMB_MESSAGE,
            {
                "error": str(result.error) if result.error is not None else None,
                "message": result.message,
                "objectId": result.object_id,
            },
            level="error",
            type="log",
        )


def _invoke(callback: ResultCallback, result: Result) -> None:
    try:
        callback(result.error, result)
    except Exception:
        logger.exception("Report callback failed for %s", result.report.uuid)
