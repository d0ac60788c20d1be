"""Python logging handler adapter for faultline.

This adapter bridges Python's standard library logging module to a
ReportClient: every record becomes a breadcrumb, and records carrying
exception info at or above a threshold level are reported.
"""

import asyncio
import logging
from typing import Any

from faultline.client import ReportClient

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Breadcrumb levels used by the collection service
_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_INTERNAL_LOGGER_PREFIX = "faultline"


def _breadcrumb_level(levelno: int) -> str:
    for threshold in sorted(_LEVEL_NAMES, reverse=True):
        if levelno >= threshold:
            return _LEVEL_NAMES[threshold]
    return "debug"


class FaultlineHandler(logging.Handler):
    """Logging handler that leaves breadcrumbs and reports logged exceptions.

    Records emitted by faultline's own loggers are ignored.

    Example:
        ```python
        handler = FaultlineHandler(client, report_level=logging.ERROR)
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(
        self,
        client: ReportClient,
        report_level: int | None = logging.ERROR,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with a report client.

        Args:
            client: Client receiving breadcrumbs and reports.
            report_level: Minimum level at which records with exc_info are
                reported; None disables reporting.
            level: Handler level.
        """
        super().__init__(level)
        self._client = client
        self._report_level = report_level

    def emit(self, record: logging.LogRecord) -> None:
        """Record a breadcrumb for the log record and report its exception.

        Args:
            record: The log record to emit.
        """
        if record.name.startswith(_INTERNAL_LOGGER_PREFIX):
            return
        attributes: dict[str, Any] = {
            "logger": record.name,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
        }
        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                attributes[key] = value

        try:
            self._client.breadcrumbs.add(
                record.getMessage(),
                attributes,
                timestamp=int(record.created * 1000),
                level=_breadcrumb_level(record.levelno),
                type="log",
            )
            if self._should_report(record):
                self._report(record, attributes)
        except Exception:
            self.handleError(record)

    def _should_report(self, record: logging.LogRecord) -> bool:
        if self._report_level is None or record.levelno < self._report_level:
            return False
        return bool(record.exc_info and record.exc_info[1] is not None)

    def _report(self, record: logging.LogRecord, attributes: dict[str, Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # reports are dispatched on the running event loop only
            return
        _, error, _ = record.exc_info  # type: ignore[misc]
        self._client.report_nowait(
            error, {**attributes, "log.message": record.getMessage()}
        )
