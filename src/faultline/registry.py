"""Optional process-wide client registry.

Convenience functions for applications that want a single implicit
client. Library code should hold a ReportClient explicitly instead.
"""

from collections.abc import Mapping
from typing import Any

from faultline.client import Payload, ReportClient
from faultline.config import ClientOptions
from faultline.core.breadcrumbs import DEFAULT_LEVEL, DEFAULT_TYPE
from faultline.core.errors import FaultlineError
from faultline.core.models import Report, Result
from faultline.core.pipeline import ResultCallback

_client: ReportClient | None = None


async def initialize(
    options: ClientOptions | Mapping[str, Any], **kwargs: Any
) -> ReportClient:
    """Create, start and register the process-wide client.

    Args:
        options: Client options.
        **kwargs: Extra ReportClient arguments (transport, store, ...).
    """
    client = ReportClient(options, **kwargs)
    await client.start()
    use(client)
    return client


def get_client() -> ReportClient | None:
    """Return the registered client, if any."""
    return _client


def use(client: ReportClient | None) -> None:
    """Register client as the process-wide client (None clears it)."""
    global _client
    _client = client


def _require_client() -> ReportClient:
    if _client is None:
        raise FaultlineError("Must call initialize method first")
    return _client


async def report(
    payload: Payload,
    attributes: Mapping[str, Any] | None = None,
    attachment: str | bytes | Mapping[str, Any] | None = None,
) -> Result:
    """Report through the registered client and wait for the outcome."""
    return await _require_client().report_async(payload, attributes, attachment)


def report_nowait(
    payload: Payload,
    attributes: Mapping[str, Any] | None = None,
    attachment: str | bytes | Mapping[str, Any] | None = None,
    callback: ResultCallback | None = None,
) -> Result:
    """Report through the registered client without waiting for delivery."""
    return _require_client().report_nowait(payload, attributes, attachment, callback)


def create_report(
    payload: Payload = "",
    attributes: Mapping[str, Any] | None = None,
) -> Report:
    """Create a report with the registered client's breadcrumb snapshot."""
    return _require_client().create_report(payload, attributes)


def leave_breadcrumb(
    message: str,
    attributes: Mapping[str, Any] | None = None,
    timestamp: int | None = None,
    level: str = DEFAULT_LEVEL,
    type: str = DEFAULT_TYPE,
) -> None:
    """Record an event in the registered client's breadcrumb trail."""
    _require_client().leave_breadcrumb(message, attributes, timestamp, level, type)
