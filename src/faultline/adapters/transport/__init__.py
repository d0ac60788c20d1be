"""Transport adapters implementing ReportTransportPort."""

from faultline.adapters.transport.httpx_transport import HttpxReportTransport

__all__ = ["HttpxReportTransport"]
