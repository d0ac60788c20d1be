"""Framework integrations."""

from faultline.adapters.frameworks.asgi import ASGIErrorReportingMiddleware

__all__ = ["ASGIErrorReportingMiddleware"]
