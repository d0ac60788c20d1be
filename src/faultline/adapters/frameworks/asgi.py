"""ASGI error reporting middleware.

Wraps any ASGI application (FastAPI, Starlette, Django ASGI, ...) and
reports unhandled exceptions through a ReportClient before re-raising
them. Each request also leaves an ``http`` breadcrumb.
"""

import fnmatch
import uuid
from collections.abc import Callable, Coroutine
from typing import Any

from faultline.client import ReportClient

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Extract or generate a request ID from ASGI scope headers.

    Searches for the specified header (case-insensitive). If not found,
    generates a new UUID.

    Args:
        scope: ASGI scope dictionary containing request metadata.
        header_name: Name of the header to search for (default: "X-Request-ID").

    Returns:
        Request ID string (either from header or newly generated UUID).
    """
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return str(value.decode("utf-8", errors="replace"))
    return str(uuid.uuid4())


def _breadcrumb_level_for_status(status_code: int) -> str:
    """Map an HTTP status code to a breadcrumb level.

    - 400-499 (4xx) → "warning"
    - 500-599 (5xx) → "error"
    - Other → "info"
    """
    if 400 <= status_code < 500:
        return "warning"
    if 500 <= status_code < 600:
        return "error"
    return "info"


class ASGIErrorReportingMiddleware:
    """ASGI middleware that reports unhandled application exceptions.

    Reports are dispatched without waiting for delivery, so the exception
    is re-raised to the server immediately.
    """

    def __init__(
        self,
        app: ASGIApp,
        client: ReportClient,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
        record_breadcrumbs: bool = True,
    ) -> None:
        """Initialize the middleware with a wrapped app and report client.

        Args:
            app: The ASGI application to wrap.
            client: Client the exceptions are reported through.
            exclude_paths: Paths never reported. Supports exact matches and
                wildcard patterns (e.g., "/internal/*").
            request_id_header: Name of the header to extract the request ID
                from (default: "X-Request-ID").
            record_breadcrumbs: Leave an ``http`` breadcrumb per request.
        """
        self.app = app
        self.client = client
        self.exclude_paths = exclude_paths or []
        self.request_id_header = request_id_header
        self.record_breadcrumbs = record_breadcrumbs

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    def _request_attributes(self, scope: Scope, request_id: str) -> dict[str, Any]:
        query_string: bytes = scope.get("query_string", b"")
        return {
            "request.id": request_id,
            "request.method": scope.get("method", ""),
            "request.path": scope.get("path", ""),
            "request.query": query_string.decode(errors="replace"),
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http" or self._path_excluded(scope["path"]):
            await self.app(scope, receive, send)
            return

        request_id = _extract_request_id(scope, self.request_id_header)
        captured: dict[str, Any] = {"status": None}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            await send(message)

        attributes = self._request_attributes(scope, request_id)
        try:
            await self.app(scope, receive, wrapped_send)
        except Exception as e:
            captured["status"] = 500
            self._leave_breadcrumb(scope, attributes, captured["status"])
            self.client.report_nowait(e, attributes)
            raise
        self._leave_breadcrumb(scope, attributes, captured["status"] or 0)

    def _leave_breadcrumb(
        self, scope: Scope, attributes: dict[str, Any], status_code: int
    ) -> None:
        if not self.record_breadcrumbs:
            return
        self.client.breadcrumbs.add(
            f"{scope['method']} {scope['path']}",
            {**attributes, "status_code": status_code},
            level=_breadcrumb_level_for_status(status_code),
            type="http",
        )
