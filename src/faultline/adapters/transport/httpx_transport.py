"""HTTP transport adapter built on httpx."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from faultline.config import DEFAULT_TIMEOUT_SECONDS
from faultline.core.models import Report, Result
from faultline.core.results import HTTP_OK, classify_exception, classify_response

logger = logging.getLogger(__name__)


class HttpxReportTransport:
    """httpx implementation of ReportTransportPort.

    Reports are POSTed as multipart form data to the submission URL;
    metrics payloads are POSTed as JSON. A transport that creates its own
    ``httpx.AsyncClient`` closes it in ``aclose()``.

    Example:
        ```python
        transport = HttpxReportTransport(
            "https://submit.backtrace.io/universe/<token>/json", timeout=5.0
        )
        result = await transport.send(report)
        await transport.aclose()
        ```
    """

    def __init__(
        self,
        submission_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            submission_url: URL reports are POSTed to.
            timeout: Request timeout in seconds.
            client: Shared client to use instead of creating one.
        """
        self._submission_url = submission_url
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @property
    def submission_url(self) -> str:
        return self._submission_url

    async def send(self, report: Report) -> Result:
        """POST a report and classify the response."""
        try:
            response = await self._client.post(
                self._submission_url,
                files=report.to_form_data(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.debug("Report %s transport failure: %s", report.uuid, e)
            return classify_exception(report, e)
        return classify_response(report, response.status_code, response.text)

    async def send_metrics(self, url: str, data: Mapping[str, Any]) -> bool:
        """POST a metrics payload as JSON."""
        try:
            response = await self._client.post(
                url, json=dict(data), timeout=self._timeout
            )
        except httpx.HTTPError as e:
            logger.debug("Metrics transport failure: %s", e)
            return False
        return response.status_code == HTTP_OK

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
