"""Classification of transport outcomes into typed results."""

import json
import logging
from typing import Any

from faultline.core.errors import SubmissionError
from faultline.core.models import Report, Result

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_TOO_MANY_REQUESTS = 429

QUOTA_EXCEEDED_MESSAGE = "Backtrace - reached report limit."


def _decode_receipt(body: str) -> dict[str, Any]:
    """Decode the server receipt, tolerating non-JSON bodies."""
    if not body:
        return {}
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("Submission receipt is not JSON: %r", body[:200])
        return {}
    return data if isinstance(data, dict) else {}


def classify_response(report: Report, status_code: int, body: str) -> Result:
    """Map an HTTP response of the submission endpoint to a Result.

    Mapping:
    - 200 → Ok, with the receipt's object id and optional message
    - 429 → ServerError, remote quota exceeded
    - other → ServerError, with the response body in the message

    Args:
        report: The submitted report.
        status_code: HTTP status code of the response.
        body: Response body text.

    Returns:
        The classified Result.
    """
    if status_code == HTTP_OK:
        return Result.ok(report, _decode_receipt(body))
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return Result.on_error(
            report, SubmissionError(QUOTA_EXCEEDED_MESSAGE, status_code)
        )
    return Result.on_error(
        report,
        SubmissionError(
            f"Invalid attempt to submit error to Backtrace. Result: {body}",
            status_code,
        ),
    )


def classify_exception(report: Report, error: BaseException) -> Result:
    """Map an exception raised while preparing or sending a report."""
    return Result.on_error(report, error)
