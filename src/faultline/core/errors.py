"""Exception taxonomy for the reporting agent."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from faultline.core.models import Result


class FaultlineError(Exception):
    """Base class for all errors raised by faultline."""


class ConfigurationError(FaultlineError, ValueError):
    """Raised at construction time when the client configuration is invalid.

    Covers a missing endpoint, a missing token where one is required,
    out-of-range admission options and an endpoint from which no
    universe/token pair can be resolved.
    """


class InvalidReportError(FaultlineError, ValueError):
    """Raised when a report without an identifier is submitted."""


class ReportSubmissionError(FaultlineError):
    """Raised by the awaiting submission path when delivery failed.

    Attributes:
        result: The ``ServerError`` result describing the failure.
    """

    def __init__(self, result: Result) -> None:
        super().__init__(result.message)
        self.result = result


class SubmissionError(FaultlineError):
    """A report submission was rejected by the remote side.

    Attributes:
        status_code: HTTP status returned by the server.
    """

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code
