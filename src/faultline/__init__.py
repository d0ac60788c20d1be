"""faultline - error reporting agent with local admission control.

Example:
    ```python
    from faultline import ReportClient

    async with ReportClient({"endpoint": url, "token": token}) as client:
        await client.report_async(error)
    ```
"""

from faultline._version import __version__
from faultline.adapters.environment import EnvironmentAttributes
from faultline.adapters.logging import FaultlineHandler
from faultline.adapters.storage import InMemoryKeyValueStore, SQLiteKeyValueStore
from faultline.adapters.transport import HttpxReportTransport
from faultline.client import ReportClient
from faultline.config import ClientOptions
from faultline.core.breadcrumbs import BreadcrumbBuffer
from faultline.core.endpoint import metrics_endpoints, resolve_endpoint, submission_url
from faultline.core.errors import (
    ConfigurationError,
    FaultlineError,
    InvalidReportError,
    ReportSubmissionError,
    SubmissionError,
)
from faultline.core.metrics_session import MetricsSession
from faultline.core.models import (
    Breadcrumb,
    EndpointParameters,
    Report,
    Result,
    ResultStatus,
)
from faultline.core.pipeline import ReportPipeline
from faultline.core.ratelimit import RateLimiter
from faultline.core.sampling import Sampler

__all__ = [
    "Breadcrumb",
    "BreadcrumbBuffer",
    "ClientOptions",
    "ConfigurationError",
    "EndpointParameters",
    "EnvironmentAttributes",
    "FaultlineError",
    "FaultlineHandler",
    "HttpxReportTransport",
    "InMemoryKeyValueStore",
    "InvalidReportError",
    "MetricsSession",
    "RateLimiter",
    "Report",
    "ReportClient",
    "ReportPipeline",
    "ReportSubmissionError",
    "Result",
    "ResultStatus",
    "SQLiteKeyValueStore",
    "Sampler",
    "SubmissionError",
    "__version__",
    "metrics_endpoints",
    "resolve_endpoint",
    "submission_url",
]
