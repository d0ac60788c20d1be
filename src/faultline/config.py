"""Client configuration options."""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from faultline.core.errors import ConfigurationError
from faultline.core.models import Report

DEFAULT_TIMEOUT_SECONDS = 15.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass
class ClientOptions:
    """Options recognized by ReportClient.

    Attributes:
        endpoint: Submission URL (required).
        token: Submission token, required unless the endpoint carries one.
        timeout: Transport timeout in seconds.
        user_attributes: Attributes added to every report and metrics event.
        sampling: Keep-probability in [0, 1]; None keeps every report.
        rate_limit: Maximum reports per minute; 0 disables the limit.
        filter: Predicate over a report; returning True drops it.
        breadcrumb_limit: Trail size; None or <= 0 disables breadcrumbs.
        enable_metrics_support: Run the usage metrics session.
        metrics_submission_url: Metrics host override.

    Raises:
        ConfigurationError: If a value is missing or out of range.
    """

    endpoint: str
    token: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    user_attributes: dict[str, Any] = field(default_factory=dict)
    sampling: float | None = None
    rate_limit: int = 0
    filter: Callable[[Report], bool] | None = None
    breadcrumb_limit: int | None = None
    enable_metrics_support: bool = True
    metrics_submission_url: str | None = None

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ConfigurationError("Backtrace: missing 'endpoint' option.")
        if not _is_number(self.timeout):
            raise ConfigurationError("'timeout' must be a number")
        if self.sampling is not None and not _is_number(self.sampling):
            raise ConfigurationError("'sampling' must be a number")
        if not isinstance(self.rate_limit, int) or isinstance(self.rate_limit, bool):
            raise ConfigurationError("'rateLimit' must be an integer")
        if self.timeout <= 0:
            raise ConfigurationError("'timeout' must be greater than zero")
        if self.sampling is not None and not 0 <= self.sampling <= 1:
            raise ConfigurationError("'sampling' must be between 0 and 1")
        if self.rate_limit < 0:
            raise ConfigurationError("'rateLimit' must be greater or equal to zero")
        if self.filter is not None and not callable(self.filter):
            raise ConfigurationError("'filter' must be callable")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "ClientOptions":
        """Build options from a mapping with camelCase or snake_case keys.

        Example:
            ```python
            options = ClientOptions.from_mapping(
                {"endpoint": "https://submit.backtrace.io/...", "rateLimit": 10}
            )
            ```

        Raises:
            ConfigurationError: On unknown option names or invalid values.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = _snake_case(key)
            if name not in known:
                raise ConfigurationError(f"Unknown option: {key!r}")
            kwargs[name] = value
        if "endpoint" not in kwargs:
            raise ConfigurationError("Backtrace: missing 'endpoint' option.")
        return cls(**kwargs)
