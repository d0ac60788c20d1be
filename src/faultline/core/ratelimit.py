"""Client-side report rate limiting."""

import time
from collections import deque
from collections.abc import Callable

from faultline.core.models import Report

WINDOW_SECONDS = 60


class RateLimiter:
    """Admission gate bounding the number of reports per minute.

    The window is purged lazily on each check. Times are compared in whole
    seconds. Once the oldest admitted timestamp is more than 60 seconds old
    the whole window is cleared, not just the expired entries, so a fresh
    burst of up to ``reports_per_minute`` is admitted right after a reset.

    Args:
        reports_per_minute: Maximum admissions per window; 0 disables the limiter.
        clock: Returns the current time in seconds since epoch.

    Raises:
        ValueError: If reports_per_minute is negative.
    """

    def __init__(
        self,
        reports_per_minute: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if reports_per_minute < 0:
            raise ValueError(
                "reports_per_minute argument must be greater or equal to zero"
            )
        self._reports_per_minute = reports_per_minute
        self._clock = clock
        self._window: deque[int] = deque()

    @property
    def enabled(self) -> bool:
        return self._reports_per_minute > 0

    def __len__(self) -> int:
        return len(self._window)

    def should_skip(self, report: Report) -> bool:
        """Return True if the report must be skipped, recording it otherwise."""
        if not self.enabled:
            return False
        self._purge()
        if len(self._window) >= self._reports_per_minute:
            return True
        self._window.append(report.timestamp)
        return False

    def _purge(self) -> None:
        if not self._window:
            return
        if int(self._clock()) - self._window[0] > WINDOW_SECONDS:
            self._window.clear()
