"""Bounded breadcrumb trail.

Keeps the most recent application events in a fixed-size buffer that
evicts the oldest entry when full. Reports take a snapshot of the trail
when they are created.
"""

import itertools
import time
from collections import deque
from collections.abc import Callable, Mapping
from typing import Any

from faultline.core.models import Breadcrumb

DEFAULT_LEVEL = "info"
DEFAULT_TYPE = "manual"


def _now_millis() -> int:
    return int(time.time() * 1000)


class BreadcrumbBuffer:
    """Ring buffer of breadcrumbs with monotonically increasing ids.

    Args:
        limit: Maximum number of breadcrumbs kept. None or a non-positive
            value disables the buffer.
        clock: Returns the current time in milliseconds since epoch.
    """

    def __init__(
        self,
        limit: int | None = None,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self._limit = limit if limit is not None and limit > 0 else 0
        self._clock = clock
        self._buffer: deque[Breadcrumb] = deque(maxlen=self._limit or None)
        self._ids = itertools.count()

    @property
    def limit(self) -> int:
        return self._limit

    def is_enabled(self) -> bool:
        """Return True if breadcrumbs are recorded."""
        return self._limit > 0

    def add(
        self,
        message: str,
        attributes: Mapping[str, Any] | None = None,
        timestamp: int | None = None,
        level: str = DEFAULT_LEVEL,
        type: str = DEFAULT_TYPE,
    ) -> Breadcrumb | None:
        """Record a breadcrumb, evicting the oldest one at capacity.

        Args:
            message: Description of the event.
            attributes: Values related to the event.
            timestamp: Milliseconds since epoch (default: now).
            level: Severity (default "info").
            type: Event kind (default "manual").

        Returns:
            The recorded breadcrumb, or None when the buffer is disabled.
        """
        if not self.is_enabled():
            return None
        breadcrumb = Breadcrumb(
            id=next(self._ids),
            timestamp=self._clock() if timestamp is None else timestamp,
            level=level,
            type=type,
            message=message,
            attributes=dict(attributes or {}),
        )
        self._buffer.append(breadcrumb)
        return breadcrumb

    def get(self) -> list[Breadcrumb]:
        """Return the breadcrumbs, oldest first."""
        return list(self._buffer)

    def snapshot(self) -> tuple[Breadcrumb, ...] | None:
        """Return an immutable copy of the trail, or None when disabled."""
        if not self.is_enabled():
            return None
        return tuple(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)
