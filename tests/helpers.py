"""Test doubles and constants shared across test modules."""

from collections.abc import Mapping
from typing import Any

from faultline.core.models import Report, Result

TOKEN = "a" * 64
UNIVERSE = "my-universe"
ENDPOINT = f"https://submit.backtrace.io/{UNIVERSE}/{TOKEN}/json"


class FakeClock:
    """Manually advanced clock returning seconds since epoch."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Transport double recording every report and metrics payload."""

    def __init__(self) -> None:
        self.reports: list[Report] = []
        self.metrics: list[tuple[str, dict[str, Any]]] = []
        self.send_error: Exception | None = None
        self.result_factory = lambda report: Result.ok(
            report, {"object": f"obj-{len(self.reports)}"}
        )
        self.metrics_accepted = True
        self.metrics_error: Exception | None = None

    async def send(self, report: Report) -> Result:
        self.reports.append(report)
        if self.send_error is not None:
            raise self.send_error
        return self.result_factory(report)

    async def send_metrics(self, url: str, data: Mapping[str, Any]) -> bool:
        self.metrics.append((url, dict(data)))
        if self.metrics_error is not None:
            raise self.metrics_error
        return self.metrics_accepted

    def metrics_to(self, fragment: str) -> list[dict[str, Any]]:
        """Return payloads POSTed to URLs containing fragment."""
        return [data for url, data in self.metrics if fragment in url]
