"""Port interfaces for the collaborators of the reporting core.

These protocols define the contracts that adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from faultline.core.models import Report, Result


@runtime_checkable
class ReportTransportPort(Protocol):
    """Port for delivering reports and metrics events to the remote side.

    Examples: HttpxReportTransport.
    """

    async def send(self, report: Report) -> Result:
        """Submit a report and classify the outcome.

        Returns:
            ``Ok`` or ``ServerError`` result. Transport failures are
            captured into the result rather than raised.
        """
        ...

    async def send_metrics(self, url: str, data: Mapping[str, Any]) -> bool:
        """POST a JSON metrics payload.

        Returns:
            True when the server accepted the payload, False otherwise.
        """
        ...


@runtime_checkable
class KeyValueStorePort(Protocol):
    """Port for durable key/value state that survives a restart.

    Holds the installation guid and the metrics session fields.
    Examples: InMemoryKeyValueStore, SQLiteKeyValueStore.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...


@runtime_checkable
class AttributeProvider(Protocol):
    """Port for harvesting a read-only snapshot of environment attributes."""

    def __call__(self) -> dict[str, Any]:
        """Return the current environment attributes."""
        ...
