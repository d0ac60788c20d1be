"""Default environment attribute harvesting for a Python process."""

import os
import platform
import socket
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from uuid import uuid4

from faultline._version import __version__
from faultline.core.ports import KeyValueStorePort

GUID_KEY = "guid"


def _default_application() -> str:
    name = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
    return name or "unknown"


class EnvironmentAttributes:
    """AttributeProvider returning a snapshot of process and host properties.

    Args:
        application: Application name (default: the script name, or "unknown").
        clock: Returns the current time in seconds since epoch.
    """

    def __init__(
        self,
        application: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.application = application or _default_application()
        self._clock = clock
        self._started = clock()

    def __call__(self) -> dict[str, Any]:
        uname = platform.uname()
        return {
            "application": self.application,
            "process.age": int(self._clock() - self._started),
            "process.id": os.getpid(),
            "hostname": socket.gethostname(),
            "uname.sysname": uname.system,
            "uname.machine": uname.machine,
            "uname.version": uname.version,
            "uname.release": uname.release,
            "lang.name": "python",
            "lang.version": platform.python_version(),
            "backtrace.version": __version__,
        }


async def installation_guid(store: KeyValueStorePort) -> str:
    """Return the persistent per-installation id, creating it on first use."""
    guid = await store.get(GUID_KEY)
    if not guid:
        guid = str(uuid4())
        await store.set(GUID_KEY, guid)
    return guid
