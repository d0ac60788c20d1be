"""In-memory key/value store."""


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStorePort.

    State lives only as long as the process. Suitable for testing and
    for applications that do not need session continuity across restarts.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        self._values[key] = value

    def snapshot(self) -> dict[str, str]:
        """Return a copy of all stored values."""
        return dict(self._values)
