"""In-memory implementation of KeyValueStore."""


class InMemoryStore:
    """Dict-backed store for tests and single-process use.

    Contents are lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def health_check(self) -> bool:
        return True

    def keys(self) -> list[str]:
        """Snapshot of the stored keys."""
        return list(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
