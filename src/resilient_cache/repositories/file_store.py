"""File-system implementation of KeyValueStore.

One file per key, so entries survive process restarts the way browser
local storage survives page reloads.
"""

import hashlib
import os
import tempfile
from pathlib import Path

from resilient_cache.config import Settings, get_settings
from resilient_cache.errors import StorageError


class FileStore:
    """Directory-backed store.

    File names are the SHA-256 of the key, which keeps arbitrary keys
    (slashes, colons, unicode) safe on every file system. Writes go to a
    temporary file first and are moved into place, so a reader never sees
    a half-written entry.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory {self._directory}: {e}") from e

    @classmethod
    def create(cls, settings: Settings | None = None) -> "FileStore":
        settings = settings or get_settings()
        return cls(settings.file_store_path)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._directory / f"{digest}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {key!r} from {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            # One temporary file per writer
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self._directory, suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {key!r} to {path}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove {key!r}: {e}") from e

    def health_check(self) -> bool:
        return self._directory.is_dir() and os.access(self._directory, os.W_OK)

    @property
    def directory(self) -> Path:
        return self._directory
