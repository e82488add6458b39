"""In-memory property backend."""

import threading
from collections.abc import Mapping

from .base import BaseBackend


class MemoryBackend(BaseBackend):
    """Properties held in process memory.

    Useful for embedding and testing. The ``put``, ``remove`` and
    ``replace_all`` helpers stand in for changes made at the source by
    someone other than the store; every change bumps a version number that
    serves as the freshness stamp.
    """

    name = "memory"

    def __init__(self, initial: Mapping[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._version = 0
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Initialize the backend (no-op for memory)."""
        pass

    def load_all(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)

    def apply_change(self, changes: Mapping[str, str], replace: bool) -> None:
        with self._lock:
            if replace:
                self._data = dict(changes)
            else:
                self._data.update(changes)
            self._version += 1

    def freshness_stamp(self) -> int:
        with self._lock:
            return self._version

    def put(self, key: str, value: str) -> None:
        """Set one key at the source."""
        self.apply_change({key: value}, replace=False)

    def remove(self, key: str) -> None:
        """Delete one key at the source."""
        with self._lock:
            self._data.pop(key, None)
            self._version += 1

    def replace_all(self, properties: Mapping[str, str]) -> None:
        """Replace the whole source."""
        self.apply_change(properties, replace=True)

    def get_size(self) -> int:
        """Get the number of stored properties."""
        with self._lock:
            return len(self._data)
