"""Base property backend interface."""

from abc import ABC, abstractmethod
from collections.abc import Hashable, Mapping

from propman.core.exceptions import UnsupportedOperationError


class BaseBackend(ABC):
    """Abstract base class for property backends.

    A backend knows how to read the complete key/value set from one kind of
    source and, where the source allows it, how to write changes back.
    Backends hold no cache of their own; the store owns caching and locking.
    """

    name = "base"

    @abstractmethod
    def initialize(self) -> None:
        """Validate the source locator. Raise ConfigurationError if invalid."""
        pass

    @abstractmethod
    def load_all(self) -> dict[str, str]:
        """Fetch every key/value pair. Raise SourceUnavailableError on failure."""
        pass

    @abstractmethod
    def apply_change(self, changes: Mapping[str, str], replace: bool) -> None:
        """Persist changes.

        With ``replace`` the source ends up holding exactly ``changes``;
        otherwise each key is upserted and all others are left alone.
        Raise PersistenceError on failure.
        """
        pass

    def freshness_stamp(self) -> Hashable | None:
        """Return a cheap marker that changes when the source changes.

        None means the backend cannot tell, and callers must assume the
        source may have changed.
        """
        return None

    def supports_writes(self) -> bool:
        """Check if backend accepts apply_change()."""
        return True

    def describe(self) -> str:
        """Human-readable source description for messages."""
        return self.name


class ReadOnlyBackend(BaseBackend):
    """Mixin for backends whose source cannot be written."""

    def apply_change(self, changes: Mapping[str, str], replace: bool) -> None:
        raise UnsupportedOperationError(self.name)

    def supports_writes(self) -> bool:
        return False
