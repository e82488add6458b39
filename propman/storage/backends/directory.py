"""Directory-binding backend.

Properties come from an object bound under a name in a naming context,
the way services publish shared configuration in a directory. The bound
object is treated as a single opaque aggregate, so this backend is
read-only.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from propman.core.exceptions import (
    ConfigurationError,
    InvalidSourceFormatError,
    SourceUnavailableError,
)

from .base import ReadOnlyBackend

logger = logging.getLogger(__name__)


@runtime_checkable
class NamingContext(Protocol):
    """Resolves names to bound objects.

    ``lookup`` raises LookupError (or a subclass) for unbound names.
    """

    def lookup(self, name: str) -> Any: ...


class MappingContext:
    """Thread-safe in-memory naming context."""

    def __init__(self, bindings: Mapping[str, Any] | None = None):
        self._bindings: dict[str, Any] = dict(bindings or {})
        self._lock = threading.Lock()

    def bind(self, name: str, obj: Any) -> None:
        """Bind a new name. Raise KeyError if already bound."""
        with self._lock:
            if name in self._bindings:
                raise KeyError(f"Name already bound: {name}")
            self._bindings[name] = obj

    def rebind(self, name: str, obj: Any) -> None:
        """Bind a name, replacing any existing binding."""
        with self._lock:
            self._bindings[name] = obj

    def unbind(self, name: str) -> None:
        """Remove a binding. Unbinding an unbound name is a no-op."""
        with self._lock:
            self._bindings.pop(name, None)

    def lookup(self, name: str) -> Any:
        with self._lock:
            try:
                return self._bindings[name]
            except KeyError:
                raise LookupError(f"Name not bound: {name}") from None

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._bindings)


class DirectoryBackend(ReadOnlyBackend):
    """Properties held by an object bound in a naming context."""

    name = "directory"

    def __init__(self, context: NamingContext, lookup_name: str):
        self.context = context
        self.lookup_name = lookup_name

    def describe(self) -> str:
        return f"binding '{self.lookup_name}'"

    def initialize(self) -> None:
        """Check the context and name are usable."""
        if self.context is None or not isinstance(self.context, NamingContext):
            raise ConfigurationError(
                "A naming context with a lookup() method is required"
            )
        if not self.lookup_name or not isinstance(self.lookup_name, str):
            raise ConfigurationError("A lookup name is required")

    def load_all(self) -> dict[str, str]:
        """Resolve the binding and convert it to a string mapping."""
        try:
            bound = self.context.lookup(self.lookup_name)
        except (LookupError, OSError) as e:
            raise SourceUnavailableError(self.describe(), str(e)) from e

        if not isinstance(bound, Mapping):
            raise InvalidSourceFormatError(self.describe(), type(bound).__name__)

        properties = {
            str(key): str(value) for key, value in bound.items() if value is not None
        }
        logger.debug(f"Resolved {len(properties)} properties from {self.describe()}")
        return properties
