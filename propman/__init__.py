"""Reloadable, thread-safe property stores over pluggable backends."""

__version__ = "0.1.0"

from propman.core import (
    ConfigurationError,
    InvalidSourceFormatError,
    PersistenceError,
    PropertyError,
    ReloadPolicy,
    SourceUnavailableError,
    UnsupportedOperationError,
    UpdatePolicy,
)
from propman.storage import (
    DirectoryBackend,
    EventBus,
    EventType,
    FileBackend,
    MappingContext,
    MemoryBackend,
    PropertyStore,
    SQLBackend,
    ThreadScheduler,
    create_store,
)

__all__ = [
    "__version__",
    "PropertyStore",
    "ReloadPolicy",
    "UpdatePolicy",
    "FileBackend",
    "DirectoryBackend",
    "MappingContext",
    "SQLBackend",
    "MemoryBackend",
    "ThreadScheduler",
    "EventBus",
    "EventType",
    "create_store",
    "PropertyError",
    "ConfigurationError",
    "SourceUnavailableError",
    "PersistenceError",
    "InvalidSourceFormatError",
    "UnsupportedOperationError",
]
