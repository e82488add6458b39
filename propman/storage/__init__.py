"""Property storage and caching layer.

Provides the reloadable property store and everything it drives:

- **PropertyStore**: thread-safe cache with reload and update policies
- **Multiple backends**: properties file, directory binding, SQL table, memory
- **Scheduling**: periodic background refresh with cancellable handles
- **Event system**: notifications for loads, reloads, failures and updates
- **Factory**: stores built from configuration dictionaries
"""

from propman.storage.backends import (
    BaseBackend,
    DirectoryBackend,
    FileBackend,
    MappingContext,
    MemoryBackend,
    NamingContext,
    ReadOnlyBackend,
    SQLBackend,
)
from propman.storage.events import Event, EventBus, EventPublisher, EventType
from propman.storage.factory import StoreSettings, create_backend, create_store
from propman.storage.locks import ReadWriteLock
from propman.storage.scheduler import ScheduledTask, Scheduler, ThreadScheduler
from propman.storage.store import PropertyStore

__all__ = [
    # Store
    "PropertyStore",
    # Backends
    "BaseBackend",
    "ReadOnlyBackend",
    "FileBackend",
    "DirectoryBackend",
    "MappingContext",
    "NamingContext",
    "SQLBackend",
    "MemoryBackend",
    # Events
    "EventType",
    "Event",
    "EventBus",
    "EventPublisher",
    # Concurrency
    "ReadWriteLock",
    "Scheduler",
    "ScheduledTask",
    "ThreadScheduler",
    # Factory
    "StoreSettings",
    "create_backend",
    "create_store",
]
