"""Pluggable property backends.

Provides a unified interface for different property sources:

- **FileBackend**: ``key=value`` properties file with atomic rewrites
- **DirectoryBackend**: key/value object bound in a naming context (read-only)
- **SQLBackend**: key/value table over any DB-API 2 driver
- **MemoryBackend**: In-memory source for embedding and testing

All backends load the full key/value set; writable backends apply
replace or upsert changes.
"""

from .base import BaseBackend, ReadOnlyBackend
from .directory import DirectoryBackend, MappingContext, NamingContext
from .file import FileBackend
from .memory import MemoryBackend
from .sql import SQLBackend

__all__ = [
    "BaseBackend",
    "ReadOnlyBackend",
    "DirectoryBackend",
    "MappingContext",
    "NamingContext",
    "FileBackend",
    "MemoryBackend",
    "SQLBackend",
]
