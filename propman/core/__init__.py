"""Core types shared by stores, backends and the CLI.

- **Policies**: ReloadPolicy and UpdatePolicy with configuration parsing
- **Errors**: the PropertyError hierarchy raised across the package
- **Properties codec**: reader/writer for ``key=value`` properties text
"""

from .exceptions import (
    ConfigurationError,
    InvalidSourceFormatError,
    PersistenceError,
    PropertyError,
    SourceUnavailableError,
    UnsupportedOperationError,
)
from .models import ReloadPolicy, UpdatePolicy, interval_seconds
from .properties import PropertiesFormatError

__all__ = [
    "ReloadPolicy",
    "UpdatePolicy",
    "interval_seconds",
    "PropertyError",
    "ConfigurationError",
    "SourceUnavailableError",
    "PersistenceError",
    "InvalidSourceFormatError",
    "UnsupportedOperationError",
    "PropertiesFormatError",
]
