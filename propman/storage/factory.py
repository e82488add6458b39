"""Build stores from configuration data.

Configuration arrives as plain dictionaries (from YAML files, environment
variables or CLI flags). ``StoreSettings`` validates and normalizes it,
and ``create_store`` turns it into a backend and a PropertyStore.
"""

from __future__ import annotations

import functools
import sqlite3
from pathlib import Path
from typing import Any

import msgspec

from propman.core.exceptions import ConfigurationError
from propman.core.models import ReloadPolicy, UpdatePolicy
from propman.core.properties import DEFAULT_ENCODING

from .backends import (
    BaseBackend,
    DirectoryBackend,
    FileBackend,
    MemoryBackend,
    NamingContext,
    SQLBackend,
)
from .events import EventBus
from .scheduler import Scheduler
from .store import PropertyStore

BACKENDS = ("file", "sql", "directory", "memory")


class StoreSettings(msgspec.Struct, frozen=True, kw_only=True, forbid_unknown_fields=True):
    """Validated store configuration."""

    backend: str = "file"
    path: str | None = None
    encoding: str = DEFAULT_ENCODING
    database: str | None = None
    table: str = "properties"
    key_column: str = "key"
    value_column: str = "value"
    lookup_name: str | None = None
    reload: str = "never"
    update: str = "local"
    interval: float | None = None
    initial_delay: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoreSettings:
        """Validate a configuration mapping.

        Unknown keys, wrong types and unknown backends or policies raise
        ConfigurationError.
        """
        try:
            settings = msgspec.convert(data, cls, strict=False)
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid store configuration: {e}") from e

        if settings.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown backend {settings.backend!r}; "
                f"expected one of: {', '.join(BACKENDS)}"
            )
        ReloadPolicy.parse(settings.reload)
        UpdatePolicy.parse(settings.update)
        return settings

    @property
    def reload_policy(self) -> ReloadPolicy:
        return ReloadPolicy.parse(self.reload)

    @property
    def update_policy(self) -> UpdatePolicy:
        return UpdatePolicy.parse(self.update)

    def to_dict(self) -> dict[str, Any]:
        return msgspec.to_builtins(self)


def create_backend(
    settings: StoreSettings, context: NamingContext | None = None
) -> BaseBackend:
    """Create the backend described by ``settings``."""
    if settings.backend == "file":
        if not settings.path:
            raise ConfigurationError("The file backend needs a 'path'")
        return FileBackend(Path(settings.path).expanduser(), encoding=settings.encoding)

    if settings.backend == "sql":
        if not settings.database:
            raise ConfigurationError("The sql backend needs a 'database'")
        database = str(Path(settings.database).expanduser())
        return SQLBackend(
            functools.partial(sqlite3.connect, database),
            table=settings.table,
            key_column=settings.key_column,
            value_column=settings.value_column,
        )

    if settings.backend == "directory":
        if context is None:
            raise ConfigurationError("The directory backend needs a naming context")
        return DirectoryBackend(context, settings.lookup_name or "")

    return MemoryBackend()


def create_store(
    config: StoreSettings | dict[str, Any],
    *,
    scheduler: Scheduler | None = None,
    event_bus: EventBus | None = None,
    context: NamingContext | None = None,
) -> PropertyStore:
    """Create a PropertyStore from settings or a configuration mapping."""
    settings = config if isinstance(config, StoreSettings) else StoreSettings.from_dict(config)
    backend = create_backend(settings, context=context)
    return PropertyStore(
        backend,
        settings.reload_policy,
        settings.update_policy,
        settings.interval,
        scheduler=scheduler,
        event_bus=event_bus,
        initial_delay=settings.initial_delay,
    )
