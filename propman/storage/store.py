"""Reloadable property store.

The store caches the key/value set of one backend and keeps it in step
with the source according to two policies:

- ReloadPolicy.NEVER: the cache is loaded once at construction.
- ReloadPolicy.INTERVAL: a scheduler refreshes the cache periodically.
- ReloadPolicy.ON_ACCESS: reads first check the backend's freshness
  stamp and reload when it moved (only for source-managed stores).

- UpdatePolicy.LOCAL_ONLY: writes go to the backend first, then to the
  cache. A failed write leaves the cache untouched.
- UpdatePolicy.SOURCE_MANAGED: writes are ignored; all change comes from
  the source.

Every access to the cache goes through one reader/writer lock. Reloads and
writes take it exclusively, so a reader sees either the old or the new
snapshot and never a mix.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from datetime import timedelta

from propman.core.exceptions import (
    ConfigurationError,
    PersistenceError,
    PropertyError,
    SourceUnavailableError,
)
from propman.core.models import ReloadPolicy, UpdatePolicy, interval_seconds

from .backends.base import BaseBackend
from .events import EventBus, EventPublisher, EventType
from .locks import ReadWriteLock
from .scheduler import ScheduledTask, Scheduler, ThreadScheduler

logger = logging.getLogger(__name__)


def _changed_keys(old: Mapping[str, str], new: Mapping[str, str]) -> list[str]:
    return sorted(k for k in old.keys() | new.keys() if old.get(k) != new.get(k))


def _values_of(keys: list[str], properties: Mapping[str, str]) -> dict[str, str]:
    """Values of ``keys`` in ``properties``; removed keys are left out."""
    return {k: properties[k] for k in keys if k in properties}


class PropertyStore(EventPublisher):
    """Thread-safe cache over a property backend."""

    def __init__(
        self,
        backend: BaseBackend,
        reload_policy: ReloadPolicy | str = ReloadPolicy.NEVER,
        update_policy: UpdatePolicy | str = UpdatePolicy.LOCAL_ONLY,
        interval: float | timedelta | None = None,
        *,
        scheduler: Scheduler | None = None,
        event_bus: EventBus | None = None,
        initial_delay: float | timedelta | None = None,
    ):
        """Validate arguments, load the source and start refreshing.

        Args:
            backend: Source of the properties
            reload_policy: When to refresh the cache from the source
            update_policy: Whether local writes are accepted
            interval: Refresh period in seconds; required for INTERVAL
            scheduler: Runs the periodic refresh; a private ThreadScheduler
                is created and owned by the store when omitted
            event_bus: Receives load, reload, update and close events
            initial_delay: Delay before the first refresh; defaults to
                ``interval``

        Raises:
            ConfigurationError: If arguments are invalid or the initial
                load fails
        """
        super().__init__(event_bus)

        if backend is None or not isinstance(backend, BaseBackend):
            raise ConfigurationError("A property backend is required")
        if scheduler is not None and not isinstance(scheduler, Scheduler):
            raise ConfigurationError("scheduler must provide schedule() and cancel()")

        self._backend = backend
        self._reload_policy = ReloadPolicy.parse(reload_policy)
        self._update_policy = UpdatePolicy.parse(update_policy)
        self._interval = self._check_interval(interval)
        self._initial_delay = interval_seconds(initial_delay)
        if self._initial_delay is not None and self._initial_delay < 0:
            raise ConfigurationError("initial_delay must not be negative")

        self._lock = ReadWriteLock()
        self._cache: dict[str, str] = {}
        self._last_stamp = None
        self._reloads_started = 0
        self._last_reload = 0

        self._scheduler = scheduler
        self._owns_scheduler = False
        self._refresh_handle: ScheduledTask | None = None
        self._close_lock = threading.Lock()
        self._closed = False

        backend.initialize()
        self._warn_about_policies()

        try:
            with self._lock.write_locked():
                self._reload_locked()
        except ConfigurationError:
            raise
        except SourceUnavailableError as e:
            raise ConfigurationError(
                f"Initial load from {backend.describe()} failed: {e}"
            ) from e

        self._publish_event(
            EventType.PROPERTIES_LOADED,
            source=backend.describe(),
            count=len(self._cache),
        )

        if self._reload_policy is ReloadPolicy.INTERVAL:
            self._start_refresh()

        logger.info(
            f"Opened property store on {backend.describe()} "
            f"(reload={self._reload_policy.value}, update={self._update_policy.value}, "
            f"{len(self._cache)} properties)"
        )

    def _check_interval(self, interval: float | timedelta | None) -> float | None:
        seconds = interval_seconds(interval)
        if self._reload_policy is not ReloadPolicy.INTERVAL:
            return seconds
        if seconds is None:
            raise ConfigurationError("An interval is required for the INTERVAL reload policy")
        if seconds <= 0:
            raise ConfigurationError(f"interval must be greater than 0, got {seconds}")
        return seconds

    def _warn_about_policies(self) -> None:
        source_managed = self._update_policy is UpdatePolicy.SOURCE_MANAGED

        if source_managed and self._reload_policy is ReloadPolicy.NEVER:
            logger.warning(
                f"{self._backend.describe()}: updates are source-managed but the "
                "reload policy is NEVER; source changes will not be observed"
            )
        if self._reload_policy is ReloadPolicy.ON_ACCESS:
            if not source_managed:
                logger.warning(
                    f"{self._backend.describe()}: ON_ACCESS reloads only apply to "
                    "source-managed stores and are disabled"
                )
            elif type(self._backend).freshness_stamp is BaseBackend.freshness_stamp:
                logger.warning(
                    f"{self._backend.describe()}: backend has no freshness stamp; "
                    "ON_ACCESS will reload on every read and may be slow"
                )

    def _start_refresh(self) -> None:
        if self._scheduler is None:
            self._scheduler = ThreadScheduler(name=f"propman-{self._backend.name}")
            self._owns_scheduler = True

        delay = self._initial_delay if self._initial_delay is not None else self._interval
        self._refresh_handle = self._scheduler.schedule(
            self.refresh, initial_delay=delay, period=self._interval
        )

    # Policy and state

    @property
    def backend(self) -> BaseBackend:
        return self._backend

    @property
    def reload_policy(self) -> ReloadPolicy:
        return self._reload_policy

    @property
    def update_policy(self) -> UpdatePolicy:
        return self._update_policy

    @property
    def interval(self) -> float | None:
        return self._interval

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def _reloads_on_access(self) -> bool:
        return (
            self._reload_policy is ReloadPolicy.ON_ACCESS
            and self._update_policy is UpdatePolicy.SOURCE_MANAGED
        )

    # Loading

    def _reload_locked(self) -> list[str]:
        """Replace the cache from the backend. Caller holds the write lock."""
        self._reloads_started += 1
        reload_id = self._reloads_started

        try:
            stamp = self._backend.freshness_stamp()
            properties = dict(self._backend.load_all())
        except PropertyError:
            raise
        except Exception as e:
            raise SourceUnavailableError(self._backend.describe(), str(e)) from e

        changed = _changed_keys(self._cache, properties)
        self._cache = properties
        self._last_stamp = stamp
        self._last_reload = reload_id

        logger.debug(
            f"Loaded {len(properties)} properties from {self._backend.describe()} "
            f"({len(changed)} changed)"
        )
        return changed

    def _refresh_if_stale(self) -> None:
        """Reload before a read when the source moved.

        Concurrent readers that all see a stale stamp queue on the write
        lock; only the first reloads. The others find that a reload began
        after their check and serve its result.
        """
        if not self._reloads_on_access:
            return

        with self._lock.read_locked():
            last_stamp = self._last_stamp
            seen = self._reloads_started

        try:
            stamp = self._backend.freshness_stamp()
        except PropertyError:
            raise
        except Exception as e:
            raise SourceUnavailableError(self._backend.describe(), str(e)) from e

        if stamp is not None and stamp == last_stamp:
            return

        with self._lock.write_locked():
            if self._last_reload > seen:
                return
            changed = self._reload_locked()
            snapshot = self._cache

        self._publish_reload(changed, snapshot)

    def _publish_reload(self, changed: list[str], snapshot: dict[str, str]) -> None:
        if changed:
            self._publish_event(
                EventType.PROPERTIES_RELOADED,
                source=self._backend.describe(),
                changed_keys=changed,
                values=_values_of(changed, snapshot),
            )

    def reload(self) -> list[str]:
        """Reload everything from the source.

        Returns:
            Keys whose values were added, removed or changed

        Raises:
            SourceUnavailableError: If the source cannot be read; the cache
                keeps its previous contents
        """
        with self._lock.write_locked():
            changed = self._reload_locked()
            snapshot = self._cache

        self._publish_reload(changed, snapshot)
        return changed

    def refresh(self) -> None:
        """Scheduled refresh entry point.

        Failures are published and re-raised so the scheduler can report
        them; the schedule itself is not affected.
        """
        try:
            self.reload()
        except Exception as e:
            logger.warning(f"Refresh of {self._backend.describe()} failed: {e}")
            self._publish_event(
                EventType.RELOAD_FAILED,
                source=self._backend.describe(),
                error=e,
            )
            raise

    # Reading

    def get_property(self, key: str, default: str | None = None) -> str | None:
        """Get the value of ``key``, or ``default`` if it is not set."""
        self._refresh_if_stale()
        with self._lock.read_locked():
            return self._cache.get(key, default)

    def get_properties(self) -> dict[str, str]:
        """Get a copy of every property."""
        self._refresh_if_stale()
        with self._lock.read_locked():
            return dict(self._cache)

    def __contains__(self, key: object) -> bool:
        self._refresh_if_stale()
        with self._lock.read_locked():
            return key in self._cache

    def __len__(self) -> int:
        self._refresh_if_stale()
        with self._lock.read_locked():
            return len(self._cache)

    # Writing

    def set_property(self, key: str, value: str) -> None:
        """Set one property. Ignored for source-managed stores."""
        self.set_properties({key: value}, replace=False)

    def set_properties(self, properties: Mapping[str, str], replace: bool = False) -> None:
        """Write properties through to the source, then to the cache.

        Args:
            properties: Keys and values to write
            replace: Discard every existing property and keep exactly
                ``properties``; otherwise upsert each key

        Raises:
            PersistenceError: If the backend write fails; the cache is
                left unchanged
            UnsupportedOperationError: If the backend is read-only
        """
        if self._update_policy is UpdatePolicy.SOURCE_MANAGED:
            logger.warning(
                f"Ignoring write to {self._backend.describe()}: updates are source-managed"
            )
            return

        changes = self._check_changes(properties)

        with self._lock.write_locked():
            try:
                self._backend.apply_change(changes, replace)
            except PropertyError:
                raise
            except Exception as e:
                raise PersistenceError(self._backend.describe(), str(e)) from e

            if replace:
                updated = dict(changes)
            else:
                updated = dict(self._cache)
                updated.update(changes)

            changed = _changed_keys(self._cache, updated)
            self._cache = updated

        logger.debug(
            f"{'Replaced' if replace else 'Updated'} {len(changes)} properties "
            f"in {self._backend.describe()}"
        )
        self._publish_event(
            EventType.PROPERTIES_UPDATED,
            source=self._backend.describe(),
            changed_keys=changed,
            values=_values_of(changed, updated),
            replace=replace,
        )

    @staticmethod
    def _check_changes(properties: Mapping[str, str]) -> dict[str, str]:
        if not isinstance(properties, Mapping):
            raise TypeError(
                f"properties must be a mapping, got {type(properties).__name__}"
            )
        for key, value in properties.items():
            if not isinstance(key, str):
                raise TypeError(f"Property keys must be strings, got {key!r}")
            if not isinstance(value, str):
                raise TypeError(f"Value for {key!r} must be a string, got {value!r}")
        return dict(properties)

    # Lifecycle

    def close(self) -> None:
        """Stop background refreshes. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            handle, self._refresh_handle = self._refresh_handle, None

        if handle is not None and self._scheduler is not None:
            self._scheduler.cancel(handle)
        if self._owns_scheduler and isinstance(self._scheduler, ThreadScheduler):
            self._scheduler.shutdown()

        logger.debug(f"Closed property store on {self._backend.describe()}")
        self._publish_event(EventType.STORE_CLOSED, source=self._backend.describe())

    def __enter__(self) -> PropertyStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"<PropertyStore {self._backend.describe()} "
            f"reload={self._reload_policy.value} update={self._update_policy.value}"
            f"{' closed' if self._closed else ''}>"
        )
