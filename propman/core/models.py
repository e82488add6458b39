"""Reload and update policies for property stores.

A store's behaviour is governed by two independent policies:

- ReloadPolicy: whether and when the in-memory cache is refreshed from
  its backing source.
- UpdatePolicy: whether writes are accepted locally and pushed to the
  source, or whether all change originates at the source.

Both enums accept the spellings used in configuration files through
their ``parse`` class methods.
"""

import math
import threading
from datetime import timedelta
from enum import Enum

from .exceptions import ConfigurationError


class ReloadPolicy(Enum):
    """When the cache is refreshed from the source."""

    NEVER = "never"
    INTERVAL = "interval"
    ON_ACCESS = "on_access"

    @classmethod
    def parse(cls, value: "ReloadPolicy | str | None") -> "ReloadPolicy":
        """Parse a policy from an enum member or configuration string."""
        return _parse_policy(cls, value, _RELOAD_ALIASES)


class UpdatePolicy(Enum):
    """Where property changes originate."""

    LOCAL_ONLY = "local"
    SOURCE_MANAGED = "source"

    @classmethod
    def parse(cls, value: "UpdatePolicy | str | None") -> "UpdatePolicy":
        """Parse a policy from an enum member or configuration string."""
        return _parse_policy(cls, value, _UPDATE_ALIASES)


_RELOAD_ALIASES = {
    "never": ReloadPolicy.NEVER,
    "none": ReloadPolicy.NEVER,
    "interval": ReloadPolicy.INTERVAL,
    "on_access": ReloadPolicy.ON_ACCESS,
    "store_changed": ReloadPolicy.ON_ACCESS,
}

_UPDATE_ALIASES = {
    "local": UpdatePolicy.LOCAL_ONLY,
    "local_only": UpdatePolicy.LOCAL_ONLY,
    "internal": UpdatePolicy.LOCAL_ONLY,
    "source": UpdatePolicy.SOURCE_MANAGED,
    "source_managed": UpdatePolicy.SOURCE_MANAGED,
    "external": UpdatePolicy.SOURCE_MANAGED,
}


def _parse_policy(enum_cls, value, aliases):
    if isinstance(value, enum_cls):
        return value
    if value is None:
        raise ConfigurationError(f"{enum_cls.__name__} must be set")
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Invalid {enum_cls.__name__}: {value!r} is not a string"
        )

    normalized = value.strip().lower().replace("-", "_")
    try:
        return aliases[normalized]
    except KeyError:
        choices = ", ".join(sorted(aliases))
        raise ConfigurationError(
            f"Invalid {enum_cls.__name__} {value!r}; expected one of: {choices}"
        ) from None


def interval_seconds(interval: float | timedelta | None) -> float | None:
    """Normalize a refresh interval to seconds.

    Returns None when no interval was given. Raises ConfigurationError for
    values that are not numbers or durations, and for values that are not
    finite or exceed the longest wait a thread can block for.
    """
    if interval is None:
        return None
    if isinstance(interval, timedelta):
        seconds = interval.total_seconds()
    elif isinstance(interval, bool) or not isinstance(interval, (int, float)):
        raise ConfigurationError(f"Invalid interval: {interval!r}")
    else:
        try:
            seconds = float(interval)
        except OverflowError:
            raise ConfigurationError(f"Interval out of range: {interval!r}") from None
    if not math.isfinite(seconds) or abs(seconds) > threading.TIMEOUT_MAX:
        raise ConfigurationError(f"Interval out of range: {interval!r}")
    return seconds
