"""Relational-table backend over any DB-API 2 driver."""

import logging
import re
from collections.abc import Callable, Mapping
from contextlib import closing
from typing import Any

from propman.core.exceptions import (
    ConfigurationError,
    PersistenceError,
    SourceUnavailableError,
)

from .base import BaseBackend

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_PLACEHOLDERS = {"qmark": "?", "format": "%s", "pyformat": "%s"}

# Keep IN (...) lists well under driver parameter limits
_LOOKUP_CHUNK = 500


class SQLBackend(BaseBackend):
    """Properties stored as rows of a key/value table.

    ``connect`` is a zero-argument callable returning a DB-API 2
    connection. A connection is opened and closed within each load or
    write; the callable itself is owned by the caller.

    Table and column names are interpolated into statements after being
    checked against a strict identifier pattern. Keys and values are
    always passed as bound parameters.
    """

    name = "sql"

    def __init__(
        self,
        connect: Callable[[], Any],
        table: str,
        key_column: str = "key",
        value_column: str = "value",
        paramstyle: str = "qmark",
    ):
        self.connect = connect
        self.table = table
        self.key_column = key_column
        self.value_column = value_column
        self.paramstyle = paramstyle

    def describe(self) -> str:
        return f"table '{self.table}'"

    def initialize(self) -> None:
        """Validate identifiers and try one connection."""
        for label, identifier in (
            ("table", self.table),
            ("key column", self.key_column),
            ("value column", self.value_column),
        ):
            if not identifier or not isinstance(identifier, str):
                raise ConfigurationError(f"A {label} name is required")
            if not _IDENTIFIER.match(identifier):
                raise ConfigurationError(f"Invalid {label} name: {identifier!r}")

        if self.paramstyle not in _PLACEHOLDERS:
            raise ConfigurationError(
                f"Unsupported paramstyle {self.paramstyle!r}; "
                f"expected one of: {', '.join(sorted(_PLACEHOLDERS))}"
            )

        if not callable(self.connect):
            raise ConfigurationError("A connection factory is required")

        try:
            self.connect().close()
        except Exception as e:
            logger.error(f"Cannot connect to database for {self.describe()}: {e}")
            raise ConfigurationError(f"Cannot connect to database: {e}") from e

    @property
    def _param(self) -> str:
        return _PLACEHOLDERS[self.paramstyle]

    @property
    def select_sql(self) -> str:
        return f"SELECT {self.key_column}, {self.value_column} FROM {self.table}"

    @property
    def insert_sql(self) -> str:
        return (
            f"INSERT INTO {self.table} ({self.key_column}, {self.value_column}) "
            f"VALUES ({self._param}, {self._param})"
        )

    @property
    def update_sql(self) -> str:
        return (
            f"UPDATE {self.table} SET {self.value_column} = {self._param} "
            f"WHERE {self.key_column} = {self._param}"
        )

    @property
    def delete_sql(self) -> str:
        return f"DELETE FROM {self.table}"

    def _existing_keys_sql(self, count: int) -> str:
        placeholders = ", ".join([self._param] * count)
        return (
            f"SELECT {self.key_column} FROM {self.table} "
            f"WHERE {self.key_column} IN ({placeholders})"
        )

    def load_all(self) -> dict[str, str]:
        """Select every row of the table."""
        try:
            with closing(self.connect()) as conn:
                cursor = conn.cursor()
                try:
                    cursor.execute(self.select_sql)
                    rows = cursor.fetchall()
                finally:
                    cursor.close()
        except Exception as e:
            raise SourceUnavailableError(self.describe(), str(e)) from e

        properties = {
            str(key): str(value) for key, value in rows if value is not None
        }
        logger.debug(f"Selected {len(properties)} properties from {self.table}")
        return properties

    def apply_change(self, changes: Mapping[str, str], replace: bool) -> None:
        """Write changes on one connection with a single commit.

        Replacing deletes every row and inserts the given set. Otherwise
        each key is updated when its row exists and inserted when it does
        not. The existence lookup runs on the same connection but may
        precede the driver's implicit BEGIN, so it is not isolated from
        other writers. A row inserted elsewhere in between makes the
        insert violate the key constraint; the whole batch is then rolled
        back and PersistenceError is raised.
        """
        items = list(changes.items())
        try:
            with closing(self.connect()) as conn:
                cursor = conn.cursor()
                try:
                    if replace:
                        cursor.execute(self.delete_sql)
                        inserts = items
                        updates = []
                    else:
                        existing = self._existing_keys(cursor, [k for k, _ in items])
                        inserts = [(k, v) for k, v in items if k not in existing]
                        updates = [(v, k) for k, v in items if k in existing]

                    if updates:
                        cursor.executemany(self.update_sql, updates)
                    if inserts:
                        cursor.executemany(self.insert_sql, inserts)
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                finally:
                    cursor.close()
        except Exception as e:
            raise PersistenceError(self.describe(), str(e)) from e

        logger.debug(
            f"{'Replaced' if replace else 'Updated'} {self.table}: "
            f"{len(updates)} updated, {len(inserts)} inserted"
        )

    def _existing_keys(self, cursor: Any, keys: list[str]) -> set[str]:
        existing: set[str] = set()
        for start in range(0, len(keys), _LOOKUP_CHUNK):
            chunk = keys[start : start + _LOOKUP_CHUNK]
            cursor.execute(self._existing_keys_sql(len(chunk)), chunk)
            existing.update(str(row[0]) for row in cursor.fetchall())
        return existing
