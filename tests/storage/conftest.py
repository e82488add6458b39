"""Shared fixtures for storage tests.

This module provides sources seeded with the same two properties for
every backend, plus a scheduler that runs tasks only when told to.
"""

import sqlite3
import tempfile
import threading
import time
from pathlib import Path

import pytest

from propman.storage.backends import (
    DirectoryBackend,
    FileBackend,
    MappingContext,
    MemoryBackend,
    SQLBackend,
)
from propman.storage.events import EventBus
from propman.storage.scheduler import ScheduledTask

SEED = {"prop1": "Line1", "prop2": "Line2"}


@pytest.fixture
def temp_dir():
    """Temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_properties(path: Path, properties: dict[str, str]) -> None:
    """Write a properties file the way an external editor would."""
    lines = [f"{key}={value}" for key, value in properties.items()]
    path.write_text("\n".join(lines) + "\n", encoding="iso-8859-1")


@pytest.fixture
def properties_file(temp_dir):
    """Properties file holding prop1=Line1 and prop2=Line2."""
    path = temp_dir / "app.properties"
    write_properties(path, SEED)
    return path


@pytest.fixture
def file_backend(properties_file):
    return FileBackend(properties_file)


class StatementLog:
    """Connection factory that records every SQL statement executed."""

    def __init__(self, path: Path):
        self.path = path
        self.statements: list[str] = []
        self.connections = 0
        self._lock = threading.Lock()

    def _record(self, statement: str) -> None:
        with self._lock:
            self.statements.append(statement)

    def __call__(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path))
        conn.set_trace_callback(self._record)
        with self._lock:
            self.connections += 1
        return conn

    def matching(self, verb: str) -> list[str]:
        """Statements starting with the given SQL verb."""
        with self._lock:
            return [
                s for s in self.statements if s.lstrip().upper().startswith(verb.upper())
            ]

    def clear(self) -> None:
        with self._lock:
            self.statements.clear()


def sql_rows(path: Path) -> dict[str, str]:
    """Read the properties table directly."""
    conn = sqlite3.connect(str(path))
    try:
        return dict(conn.execute("SELECT key, value FROM properties").fetchall())
    finally:
        conn.close()


def sql_execute(path: Path, statement: str, params: tuple = ()) -> None:
    """Run one statement against the database outside any store."""
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(statement, params)
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def database(temp_dir):
    """SQLite database with a seeded properties table."""
    path = temp_dir / "properties.db"
    conn = sqlite3.connect(str(path))
    conn.execute("CREATE TABLE properties (key TEXT PRIMARY KEY, value TEXT)")
    conn.executemany("INSERT INTO properties (key, value) VALUES (?, ?)", SEED.items())
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def statement_log(database):
    return StatementLog(database)


@pytest.fixture
def sql_backend(statement_log):
    return SQLBackend(statement_log, "properties")


@pytest.fixture
def naming_context():
    """Naming context with the seed bound as 'config/app'."""
    return MappingContext({"config/app": dict(SEED)})


@pytest.fixture
def directory_backend(naming_context):
    return DirectoryBackend(naming_context, "config/app")


@pytest.fixture
def memory_backend():
    return MemoryBackend(SEED)


@pytest.fixture
def event_bus():
    return EventBus()


class ManualScheduler:
    """Scheduler that runs tasks only when ``tick()`` is called."""

    def __init__(self):
        self.handles: list[ScheduledTask] = []
        self.cancel_calls = 0
        self.errors: list[BaseException] = []

    def schedule(self, task, initial_delay, period):
        handle = ScheduledTask(task, initial_delay, period)
        self.handles.append(handle)
        return handle

    def cancel(self, handle):
        self.cancel_calls += 1
        if handle is not None:
            handle.cancel()

    @property
    def active(self) -> list[ScheduledTask]:
        return [h for h in self.handles if not h.cancelled]

    def tick(self) -> None:
        """Run every active task once, collecting failures."""
        for handle in self.active:
            try:
                handle.task()
            except Exception as e:
                handle.failures += 1
                self.errors.append(e)
            finally:
                handle.runs += 1


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
