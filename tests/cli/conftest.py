"""Pytest configuration and fixtures for CLI tests.

This module provides CLI runners and property sources inside an
isolated working directory.
"""

import logging
import sqlite3

import pytest
from click.testing import CliRunner


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every CLI test from an empty working directory."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner():
    """Click CLI test runner with custom invoke method."""

    class PropmanCliRunner(CliRunner):
        def invoke(self, args, **kwargs):  # type: ignore
            """Invoke the propman CLI when given a list of arguments."""
            from propman.cli.main import cli

            if isinstance(args, list):
                return super().invoke(cli, args, **kwargs)
            return super().invoke(args, **kwargs)

    return PropmanCliRunner()


@pytest.fixture
def properties_file(tmp_path):
    """Properties file holding two properties."""
    path = tmp_path / "app.properties"
    path.write_text("prop1=Line1\nprop2=Line2\n", encoding="iso-8859-1")
    return path


@pytest.fixture
def database(tmp_path):
    """SQLite database with a seeded properties table."""
    path = tmp_path / "properties.db"
    conn = sqlite3.connect(str(path))
    conn.execute("CREATE TABLE properties (key TEXT PRIMARY KEY, value TEXT)")
    conn.executemany(
        "INSERT INTO properties (key, value) VALUES (?, ?)",
        [("prop1", "Line1"), ("prop2", "Line2")],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def config_file(tmp_path, properties_file):
    """YAML configuration pointing at the properties file."""
    path = tmp_path / "propman.yaml"
    path.write_text(f"backend: file\npath: {properties_file}\n")
    return path
