"""Tests for the property commands."""

import json
import sqlite3
import threading
import time
from datetime import datetime

import click
import pytest
from rich.console import Console

from propman.cli.commands.properties import (
    parse_assignments,
    print_changes,
    render_table,
)
from propman.core import properties as codec
from propman.storage.events import Event, EventType


class TestGetCommand:
    """Test the get command."""

    def test_get_existing(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--file", str(properties_file), "get", "prop1"])

        assert result.exit_code == 0
        assert result.output == "Line1\n"

    def test_get_missing(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--file", str(properties_file), "get", "nope"])

        assert result.exit_code == 1
        assert "Property not found: nope" in result.output

    def test_get_missing_with_default(self, cli_runner, properties_file):
        result = cli_runner.invoke(
            ["--file", str(properties_file), "get", "nope", "--default", "fallback"]
        )

        assert result.exit_code == 0
        assert result.output == "fallback\n"

    def test_get_from_database(self, cli_runner, database):
        result = cli_runner.invoke(["--database", str(database), "get", "prop2"])

        assert result.exit_code == 0
        assert result.output == "Line2\n"


class TestListCommand:
    """Test the list command."""

    def test_list_table(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--no-color", "--file", str(properties_file), "list"])

        assert result.exit_code == 0
        assert "2 properties" in result.output
        assert "prop1" in result.output
        assert "Line2" in result.output

    def test_list_json(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--file", str(properties_file), "list", "-F", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"prop1": "Line1", "prop2": "Line2"}

    def test_list_properties_format(self, cli_runner, properties_file):
        result = cli_runner.invoke(
            ["--file", str(properties_file), "list", "--format", "properties"]
        )

        assert result.exit_code == 0
        assert codec.loads(result.output) == {"prop1": "Line1", "prop2": "Line2"}

    def test_list_empty(self, cli_runner, tmp_path):
        empty = tmp_path / "empty.properties"
        empty.write_text("")

        result = cli_runner.invoke(["--file", str(empty), "list"])

        assert result.exit_code == 0
        assert "No properties found" in result.output


class TestSetCommand:
    """Test the set command."""

    def test_set_updates_file(self, cli_runner, properties_file):
        result = cli_runner.invoke(
            ["--file", str(properties_file), "set", "prop1=changed", "prop3=new"]
        )

        assert result.exit_code == 0
        assert "Updated 2 properties" in result.output
        assert codec.load(properties_file) == {
            "prop1": "changed",
            "prop2": "Line2",
            "prop3": "new",
        }

    def test_set_replace(self, cli_runner, properties_file):
        result = cli_runner.invoke(
            ["--file", str(properties_file), "set", "--replace", "only=one"]
        )

        assert result.exit_code == 0
        assert "Replaced with 1 properties" in result.output
        assert codec.load(properties_file) == {"only": "one"}

    def test_set_value_with_equals_sign(self, cli_runner, properties_file):
        cli_runner.invoke(["--file", str(properties_file), "set", "url=a=b"])

        assert codec.load(properties_file)["url"] == "a=b"

    def test_set_in_database_updates_row(self, cli_runner, database):
        result = cli_runner.invoke(["--database", str(database), "set", "prop1=changed"])

        assert result.exit_code == 0
        conn = sqlite3.connect(str(database))
        try:
            rows = conn.execute("SELECT key, value FROM properties ORDER BY key").fetchall()
        finally:
            conn.close()
        assert rows == [("prop1", "changed"), ("prop2", "Line2")]

    def test_set_rejects_bad_assignment(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--file", str(properties_file), "set", "novalue"])

        assert result.exit_code == 2
        assert "Expected KEY=VALUE" in result.output

    def test_set_requires_assignments(self, cli_runner, properties_file):
        result = cli_runner.invoke(["--file", str(properties_file), "set"])

        assert result.exit_code == 2


class TestWatchCommand:
    """Test the watch command."""

    def test_watch_prints_changes(self, cli_runner, properties_file):
        def edit_later():
            time.sleep(0.3)
            properties_file.write_text(
                "prop1=changed by editor\nprop2=Line2\n", encoding="iso-8859-1"
            )

        editor = threading.Thread(target=edit_later)
        editor.start()
        try:
            result = cli_runner.invoke(
                [
                    "--no-color",
                    "--file",
                    str(properties_file),
                    "watch",
                    "--interval",
                    "0.1",
                    "--ticks",
                    "15",
                ]
            )
        finally:
            editor.join()

        assert result.exit_code == 0
        assert "Watching" in result.output
        assert "prop1 = changed by editor" in result.output

    def test_watch_rejects_zero_interval(self, cli_runner, properties_file):
        result = cli_runner.invoke(
            ["--file", str(properties_file), "watch", "--interval", "0"]
        )

        assert result.exit_code == 2


class TestHelpers:
    """Test command helpers."""

    def test_parse_assignments_later_wins(self):
        assert parse_assignments(("a=1", "b=", "a=2")) == {"a": "2", "b": ""}

    @pytest.mark.parametrize("assignment", ["novalue", "=value"])
    def test_parse_assignments_rejects(self, assignment):
        with pytest.raises(click.BadParameter):
            parse_assignments((assignment,))

    def test_render_table_sorted(self):
        table = render_table({"b": "2", "a": "1"}, title="t")

        assert table.row_count == 2
        assert list(table.columns[0].cells) == ["a", "b"]

    def test_print_changes_uses_event_values(self):
        console = Console(record=True, no_color=True, width=80)
        event = Event(
            type=EventType.PROPERTIES_RELOADED,
            timestamp=datetime.now(),
            data={"changed_keys": ["a", "gone"], "values": {"a": "from event"}},
        )

        print_changes(console, event)

        lines = [line.rstrip() for line in console.export_text().splitlines()]
        assert lines == ["a = from event", "gone (removed)"]
