"""Tests for main CLI entry point and application setup.

This module tests:
- Global options and flags
- Configuration loading from files and environment
- Error handling at top level
- Version display
"""

import logging

import click

from propman.cli.main import Context, cli, create_console, setup_logging
from propman.core.exceptions import ConfigurationError


class TestCLIEntryPoint:
    """Test the main CLI entry point."""

    def test_cli_help_flag(self, cli_runner):
        result = cli_runner.invoke(["--help"])

        assert result.exit_code == 0
        assert "Reloadable property store" in result.output
        for command in ("get", "list", "set", "watch"):
            assert command in result.output

    def test_cli_version_flag(self, cli_runner):
        result = cli_runner.invoke(["--version"])

        assert result.exit_code == 0
        assert "propman version 0.1.0" in result.output

    def test_cli_context_initialization(self, cli_runner, properties_file):
        """The context carries merged settings and shared resources."""

        @cli.command("context-check")
        @click.pass_context
        def check_context(ctx):
            assert isinstance(ctx.obj, Context)
            assert ctx.obj.settings["backend"] == "file"
            assert ctx.obj.settings["path"] == str(properties_file)
            assert ctx.obj.event_bus is not None
            click.echo("Context OK")

        try:
            result = cli_runner.invoke(["--file", str(properties_file), "context-check"])
        finally:
            cli.commands.pop("context-check", None)

        assert result.exit_code == 0
        assert "Context OK" in result.output


class TestConfiguration:
    """Test where store settings come from."""

    def test_config_file_option(self, cli_runner, config_file):
        result = cli_runner.invoke(["--config", str(config_file), "get", "prop1"])

        assert result.exit_code == 0
        assert result.output.strip() == "Line1"

    def test_project_config_in_working_directory(
        self, cli_runner, isolated_cwd, properties_file
    ):
        (isolated_cwd / ".propman.yaml").write_text(f"path: {properties_file}\n")

        result = cli_runner.invoke(["get", "prop2"])

        assert result.exit_code == 0
        assert result.output.strip() == "Line2"

    def test_environment_overrides(self, cli_runner, properties_file, monkeypatch):
        monkeypatch.setenv("PROPMAN_PATH", str(properties_file))

        result = cli_runner.invoke(["get", "prop1"])

        assert result.exit_code == 0
        assert result.output.strip() == "Line1"

    def test_flags_override_config(self, cli_runner, config_file, database):
        result = cli_runner.invoke(
            ["--config", str(config_file), "--database", str(database), "list", "-F", "json"]
        )

        assert result.exit_code == 0
        assert '"prop1": "Line1"' in result.output

    def test_invalid_config_file(self, cli_runner, tmp_path):
        bad_config = tmp_path / "bad_config.yaml"
        bad_config.write_text("invalid: yaml: content:")

        result = cli_runner.invoke(["--config", str(bad_config), "list"])

        assert result.exit_code == 1
        assert "Error loading config file" in result.output

    def test_unknown_setting_in_config(self, cli_runner, tmp_path):
        config = tmp_path / "typo.yaml"
        config.write_text("bakend: file\n")

        result = cli_runner.invoke(["--config", str(config), "list"])

        assert result.exit_code == 1
        assert "Invalid store configuration" in " ".join(result.output.split())


class TestErrorHandling:
    """Test top-level error reporting."""

    def test_missing_file_reports_error(self, cli_runner, tmp_path):
        result = cli_runner.invoke(["--file", str(tmp_path / "nope.properties"), "list"])

        assert result.exit_code == 1
        output = " ".join(result.output.split())
        assert "Error:" in output
        assert "does not exist" in output

    def test_no_source_configured(self, cli_runner):
        result = cli_runner.invoke(["list"])

        assert result.exit_code == 1
        assert "needs a 'path'" in " ".join(result.output.split())

    def test_directory_backend_is_rejected(self, cli_runner, monkeypatch):
        monkeypatch.setenv("PROPMAN_BACKEND", "directory")

        result = cli_runner.invoke(["list"])

        assert result.exit_code == 1
        output = " ".join(result.output.split())
        assert "Error:" in output
        assert "not available from the command line" in output

    def test_directory_backend_in_config_is_rejected(self, cli_runner, tmp_path):
        config = tmp_path / "directory.yaml"
        config.write_text("backend: directory\n")

        result = cli_runner.invoke(["--config", str(config), "get", "prop1"])

        assert result.exit_code == 1
        assert "not available from the command line" in " ".join(result.output.split())

    def test_debug_reraises(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            ["--debug", "--file", str(tmp_path / "nope.properties"), "list"]
        )

        assert result.exit_code == 1
        assert isinstance(result.exception, ConfigurationError)


class TestHelpers:
    """Test console and logging setup."""

    def test_setup_logging_levels(self):
        setup_logging(quiet=True)
        assert logging.getLogger().level == logging.ERROR

        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_create_console_without_color(self):
        console = create_console(no_color=True)

        assert console.no_color is True
        assert console.width == 120
