"""Property store CLI.

A command-line interface for reading, writing and watching properties.
Built with Click and Rich.
"""

from propman.cli.main import cli

__all__ = ["cli"]
