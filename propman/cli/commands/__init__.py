"""CLI commands module."""

from .properties import get_command, list_command, set_command, watch_command

__all__ = [
    "get_command",
    "list_command",
    "set_command",
    "watch_command",
]
