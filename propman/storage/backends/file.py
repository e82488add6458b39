"""Properties-file backend."""

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from propman.core import properties as codec
from propman.core.exceptions import (
    ConfigurationError,
    PersistenceError,
    SourceUnavailableError,
)

from .base import BaseBackend

logger = logging.getLogger(__name__)


class FileBackend(BaseBackend):
    """Properties stored in a single ``key=value`` text file.

    The file has no partial-write primitive, so every change is a
    read-merge-write of the whole file. Writes go to a temporary file that
    is renamed over the target, so readers never see a half-written file.
    Changes made to the file by other processes between the read and the
    rename are lost.
    """

    name = "file"

    def __init__(self, path: Path | str, encoding: str = codec.DEFAULT_ENCODING):
        self.path = Path(path) if path is not None else None
        self.encoding = encoding

    def describe(self) -> str:
        return f"file '{self.path}'"

    def initialize(self) -> None:
        """Check that the file exists."""
        if self.path is None:
            raise ConfigurationError("A properties file path is required")
        if not self.path.is_file():
            raise ConfigurationError(f"'{self.path}' does not exist")
        try:
            "".encode(self.encoding)
        except LookupError as e:
            raise ConfigurationError(f"Unknown encoding: {self.encoding}") from e

    def load_all(self) -> dict[str, str]:
        """Read and parse the whole file."""
        try:
            properties = codec.load(self.path, self.encoding)
        except FileNotFoundError as e:
            raise SourceUnavailableError(self.describe(), "file not found") from e
        except (OSError, UnicodeDecodeError, codec.PropertiesFormatError) as e:
            raise SourceUnavailableError(self.describe(), str(e)) from e

        logger.debug(f"Read {len(properties)} properties from {self.path}")
        return properties

    def freshness_stamp(self) -> tuple[int, int]:
        """Modification time and size of the file."""
        try:
            stat = self.path.stat()
        except OSError as e:
            raise SourceUnavailableError(self.describe(), str(e)) from e
        return (stat.st_mtime_ns, stat.st_size)

    def apply_change(self, changes: Mapping[str, str], replace: bool) -> None:
        """Rewrite the file with the changes applied."""
        if replace:
            merged = dict(changes)
        else:
            try:
                merged = codec.load(self.path, self.encoding)
            except (OSError, UnicodeDecodeError, codec.PropertiesFormatError) as e:
                raise PersistenceError(self.describe(), str(e)) from e
            merged.update(changes)

        try:
            self._write_atomic(codec.dumps(merged))
        except (OSError, UnicodeEncodeError) as e:
            raise PersistenceError(self.describe(), str(e)) from e

        logger.debug(
            f"Wrote {len(merged)} properties to {self.path} "
            f"({'replace' if replace else 'update'})"
        )

    def _write_atomic(self, text: str) -> None:
        """Write text to a temp file in the same directory and rename it."""
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with open(temp_fd, "w", encoding=self.encoding, newline="\n") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())

            # mkstemp creates 0600 files; keep the original permissions
            if self.path.exists():
                os.chmod(temp_path, self.path.stat().st_mode & 0o777)

            Path(temp_path).replace(self.path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise
