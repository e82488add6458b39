"""Exception classes for the property store."""


class PropertyError(Exception):
    """Base exception for property store errors."""

    pass


class ConfigurationError(PropertyError, ValueError):
    """Raised when a store or backend is constructed with bad arguments."""

    pass


class SourceUnavailableError(PropertyError):
    """Raised when the backing source cannot be read."""

    def __init__(self, source: str, details: str = ""):
        """Initialize with source description and details."""
        self.source = source
        self.details = details
        message = f"Cannot read properties from {source}"
        if details:
            message += f": {details}"
        super().__init__(message)


class PersistenceError(PropertyError):
    """Raised when a change cannot be written back to the source."""

    def __init__(self, source: str, details: str = ""):
        """Initialize with source description and details."""
        self.source = source
        self.details = details
        message = f"Cannot write properties to {source}"
        if details:
            message += f": {details}"
        super().__init__(message)


class InvalidSourceFormatError(SourceUnavailableError, ConfigurationError):
    """Raised when a source holds something other than key/value pairs."""

    def __init__(self, source: str, found: str):
        """Initialize with source description and the offending type name."""
        self.found = found
        super().__init__(source, f"expected a key/value mapping, found {found}")


class UnsupportedOperationError(PropertyError, NotImplementedError):
    """Raised when a write is attempted on a read-only backend."""

    def __init__(self, backend: str, operation: str = "write"):
        """Initialize with backend name and operation."""
        self.backend = backend
        self.operation = operation
        super().__init__(f"{backend} backend does not support {operation}")
