"""Error types for GentleDB."""


class GentleDBError(Exception):
    """Base exception for GentleDB errors."""
    pass


class InvalidIdentifierError(GentleDBError, ValueError):
    """Malformed content or pointer identifier."""

    def __init__(self, identifier, kind: str = "identifier"):
        self.identifier = identifier
        self.kind = kind
        super().__init__(f"Invalid {kind} identifier: {identifier!r}")


class NotFoundError(GentleDBError, KeyError):
    """Requested content identifier is not in the store."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(identifier)

    def __str__(self) -> str:
        return f"Content not found: {self.identifier}"


class StorageIOError(GentleDBError):
    """Underlying storage could not be read, written or created."""

    def __init__(self, message: str, path=None):
        self.path = path
        super().__init__(message)


class EncodingError(GentleDBError, ValueError):
    """Stored bytes are not valid UTF-8."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Content {identifier} is not valid UTF-8")


class ConfigError(GentleDBError):
    """Configuration error."""
    pass
