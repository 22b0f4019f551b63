"""GentleDB - content-addressed object store with mutable pointers."""

__version__ = "0.1.0"

from .config import StoreConfig
from .errors import (
    ConfigError,
    EncodingError,
    GentleDBError,
    InvalidIdentifierError,
    NotFoundError,
    StorageIOError,
)
from .store import GentleDB

__all__ = [
    "GentleDB",
    "StoreConfig",
    "GentleDBError",
    "InvalidIdentifierError",
    "NotFoundError",
    "StorageIOError",
    "EncodingError",
    "ConfigError",
    "__version__",
]
