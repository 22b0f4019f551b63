"""Storage backends for GentleDB content and pointers."""

import logging
from pathlib import Path

from .base import ContentStore, PointerStore, StagedWriter
from .local import DEFAULT_DIRECTORY, FileContentStore, FilePointerStore, init_layout
from .memory import InMemoryContentStore, InMemoryPointerStore

logger = logging.getLogger(__name__)


def get_local_backend(
    directory: str | Path | None = None,
) -> tuple[FileContentStore, FilePointerStore]:
    """Open the filesystem backend rooted at directory.

    Args:
        directory: Storage root (default: ~/.gentledb)

    Returns:
        Tuple of (content store, pointer store) sharing one staging dir
    """
    root, content_dir, pointer_dir, tmp_dir = init_layout(directory or DEFAULT_DIRECTORY)
    logger.info(f"Initialized local storage at: {root}")
    return FileContentStore(content_dir, tmp_dir), FilePointerStore(pointer_dir, tmp_dir)


def get_memory_backend() -> tuple[InMemoryContentStore, InMemoryPointerStore]:
    """Create an empty in-memory backend."""
    return InMemoryContentStore(), InMemoryPointerStore()


def get_backend(backend_type: str = "local", **kwargs) -> tuple[ContentStore, PointerStore]:
    """Factory function to get a specific storage backend.

    Args:
        backend_type: One of "local", "memory"
        **kwargs: Backend-specific configuration

    Returns:
        Tuple of (content store, pointer store)

    Raises:
        ValueError: If backend_type is unknown

    Examples:
        >>> content, pointers = get_backend("local", directory="/tmp/gentledb")
        >>> content, pointers = get_backend("memory")
    """
    if backend_type == "local":
        return get_local_backend(**kwargs)
    elif backend_type == "memory":
        return get_memory_backend(**kwargs)
    else:
        raise ValueError(f"Unknown backend type: {backend_type}")


__all__ = [
    "ContentStore",
    "PointerStore",
    "StagedWriter",
    "FileContentStore",
    "FilePointerStore",
    "InMemoryContentStore",
    "InMemoryPointerStore",
    "get_backend",
    "get_local_backend",
    "get_memory_backend",
]
