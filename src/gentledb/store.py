"""GentleDB: content-addressed storage with mutable pointers.

The facade pairs a ContentStore with a PointerStore and offers the
whole-value conveniences on top of the streaming primitives, so the
durable and in-memory backends share one implementation of them.

Examples:
    >>> db = GentleDB.in_memory()
    >>> content_id = db.put_string("hello")
    >>> db.get_string(content_id)
    'hello'
    >>> db.bind("ab" * 32, content_id)
    >>> db.resolve("ab" * 32) == content_id
    True
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from .config import StoreConfig
from .errors import EncodingError
from .identifiers import validate
from .storage import get_local_backend, get_memory_backend
from .storage.base import ContentStore, PointerStore, StagedWriter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_STAGING_MAX_AGE = 24 * 3600


class GentleDB:
    """Content store plus pointer store behind one interface.

    Prefer the constructors ``GentleDB.open`` (filesystem) and
    ``GentleDB.in_memory`` over calling this directly.

    Args:
        content: Content store backend
        pointers: Pointer store backend
        directory: Storage root of a filesystem backend, else None
        chunk_size: Copy buffer size for stream helpers
        staging_max_age_seconds: Default threshold for clean_staging
    """

    def __init__(
        self,
        content: ContentStore,
        pointers: PointerStore,
        directory: Path | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        staging_max_age_seconds: float = DEFAULT_STAGING_MAX_AGE,
    ):
        self.content = content
        self.pointers = pointers
        self.directory = directory
        self.chunk_size = chunk_size
        self.staging_max_age_seconds = staging_max_age_seconds

    @classmethod
    def open(cls, directory: str | Path | None = None, **kwargs) -> "GentleDB":
        """Open (creating if needed) a filesystem store.

        Args:
            directory: Storage root (default: ~/.gentledb)
            **kwargs: Passed to the constructor (e.g. chunk_size)
        """
        content, pointers = get_local_backend(directory)
        return cls(content, pointers, directory=content.content_dir.parent, **kwargs)

    @classmethod
    def in_memory(cls, **kwargs) -> "GentleDB":
        """Create an empty volatile store."""
        content, pointers = get_memory_backend()
        return cls(content, pointers, **kwargs)

    @classmethod
    def from_config(cls, config: StoreConfig) -> "GentleDB":
        """Build a store from a StoreConfig."""
        logger.debug(f"Opening {config.backend} store from config")
        options = {
            "chunk_size": config.chunk_size,
            "staging_max_age_seconds": config.staging_max_age_seconds,
        }
        if config.backend == "memory":
            return cls.in_memory(**options)
        return cls.open(config.directory, **options)

    # Content

    def open_writer(self) -> StagedWriter:
        """Begin a staged write. Close it (or use ``with``) to publish."""
        return self.content.open_writer()

    def open_reader(self, content_id: str) -> BinaryIO:
        """Open committed content as a binary stream."""
        return self.content.open_reader(content_id)

    def exists(self, content_id: str) -> bool:
        return self.content.exists(content_id)

    def put_bytes(self, data: bytes) -> str:
        """Store bytes and return their content identifier."""
        with self.open_writer() as writer:
            writer.write(data)
        return writer.content_id

    def get_bytes(self, content_id: str) -> bytes:
        """Read the full content stored under content_id.

        Raises:
            InvalidIdentifierError: If content_id is malformed
            NotFoundError: If nothing is stored under content_id
        """
        validate(content_id, "content")
        with self.open_reader(content_id) as reader:
            return reader.read()

    def put_string(self, text: str) -> str:
        """Store text as UTF-8 and return its content identifier."""
        if not isinstance(text, str):
            raise TypeError(f"put_string expects str, got {type(text).__name__}")
        return self.put_bytes(text.encode("utf-8"))

    def get_string(self, content_id: str) -> str:
        """Read content stored under content_id as UTF-8 text.

        Raises:
            EncodingError: If the stored bytes are not valid UTF-8
        """
        data = self.get_bytes(content_id)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(content_id) from e

    def put_stream(self, source: BinaryIO, chunk_size: int | None = None) -> str:
        """Copy a readable binary stream into the store.

        Args:
            source: Object with a ``read(n)`` method returning bytes
            chunk_size: Read size (default: the store's chunk_size)

        Returns:
            Content identifier of everything read from source
        """
        with self.open_writer() as writer:
            shutil.copyfileobj(source, writer, chunk_size or self.chunk_size)
        return writer.content_id

    # Pointers

    def bind(self, pointer_id: str, content_id: str | None) -> None:
        """Point pointer_id at content_id; None removes the pointer."""
        self.pointers.bind(pointer_id, content_id)

    def unbind(self, pointer_id: str) -> None:
        self.pointers.bind(pointer_id, None)

    def resolve(self, pointer_id: str) -> str | None:
        """Content identifier bound to pointer_id, or None."""
        return self.pointers.resolve(pointer_id)

    # Maintenance

    def clean_staging(self, max_age_seconds: float | None = None) -> int:
        """Remove stale staging files left by abandoned writers.

        Returns:
            Number of files removed (always 0 for in-memory stores)
        """
        clean = getattr(self.content, "clean_staging", None)
        if clean is None:
            return 0
        if max_age_seconds is None:
            max_age_seconds = self.staging_max_age_seconds
        return clean(max_age_seconds)

    def __repr__(self) -> str:
        where = self.directory if self.directory is not None else "memory"
        return f"GentleDB({where})"
