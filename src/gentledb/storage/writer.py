"""Open/closed state machine shared by the staged writers.

Backends supply three hooks: stage a chunk, publish the finished content
under its identifier, and discard whatever was staged. The digest
bookkeeping, idempotent close and context-manager behaviour live here so
both backends agree on them.
"""

import logging
from abc import ABC, abstractmethod

from ..errors import StorageIOError
from ..identifiers import new_hasher

logger = logging.getLogger(__name__)


class HashingWriter(ABC):
    """Base for StagedWriter implementations."""

    def __init__(self):
        self._hasher = new_hasher()
        self._closed = False
        self._content_id: str | None = None
        self._size = 0
        self._publish_error: BaseException | None = None

    @abstractmethod
    def _stage(self, data) -> None:
        """Append data to the staging sink."""

    @abstractmethod
    def _publish(self, content_id: str) -> None:
        """Make the staged bytes visible under content_id (if absent)."""

    @abstractmethod
    def _discard(self) -> None:
        """Drop staged bytes. Raises StorageIOError on failure."""

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        """Bytes written so far."""
        return self._size

    @property
    def content_id(self) -> str:
        if not self._closed:
            self.close()
        if self._publish_error is not None:
            raise ValueError(
                "Publish failed; no content was published"
            ) from self._publish_error
        if self._content_id is None:
            raise ValueError("Writer was aborted; no content was published")
        return self._content_id

    def write(self, data) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed writer")
        try:
            self._stage(data)
        except BaseException:
            self._closed = True
            self._release()
            raise
        size = memoryview(data).nbytes
        self._hasher.update(data)
        self._size += size
        return size

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        content_id = self._hasher.hexdigest()
        try:
            self._publish(content_id)
        except BaseException as e:
            self._publish_error = e
            self._release()
            raise
        self._content_id = content_id

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._discard()
        logger.debug(f"Aborted staged write after {self._size} bytes")

    def _release(self) -> None:
        # Error path: an exception is already propagating.
        try:
            self._discard()
        except StorageIOError as e:
            logger.error(f"Failed to discard staged content: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        elif not self._closed:
            self._closed = True
            self._release()
