"""In-memory content and pointer stores.

Thread-safe, non-persistent siblings of the filesystem stores with the
same semantics, for tests and ephemeral use.
"""

import io
import logging
import threading

from ..errors import NotFoundError
from ..identifiers import validate
from .writer import HashingWriter

logger = logging.getLogger(__name__)


class InMemoryStagedWriter(HashingWriter):
    """Buffers bytes in memory and inserts them into the store on close."""

    def __init__(self, store: "InMemoryContentStore"):
        super().__init__()
        self._store = store
        self._buffer = io.BytesIO()

    def _stage(self, data) -> None:
        self._buffer.write(data)

    def _publish(self, content_id: str) -> None:
        data = self._buffer.getvalue()
        self._buffer.close()
        if self._store._insert_if_absent(content_id, data):
            logger.debug(f"Stored {len(data)} bytes as {content_id}")
        else:
            logger.debug(f"Content {content_id} already present, skipped")

    def _discard(self) -> None:
        self._buffer.close()


class InMemoryContentStore:
    """Content store backed by a dict guarded by a lock."""

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def open_writer(self) -> InMemoryStagedWriter:
        return InMemoryStagedWriter(self)

    def open_reader(self, content_id: str) -> io.BytesIO:
        validate(content_id, "content")
        with self._lock:
            data = self._data.get(content_id)
        if data is None:
            raise NotFoundError(content_id)
        return io.BytesIO(data)

    def exists(self, content_id: str) -> bool:
        validate(content_id, "content")
        with self._lock:
            return content_id in self._data

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def clear(self) -> None:
        """Drop all content (useful for tests)."""
        with self._lock:
            self._data.clear()

    def _insert_if_absent(self, content_id: str, data: bytes) -> bool:
        """Insert unless present. First writer wins."""
        with self._lock:
            if content_id in self._data:
                return False
            self._data[content_id] = data
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class InMemoryPointerStore:
    """Pointer store backed by a dict guarded by a lock."""

    def __init__(self):
        self._pointers: dict[str, str] = {}
        self._lock = threading.Lock()

    def bind(self, pointer_id: str, content_id: str | None) -> None:
        validate(pointer_id, "pointer")
        if content_id is None:
            self.unbind(pointer_id)
            return
        validate(content_id, "content")
        with self._lock:
            self._pointers[pointer_id] = content_id
        logger.debug(f"Bound pointer {pointer_id} -> {content_id}")

    def unbind(self, pointer_id: str) -> None:
        validate(pointer_id, "pointer")
        with self._lock:
            removed = self._pointers.pop(pointer_id, None)
        if removed is not None:
            logger.debug(f"Unbound pointer {pointer_id}")

    def resolve(self, pointer_id: str) -> str | None:
        validate(pointer_id, "pointer")
        with self._lock:
            return self._pointers.get(pointer_id)

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._pointers)

    def clear(self) -> None:
        """Drop all pointers (useful for tests)."""
        with self._lock:
            self._pointers.clear()
