"""Storage protocols shared by the durable and in-memory backends."""

from typing import BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class StagedWriter(Protocol):
    """Write-once handle that hashes content and publishes it on close.

    Lifecycle is open -> closed. While open, every write feeds both the
    running SHA-256 and the backend's staging sink. The first close
    finalizes the digest and publishes the content under it; later closes
    are no-ops. Used as a context manager, a clean exit closes and an
    exception aborts, so the staging sink is released on every path.
    """

    @property
    def closed(self) -> bool:
        """True once the handle was closed or aborted."""
        ...

    @property
    def content_id(self) -> str:
        """Identifier of the written content.

        Closes the handle first if it is still open.

        Raises:
            ValueError: If the handle was aborted
        """
        ...

    def write(self, data: bytes) -> int:
        """Append bytes to the staged content.

        Args:
            data: Any bytes-like object, including empty

        Returns:
            Number of bytes accepted

        Raises:
            ValueError: If the handle is closed
            StorageIOError: If the staging sink fails
        """
        ...

    def close(self) -> None:
        """Finalize the digest and publish. Idempotent."""
        ...

    def abort(self) -> None:
        """Discard staged bytes without publishing."""
        ...

    def __enter__(self) -> "StagedWriter": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


@runtime_checkable
class ContentStore(Protocol):
    """Immutable mapping from content identifier to bytes.

    Implementations:
    - FileContentStore: sharded directory tree with atomic publish
    - InMemoryContentStore: lock-guarded dict (tests, ephemeral use)
    """

    def open_writer(self) -> StagedWriter:
        """Begin a staged write session."""
        ...

    def open_reader(self, content_id: str) -> BinaryIO:
        """Open committed content for reading.

        Args:
            content_id: Content identifier

        Returns:
            Binary stream positioned at the first byte; caller closes it

        Raises:
            InvalidIdentifierError: If content_id is malformed
            NotFoundError: If nothing was committed under content_id
        """
        ...

    def exists(self, content_id: str) -> bool:
        """Check whether content_id has been committed.

        Raises:
            InvalidIdentifierError: If content_id is malformed
        """
        ...

    def list_ids(self) -> list[str]:
        """Sorted identifiers of all committed content."""
        ...


@runtime_checkable
class PointerStore(Protocol):
    """Mutable mapping from pointer identifier to content identifier.

    Binding does not check that the target content exists; a dangling
    pointer only fails when someone reads the content it names.
    """

    def bind(self, pointer_id: str, content_id: str | None) -> None:
        """Point pointer_id at content_id, or remove it when content_id is None.

        Raises:
            InvalidIdentifierError: If either identifier is malformed
        """
        ...

    def unbind(self, pointer_id: str) -> None:
        """Remove pointer_id. No-op when it is not bound.

        Raises:
            InvalidIdentifierError: If pointer_id is malformed
            StorageIOError: If the binding could not be removed
        """
        ...

    def resolve(self, pointer_id: str) -> str | None:
        """Current target of pointer_id, or None when unbound.

        Raises:
            InvalidIdentifierError: If pointer_id is malformed
        """
        ...

    def list_ids(self) -> list[str]:
        """Sorted identifiers of all bound pointers."""
        ...
