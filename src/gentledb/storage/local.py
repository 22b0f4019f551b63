"""Local filesystem content and pointer stores.

Layout under the storage root:

    <root>/content_db/<s1>/<s2>/<s3>/<leaf>   committed content, mode 0400
    <root>/pointer_db/<s1>/<s2>/<s3>/<leaf>   pointer files, mode 0600
    <root>/tmp/<random token>                 staging files

Content becomes visible only through a no-clobber atomic publish of a
fully written, fsynced staging file, so several processes can share one
root. A crash before publish leaves an orphaned staging file and nothing
else; see clean_staging().
"""

import logging
import os
import time
from pathlib import Path
from typing import BinaryIO

from ..errors import NotFoundError, StorageIOError
from ..identifiers import is_valid, random_token, validate
from ..paths import id_to_path
from ..storage_utils import (
    FILE_MODE,
    atomic_publish,
    atomic_write,
    ensure_secure_dir,
    make_readonly,
    safe_read,
)
from .writer import HashingWriter

logger = logging.getLogger(__name__)

CONTENT_DIR = "content_db"
POINTER_DIR = "pointer_db"
TMP_DIR = "tmp"

DEFAULT_DIRECTORY = Path.home() / ".gentledb"


def init_layout(directory: str | Path) -> tuple[Path, Path, Path, Path]:
    """Ensure the storage root and its three subdirectories exist.

    Missing directories are created owner-only; existing ones are left
    alone. The parent of the root must already exist.

    Args:
        directory: Storage root

    Returns:
        Tuple of (root, content_dir, pointer_dir, tmp_dir), all absolute
    """
    root = ensure_secure_dir(Path(directory).expanduser().resolve())
    dirs = [ensure_secure_dir(root / name) for name in (CONTENT_DIR, POINTER_DIR, TMP_DIR)]
    return (root, *dirs)


def _tree_ids(root: Path) -> list[str]:
    ids = []
    for path in root.glob("*/*/*/*"):
        identifier = "".join(path.relative_to(root).parts)
        if is_valid(identifier) and path.is_file():
            ids.append(identifier)
    return sorted(ids)


class FileStagedWriter(HashingWriter):
    """Streams bytes into a private staging file, publishes on close."""

    def __init__(self, store: "FileContentStore"):
        super().__init__()
        self._store = store
        self._staging_path = store.tmp_dir / random_token()
        try:
            fd = os.open(
                self._staging_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE
            )
        except OSError as e:
            raise StorageIOError(
                f"Could not create staging file '{self._staging_path}': {e}",
                self._staging_path,
            ) from e
        try:
            os.chmod(self._staging_path, FILE_MODE)
            self._file = os.fdopen(fd, "wb")
        except OSError as e:
            os.close(fd)
            self._staging_path.unlink(missing_ok=True)
            raise StorageIOError(
                f"Could not prepare staging file '{self._staging_path}': {e}",
                self._staging_path,
            ) from e

    @property
    def staging_path(self) -> Path:
        return self._staging_path

    def _stage(self, data) -> None:
        try:
            self._file.write(data)
        except OSError as e:
            raise StorageIOError(
                f"Failed to write staging file '{self._staging_path}': {e}",
                self._staging_path,
            ) from e

    def _publish(self, content_id: str) -> None:
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
            self._file.close()
        except OSError as e:
            raise StorageIOError(
                f"Failed to flush staging file '{self._staging_path}': {e}",
                self._staging_path,
            ) from e

        path = id_to_path(self._store.content_dir, content_id, create_dirs=True)
        try:
            if path.exists():
                # Never overwrite committed content
                self._staging_path.unlink()
                logger.debug(f"Content {content_id} already present, discarded staging file")
                return
            make_readonly(self._staging_path)
            if atomic_publish(self._staging_path, path):
                logger.debug(f"Published {self._size} bytes as {content_id}")
            else:
                logger.debug(f"Lost publish race for {content_id}, discarded staging file")
        except OSError as e:
            logger.error(f"Failed to publish {content_id}: {e}")
            raise StorageIOError(f"Failed to publish content {content_id}: {e}", path) from e

    def _discard(self) -> None:
        try:
            if not self._file.closed:
                self._file.close()
        except OSError as e:
            logger.debug(f"Error closing staging file '{self._staging_path}': {e}")
        try:
            self._staging_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageIOError(
                f"Could not delete '{self._staging_path}': {e}", self._staging_path
            ) from e


class FileContentStore:
    """Content store over a sharded directory tree.

    Args:
        content_dir: Root of the content tree (must exist)
        tmp_dir: Staging directory on the same filesystem (must exist)
    """

    def __init__(self, content_dir: str | Path, tmp_dir: str | Path):
        self.content_dir = Path(content_dir)
        self.tmp_dir = Path(tmp_dir)

    def open_writer(self) -> FileStagedWriter:
        return FileStagedWriter(self)

    def open_reader(self, content_id: str) -> BinaryIO:
        validate(content_id, "content")
        path = id_to_path(self.content_dir, content_id)
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise NotFoundError(content_id) from None
        except OSError as e:
            raise StorageIOError(f"Failed to open content {content_id}: {e}", path) from e

    def exists(self, content_id: str) -> bool:
        validate(content_id, "content")
        return id_to_path(self.content_dir, content_id).is_file()

    def list_ids(self) -> list[str]:
        return _tree_ids(self.content_dir)

    def clean_staging(self, max_age_seconds: float = 86400) -> int:
        """Remove staging files older than max_age_seconds.

        Staging files are left behind by abandoned writers and crashes.
        Age is measured from the last write, so the threshold must exceed
        the longest time any open writer may sit idle. Removing a live
        writer's staging file makes its close() fail with StorageIOError.

        Args:
            max_age_seconds: Minimum age (by mtime) of files to remove

        Returns:
            Number of files removed
        """
        cutoff = time.time() - max_age_seconds
        removed = 0
        try:
            entries = list(self.tmp_dir.iterdir())
        except OSError as e:
            raise StorageIOError(f"Could not list '{self.tmp_dir}': {e}", self.tmp_dir) from e
        for entry in entries:
            try:
                if not entry.is_file() or entry.stat().st_mtime > cutoff:
                    continue
                entry.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageIOError(f"Could not delete '{entry}': {e}", entry) from e
            removed += 1
        if removed:
            logger.info(f"Removed {removed} stale staging files from {self.tmp_dir}")
        return removed


class FilePointerStore:
    """Pointer store keeping one small file per pointer.

    Args:
        pointer_dir: Root of the pointer tree (must exist)
        tmp_dir: Staging directory on the same filesystem (must exist)
    """

    def __init__(self, pointer_dir: str | Path, tmp_dir: str | Path):
        self.pointer_dir = Path(pointer_dir)
        self.tmp_dir = Path(tmp_dir)

    def bind(self, pointer_id: str, content_id: str | None) -> None:
        validate(pointer_id, "pointer")
        if content_id is None:
            self.unbind(pointer_id)
            return
        validate(content_id, "content")
        path = id_to_path(self.pointer_dir, pointer_id, create_dirs=True)
        try:
            atomic_write(path, content_id.encode("utf-8"), self.tmp_dir)
        except OSError as e:
            logger.error(f"Failed to bind pointer {pointer_id}: {e}")
            raise StorageIOError(f"Failed to bind pointer {pointer_id}: {e}", path) from e
        logger.debug(f"Bound pointer {pointer_id} -> {content_id}")

    def unbind(self, pointer_id: str) -> None:
        validate(pointer_id, "pointer")
        path = id_to_path(self.pointer_dir, pointer_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to unbind pointer {pointer_id}: {e}")
            raise StorageIOError(f"Could not delete '{path}': {e}", path) from e
        logger.debug(f"Unbound pointer {pointer_id}")

    def resolve(self, pointer_id: str) -> str | None:
        validate(pointer_id, "pointer")
        path = id_to_path(self.pointer_dir, pointer_id)
        try:
            data = safe_read(path)
        except OSError as e:
            raise StorageIOError(f"Failed to read pointer {pointer_id}: {e}", path) from e
        if data is None:
            return None
        try:
            content_id = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageIOError(f"Corrupt pointer file '{path}'", path) from e
        if not is_valid(content_id):
            raise StorageIOError(f"Corrupt pointer file '{path}'", path)
        return content_id

    def list_ids(self) -> list[str]:
        return _tree_ids(self.pointer_dir)
