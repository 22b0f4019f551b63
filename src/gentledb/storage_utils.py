"""Storage utilities for atomic operations and safe file handling."""

import errno
import logging
import os
import stat
from pathlib import Path

from .errors import StorageIOError
from .identifiers import random_token

logger = logging.getLogger(__name__)

DIR_MODE = stat.S_IRWXU  # 0o700
FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0o600
READONLY_MODE = stat.S_IRUSR  # 0o400


def secure_mkdir(path: str | Path) -> Path:
    """Create a single directory readable only by its owner.

    Args:
        path: Directory to create (parent must exist)

    Returns:
        Path object for the directory

    Raises:
        FileExistsError: If the path already exists
        StorageIOError: If creation or chmod fails
    """
    path = Path(path)
    try:
        os.mkdir(path, DIR_MODE)
    except FileExistsError:
        raise
    except OSError as e:
        raise StorageIOError(f"Could not create directory '{path}': {e}", path) from e
    try:
        # mkdir mode is filtered by umask
        os.chmod(path, DIR_MODE)
    except OSError as e:
        raise StorageIOError(f"Could not restrict permissions on '{path}': {e}", path) from e
    return path


def ensure_secure_dir(path: str | Path) -> Path:
    """Ensure directory exists, creating it owner-only if missing.

    Safe against concurrent creators: losing the race to another process
    is not an error. Existing directories keep their permissions.

    Args:
        path: Directory path

    Returns:
        Path object for the directory
    """
    path = Path(path)
    if path.is_dir():
        return path
    try:
        secure_mkdir(path)
        logger.debug(f"Created directory {path}")
    except FileExistsError:
        if not path.is_dir():
            raise StorageIOError(f"Not a directory: '{path}'", path)
    return path


def make_readonly(path: str | Path) -> None:
    """Mark a file read-only for its owner and inaccessible to others."""
    os.chmod(path, READONLY_MODE)


def atomic_publish(src: str | Path, dst: str | Path) -> bool:
    """Move src to dst only if dst does not exist yet.

    Uses a hard link, which fails atomically when dst exists, then removes
    src. Where hard links are unsupported this falls back to a rename;
    callers only publish content whose bytes are fixed by dst's name, so
    replacing an identical file is harmless.

    Args:
        src: Staged file (same filesystem as dst)
        dst: Public location

    Returns:
        True if src was published, False if dst already existed. In both
        cases src is gone afterwards.

    Raises:
        OSError: If linking, renaming or removing src fails
    """
    src = Path(src)
    dst = Path(dst)
    try:
        os.link(src, dst)
    except FileExistsError:
        src.unlink()
        return False
    except OSError as e:
        if not _link_unsupported(e):
            raise
        logger.debug(f"Hard links unsupported for {dst}, falling back to rename")
        if dst.exists():
            src.unlink()
            return False
        os.replace(src, dst)
        return True
    src.unlink()
    return True


def _link_unsupported(error: OSError) -> bool:
    return error.errno in (errno.EPERM, errno.EXDEV, errno.ENOTSUP, errno.EOPNOTSUPP, errno.EMLINK)


def atomic_write(path: str | Path, content: bytes, tmp_dir: str | Path) -> None:
    """Write file atomically using a staging file + rename.

    Readers never see a partial file. The staging file is created in
    tmp_dir, which must be on the same filesystem as path.

    Args:
        path: Target file path (parent must exist)
        content: Bytes to write
        tmp_dir: Staging directory

    Raises:
        OSError: If write or rename fails
    """
    path = Path(path)
    tmp_path = Path(tmp_dir) / random_token()
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_path, FILE_MODE)
        tmp_path.replace(path)
        logger.debug(f"Atomically wrote {len(content)} bytes to {path}")
    except Exception:
        # Clean up temp file on failure
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def safe_read(path: str | Path) -> bytes | None:
    """Read file safely, returning None if not found.

    Args:
        path: File path to read

    Returns:
        File contents as bytes or None if not found
    """
    path = Path(path)
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except Exception as e:
        logger.error(f"Failed to read {path}: {e}")
        raise
