"""Path sharding for content and pointer trees.

An identifier is split into runs of 2, 2, 3 and 57 characters. The first
three runs are nested directory names and the last is the file name:

    e3b0c442...b855 -> e3/b0/c44/298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855

That gives 256 buckets at the first level, 256 below each of those and
4096 below each of those before reaching leaf files.
"""

from pathlib import Path

from .storage_utils import ensure_secure_dir

SHARD_WIDTHS = (2, 2, 3)


def shard_parts(identifier: str) -> tuple[str, str, str, str]:
    """Split a validated identifier into three shard names and a leaf.

    Args:
        identifier: 64-char identifier (validated by the caller)

    Returns:
        Tuple of (shard1, shard2, shard3, leaf); joined they equal identifier
    """
    parts = []
    start = 0
    for width in SHARD_WIDTHS:
        parts.append(identifier[start : start + width])
        start += width
    parts.append(identifier[start:])
    return tuple(parts)


def id_to_path(root: Path, identifier: str, create_dirs: bool = False) -> Path:
    """Map an identifier to its file path under root.

    Args:
        root: Tree root (content_db or pointer_db)
        identifier: Validated identifier
        create_dirs: Create missing shard directories (writers only)

    Returns:
        Path of the leaf file. The file itself is never created here.
    """
    *shards, leaf = shard_parts(identifier)
    directory = Path(root)
    for shard in shards:
        directory = directory / shard
        if create_dirs:
            ensure_secure_dir(directory)
    return directory / leaf
