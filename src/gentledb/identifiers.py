"""Identifier validation and digest helpers.

Content and pointer identifiers share one syntax: 64 lowercase hex
characters (256 bits). Content identifiers are SHA-256 digests of the
stored bytes; pointer identifiers are chosen by the caller.
"""

import hashlib
import secrets
from typing import Any

from .errors import InvalidIdentifierError

IDENTIFIER_LENGTH = 256 // 4
IDENTIFIER_DIGITS = "0123456789abcdef"

_DIGIT_SET = frozenset(IDENTIFIER_DIGITS)


def is_valid(identifier: Any) -> bool:
    """Check identifier syntax without raising.

    Args:
        identifier: Candidate value (anything, including None)

    Returns:
        True if identifier is a 64-char lowercase hex string
    """
    if not isinstance(identifier, str):
        return False
    if len(identifier) != IDENTIFIER_LENGTH:
        return False
    return _DIGIT_SET.issuperset(identifier)


def validate(identifier: Any, kind: str = "identifier") -> str:
    """Return identifier unchanged or raise InvalidIdentifierError.

    Args:
        identifier: Candidate value
        kind: Label used in the error ("content", "pointer")

    Returns:
        The identifier

    Raises:
        InvalidIdentifierError: If the syntax check fails
    """
    if not is_valid(identifier):
        raise InvalidIdentifierError(identifier, kind)
    return identifier


def new_hasher():
    """Fresh SHA-256 accumulator for incremental digests."""
    return hashlib.sha256()


def digest_hex(data: bytes) -> str:
    """SHA-256 of data as 64 lowercase hex characters."""
    return hashlib.sha256(data).hexdigest()


def random_token() -> str:
    """256 random bits, hex-encoded. Names staging files only."""
    return secrets.token_hex(32)
