"""
Storage key generation.

Keys combine a millisecond timestamp with a random base-36 suffix and the
original file extension, e.g. ``1718035200123-k3f9x0q2ma.jpg``. Uniqueness is
probabilistic (no lookup against existing keys); the unique constraint on
``photos.storage_key`` is the backstop.
"""
import re
import secrets
import string
import time
from typing import Optional

_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 10
MAX_EXTENSION_LENGTH = 10

_EXTENSION_RE = re.compile(r"^[a-z0-9]+$")


def file_extension(filename: Optional[str]) -> str:
    """Lowercased extension of ``filename`` without the dot, or "" if it has none."""
    if not filename:
        return ""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name.strip("."):
        return ""
    ext = name.rsplit(".", 1)[-1].lower()
    if not ext or len(ext) > MAX_EXTENSION_LENGTH or not _EXTENSION_RE.match(ext):
        return ""
    return ext


def random_suffix(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_storage_key(filename: Optional[str], timestamp_ms: Optional[int] = None) -> str:
    """
    Build a fresh storage key for an uploaded file.

    Args:
        filename: Client-supplied file name (only its extension is used)
        timestamp_ms: Override for the time component (defaults to now)

    Returns:
        Key of the form ``{timestamp_ms}-{random}.{ext}``
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    key = f"{timestamp_ms}-{random_suffix()}"
    ext = file_extension(filename)
    return f"{key}.{ext}" if ext else key


# Keys written by the storage write probe; never photo blobs
HEALTHCHECK_PREFIX = ".healthcheck/"
