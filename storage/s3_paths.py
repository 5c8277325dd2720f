"""
S3 key generation for uploaded images.
Keys look like uploads/1718900000000-k3j9x0a1b2c3d.jpg
"""
import secrets
import string
import time
from typing import Optional

from core.validators import get_file_extension

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 13) -> str:
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(length))


def sanitize_folder(folder: Optional[str]) -> str:
    """Strip slashes and path tricks from a caller-supplied folder name."""
    parts = [p for p in (folder or "").replace("\\", "/").split("/") if p and p not in (".", "..")]
    return "/".join(parts) or "uploads"


def image_object_key(folder: Optional[str], filename: str, timestamp_ms: Optional[int] = None) -> str:
    """<folder>/<ms-timestamp>-<random>.<ext>"""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    ext = get_file_extension(filename)
    return f"{sanitize_folder(folder)}/{timestamp_ms}-{_random_suffix()}.{ext}"
