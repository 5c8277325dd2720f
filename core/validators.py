"""
Input validation utilities for image uploads.
"""
import os
from typing import Tuple, Optional, Iterable


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for use
    """
    if not filename:
        raise ValueError("Filename cannot be empty")

    # Remove directory separators and path components
    filename = os.path.basename(filename.replace("\\", "/"))

    # Remove dangerous characters (keep alphanumeric, dots, dashes, underscores)
    safe_chars = []
    for char in filename:
        if char.isalnum() or char in "._-":
            safe_chars.append(char)
        else:
            safe_chars.append("_")

    sanitized = "".join(safe_chars)

    if len(sanitized) > 255:
        sanitized = sanitized[:255]

    if not sanitized:
        raise ValueError("Filename became empty after sanitization")

    return sanitized


def get_file_extension(filename: str, default: str = "jpg") -> str:
    """Lower-case extension without the dot, or `default` when there is none."""
    if not filename or "." not in filename:
        return default
    ext = filename.rsplit(".", 1)[-1].lower().strip()
    return ext or default


def validate_file_size(file_size: int, max_size_bytes: int) -> Tuple[bool, Optional[str]]:
    """
    Validate file size.

    Args:
        file_size: File size in bytes
        max_size_bytes: Maximum allowed size in bytes

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file_size <= 0:
        return False, "File is empty."

    if file_size > max_size_bytes:
        max_size_mb = max_size_bytes / (1024 * 1024)
        return False, f"File too large. Maximum size is {max_size_mb:.0f}MB."

    return True, None


def validate_image_file(
    filename: Optional[str],
    content_type: Optional[str],
    file_size: int,
    allowed_types: Iterable[str],
    max_size_bytes: int
) -> Tuple[bool, Optional[str]]:
    """
    Validate an uploaded image before it is sent to storage.

    Args:
        filename: Client-supplied filename
        content_type: MIME type reported by the client
        file_size: Size in bytes
        allowed_types: Accepted MIME types
        max_size_bytes: Maximum allowed size in bytes

    Returns:
        Tuple of (is_valid, error_message)
    """
    if (content_type or "").lower() not in set(allowed_types):
        return False, "Invalid file type. Please upload JPEG, PNG, GIF, or WebP images."

    is_valid, error = validate_file_size(file_size, max_size_bytes)
    if not is_valid:
        return False, error

    if not filename or len(filename) > 255:
        return False, "Invalid filename."

    return True, None
