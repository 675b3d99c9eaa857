"""
Utilities for file handling operations.
"""
import os
import re
import secrets
import string
import time
from dataclasses import dataclass
from typing import List, Optional

from core.config import settings, DEFAULT_COLLEGE_DOMAIN
from core.exceptions import BadRequestException, ResourceNotFoundException, StorageException
from core.logging import storage_logger as logger
from core.storage import ObjectNotFoundError, StorageClient, StorageError

SAFE_NAME_MAX_LENGTH = 50
RANDOM_TOKEN_LENGTH = 13

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_STORAGE_PATH_RE = re.compile(r"^[a-zA-Z0-9/_.-]+$")


@dataclass(frozen=True)
class FileValidation:
    is_valid: bool
    error: Optional[str] = None


def _segment(value: str) -> str:
    """Reduce a path segment to [a-zA-Z0-9._-] without dot runs."""
    cleaned = re.sub(r"[^a-zA-Z0-9._-]", "_", value or "")
    cleaned = re.sub(r"\.{2,}", ".", cleaned)
    return cleaned.strip(".") or "_"


def split_extension(file_name: str) -> str:
    """Return the lower-cased extension of a file name without the dot ("" if none)."""
    base = os.path.basename(file_name or "")
    if "." not in base.strip("."):
        return ""
    return base.rsplit(".", 1)[1].lower()


def generate_file_path(user_id: str, file_name: str, college_domain: Optional[str] = None) -> str:
    """
    Generate a practically collision-free storage path for an upload.

    Args:
        user_id: Id of the uploading user
        file_name: Original file name as supplied by the client
        college_domain: Owning college domain, used as the top-level prefix

    Returns:
        str: ``{domain}/{user_id}/{epoch_ms}_{token}_{safe_name}[.{ext}]``
    """
    timestamp = int(time.time() * 1000)
    token = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(RANDOM_TOKEN_LENGTH))

    base = os.path.basename(file_name or "")
    extension = re.sub(r"[^a-z0-9]", "", split_extension(base))
    stem = base.rsplit(".", 1)[0] if extension else base
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", stem)[:SAFE_NAME_MAX_LENGTH] or "file"

    prefix = _segment(college_domain or DEFAULT_COLLEGE_DOMAIN)
    name = f"{timestamp}_{token}_{safe_name}"
    if extension:
        name = f"{name}.{extension}"
    return f"{prefix}/{_segment(user_id)}/{name}"


def validate_file(file_name: str, file_size: int) -> FileValidation:
    """
    Validate an upload against the configured size limit and extension allow-list.

    Args:
        file_name: Name of the file
        file_size: Size of the file in bytes

    Returns:
        FileValidation: ``is_valid`` plus a human-readable reason when rejected
    """
    max_size = settings.max_file_size
    if file_size > max_size:
        return FileValidation(
            is_valid=False,
            error=f"File size exceeds {round(max_size / 1048576)}MB limit",
        )

    allowed: List[str] = settings.allowed_extensions
    extension = split_extension(file_name)
    if extension not in allowed:
        return FileValidation(
            is_valid=False,
            error=f"File type .{extension} is not allowed. Allowed types: {', '.join(allowed)}",
        )

    return FileValidation(is_valid=True)


def validate_storage_path(path: Optional[str]) -> bool:
    """
    Check that a storage path cannot escape its prefix.

    Args:
        path: Object path inside the bucket

    Returns:
        bool: True if the path is non-empty, has no ``..`` or ``//`` and only
        uses ``[a-zA-Z0-9/_.-]``
    """
    if not path:
        return False
    if ".." in path or "//" in path:
        return False
    return _STORAGE_PATH_RE.match(path) is not None


def create_signed_url(storage: StorageClient, path: str, expires_in: Optional[int] = None) -> str:
    """
    Issue a time-limited download URL for a stored object.

    Raises:
        BadRequestException: If the path fails validation
        ResourceNotFoundException: If no object exists at the path
        StorageException: If the storage backend fails to sign the URL
    """
    if not validate_storage_path(path):
        logger.warning("Rejected signed URL request for invalid path", path=path)
        raise BadRequestException("Invalid file path")

    expires = expires_in or settings.signed_url_expires_in
    try:
        url = storage.create_signed_url(path, expires)
    except ObjectNotFoundError:
        raise ResourceNotFoundException("File not found")
    except StorageError as e:
        logger.error("Error creating signed URL", path=path, error=str(e))
        raise StorageException("Failed to generate download URL")

    logger.debug("Signed URL created", path=path, expires_in=expires)
    return url


def delete_stored_file(storage: StorageClient, path: str) -> bool:
    """
    Remove a stored object, logging instead of raising on failure.

    Returns:
        bool: True if the removal call succeeded, False otherwise
    """
    try:
        storage.remove([path])
        return True
    except StorageError as e:
        logger.warning("Error deleting file from storage", path=path, error=str(e))
        return False
