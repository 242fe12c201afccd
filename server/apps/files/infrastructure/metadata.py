"""Metadata extraction utilities for files."""

import mimetypes
import secrets
from enum import StrEnum
from typing import BinaryIO, Final

from django.core.exceptions import SuspiciousFileOperation
from django.utils import timezone
from django.utils.text import get_valid_filename

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_KEY_TOKEN_BYTES: Final = 4  # 8 hex chars
_KEY_NAME_MAX_LENGTH: Final = 200
_FALLBACK_KEY_NAME: Final = 'file'

STORAGE_KEY_PREFIX: Final = 'user-'


class FileCategory(StrEnum):
    """Coarse file category derived from a MIME type."""

    IMAGE = 'image'
    PDF = 'pdf'
    SPREADSHEET = 'spreadsheet'
    DOCUMENT = 'document'
    ARCHIVE = 'archive'
    OTHER = 'other'


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def classify_mime_type(mime_type: str | None) -> FileCategory:
    """Map a MIME type to a FileCategory.

    Rules are checked in order, the first match wins.

    Args:
        mime_type: MIME type string, may be empty.

    Returns:
        Matching category, OTHER when nothing matches.
    """
    if not mime_type:
        return FileCategory.OTHER

    mime_type = mime_type.lower()
    if mime_type.startswith('image/'):
        return FileCategory.IMAGE
    if 'pdf' in mime_type:
        return FileCategory.PDF
    if 'spreadsheet' in mime_type or 'excel' in mime_type:
        return FileCategory.SPREADSHEET
    if 'word' in mime_type or 'text' in mime_type:
        return FileCategory.DOCUMENT
    if 'zip' in mime_type or 'rar' in mime_type:
        return FileCategory.ARCHIVE
    return FileCategory.OTHER


def get_file_size(file_obj: BinaryIO) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_obj.seek(0)
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size


def generate_storage_key(owner_id: object, original_name: str) -> str:
    """Generate a fresh blob store key for an upload.

    Combines owner id, upload time in milliseconds, a random token and
    a storage-safe version of the original name.

    Example: 'user-7-1760000000000-9f86d081-Quarterly_report.pdf'

    Args:
        owner_id: Id of the uploading user.
        original_name: Filename as supplied by the client.

    Returns:
        Storage key string.
    """
    millis = int(timezone.now().timestamp() * 1000)
    token = secrets.token_hex(_KEY_TOKEN_BYTES)
    safe_name = _storage_safe_name(original_name)
    return f'{STORAGE_KEY_PREFIX}{owner_id}-{millis}-{token}-{safe_name}'


def _storage_safe_name(original_name: str) -> str:
    # Spaces become underscores, anything outside [-\w.] is dropped
    try:
        safe_name = get_valid_filename(original_name)
    except SuspiciousFileOperation:
        return _FALLBACK_KEY_NAME
    return safe_name[-_KEY_NAME_MAX_LENGTH:]
