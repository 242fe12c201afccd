"""Access decisions for file records.

Pure functions over a requester id and a record: no I/O, no logging.
The record is always read as passed in, so callers must hand over the
freshly loaded record rather than a cached copy.
"""

from enum import StrEnum
from typing import Protocol

from server.apps.files.exceptions import FileAccessForbiddenError


class FileOperation(StrEnum):
    """Operations a requester may attempt on a file record."""

    LIST = 'list'
    DOWNLOAD = 'download'
    RENAME = 'rename'
    DELETE = 'delete'
    TOGGLE_VISIBILITY = 'change visibility of'


class VisibilityLabel(StrEnum):
    """How a record appears to a given requester."""

    OWNED_PUBLIC = 'My File (Shared)'
    OWNED_PRIVATE = 'My File (Private)'
    SHARED_BY_OTHER = 'Public (Shared by another user)'
    PRIVATE = 'Private'


class AccessControlled(Protocol):
    """Fields access decisions depend on."""

    id: object
    owner_id: object
    is_public: bool


_READ_OPERATIONS = frozenset((FileOperation.LIST, FileOperation.DOWNLOAD))


def is_owner(requester_id: object, record: AccessControlled) -> bool:
    """Check whether the requester owns the record.

    Ids are compared as strings so integer and string forms match.

    Args:
        requester_id: Requesting user's id.
        record: File record.

    Returns:
        True if the requester is the owner.
    """
    return str(requester_id) == str(record.owner_id)


def is_visible(requester_id: object, record: AccessControlled) -> bool:
    """Check whether the requester may see the record.

    Args:
        requester_id: Requesting user's id.
        record: File record.

    Returns:
        True if the requester owns the record or it is public.
    """
    return bool(record.is_public) or is_owner(requester_id, record)


def is_allowed(
    requester_id: object,
    record: AccessControlled,
    operation: FileOperation,
) -> bool:
    """Decide whether an operation is permitted.

    Listing and downloading need visibility; every mutation needs
    ownership, whatever the visibility.

    Args:
        requester_id: Requesting user's id.
        record: File record.
        operation: Attempted operation.

    Returns:
        True if allowed.
    """
    if operation in _READ_OPERATIONS:
        return is_visible(requester_id, record)
    return is_owner(requester_id, record)


def authorize(
    requester_id: object,
    record: AccessControlled,
    operation: FileOperation,
) -> None:
    """Raise unless the operation is permitted.

    Args:
        requester_id: Requesting user's id.
        record: File record.
        operation: Attempted operation.

    Raises:
        FileAccessForbiddenError: If the operation is denied.
    """
    if not is_allowed(requester_id, record, operation):
        raise FileAccessForbiddenError(requester_id, record.id, operation)


def visibility_label(
    requester_id: object,
    record: AccessControlled,
) -> VisibilityLabel:
    """Describe a record's visibility from the requester's side."""
    if is_owner(requester_id, record):
        if record.is_public:
            return VisibilityLabel.OWNED_PUBLIC
        return VisibilityLabel.OWNED_PRIVATE
    if record.is_public:
        return VisibilityLabel.SHARED_BY_OTHER
    return VisibilityLabel.PRIVATE
