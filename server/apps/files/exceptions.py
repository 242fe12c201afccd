"""Exceptions for files app."""

from enum import StrEnum
from typing import ClassVar


class FileErrorKind(StrEnum):
    """Stable error kinds callers can branch on."""

    UNAUTHENTICATED = 'unauthenticated'
    NOT_FOUND = 'not_found'
    FORBIDDEN = 'forbidden'
    INVALID_INPUT = 'invalid_input'
    STORAGE_FAILURE = 'storage_failure'


class FileServiceError(Exception):
    """Base class for every error the files service surfaces to callers."""

    kind: ClassVar[FileErrorKind]


class UnauthenticatedError(FileServiceError):
    """Raised when a credential is missing, malformed or expired."""

    kind = FileErrorKind.UNAUTHENTICATED


class FileRecordNotFoundError(FileServiceError):
    """Raised when a file id does not resolve to a record."""

    kind = FileErrorKind.NOT_FOUND

    def __init__(self, file_id: object) -> None:
        """Initialize FileRecordNotFoundError.

        Args:
            file_id: The id that could not be resolved.
        """
        self.file_id = file_id
        super().__init__(f'File not found: {file_id}')


class FileAccessForbiddenError(FileServiceError):
    """Raised when the requester may not perform an operation on a file."""

    kind = FileErrorKind.FORBIDDEN

    def __init__(self, requester_id: object, file_id: object, operation: str) -> None:
        """Initialize FileAccessForbiddenError.

        Args:
            requester_id: Identity that attempted the operation.
            file_id: Target file record id.
            operation: Name of the denied operation.
        """
        self.requester_id = requester_id
        self.file_id = file_id
        self.operation = operation
        super().__init__(
            f'User not authorized to {operation} this file',
        )


class InvalidFileInputError(FileServiceError):
    """Raised for rejected input (short names, empty uploads)."""

    kind = FileErrorKind.INVALID_INPUT


class StorageFailureError(FileServiceError):
    """Raised when the blob store or metadata store fails.

    The message is kept generic; details go to the logs only.
    """

    kind = FileErrorKind.STORAGE_FAILURE


class BlobNotFoundError(Exception):
    """Raised by a blob store when no blob exists under a key."""

    def __init__(self, key: str) -> None:
        """Initialize BlobNotFoundError.

        Args:
            key: The missing storage key.
        """
        self.key = key
        super().__init__(f'Blob does not exist: {key}')
