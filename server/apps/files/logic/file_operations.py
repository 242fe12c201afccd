"""Business logic for file operations."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import BinaryIO, Final, final

from django.conf import settings
from django.core.files.storage import default_storage

from server.apps.files.exceptions import (
    BlobNotFoundError,
    FileRecordNotFoundError,
    InvalidFileInputError,
    StorageFailureError,
)
from server.apps.files.infrastructure.blob_store import (
    BlobStore,
    DjangoStorageBlobStore,
)
from server.apps.files.infrastructure.metadata import (
    FileCategory,
    classify_mime_type,
    detect_mime_type,
    generate_storage_key,
    get_file_size,
)
from server.apps.files.infrastructure.metadata_store import (
    DjangoMetadataStore,
    MetadataStore,
)
from server.apps.files.logic.access_control import (
    FileOperation,
    authorize,
    is_owner,
)
from server.apps.files.models import (
    MAX_DISPLAY_NAME_LENGTH,
    MIN_DISPLAY_NAME_LENGTH,
    File,
)

logger = logging.getLogger(__name__)

_DOCUMENT_CATEGORIES: Final = frozenset((
    FileCategory.DOCUMENT,
    FileCategory.PDF,
))


class FileListFilter(StrEnum):
    """Narrowing filters for file listings."""

    ALL = 'all'
    PUBLIC = 'public'
    PRIVATE = 'private'
    IMAGE = 'image'
    DOCUMENT = 'document'


@dataclass(frozen=True, slots=True)
class FileDownload:
    """Open blob stream plus the envelope the response needs.

    ``display_name`` is the record's name at download time, so renamed
    files are served under their current name. The caller must close
    ``stream``; closing it early has no side effects.
    """

    record: File
    stream: BinaryIO
    display_name: str
    mime_type: str
    size_bytes: int


@final
class FileLifecycleManager:
    """Upload, list, rename, share, download and delete file records.

    Keeps each record and its blob consistent: blobs are written before
    records are created and deleted before records are removed.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
    ) -> None:
        """Initialize the manager.

        Args:
            blob_store: Storage holding file bytes.
            metadata_store: Storage holding file records.
        """
        self._blobs = blob_store
        self._records = metadata_store

    def upload(  # noqa: WPS211
        self,
        requester_id: object,
        file_obj: BinaryIO,
        original_name: str,
        mime_type: str | None = None,
        is_public: bool = False,
    ) -> File:
        """Store a new file and create its record.

        The blob is written first, then the record is created. If the
        record cannot be created the blob is logged as an inconsistency
        and a best-effort rollback deletes it.

        Args:
            requester_id: Verified id of the uploading user.
            file_obj: File-like object with the content.
            original_name: Filename supplied by the client.
            mime_type: MIME type, detected from the name when missing.
            is_public: Whether other users may see the file.

        Returns:
            Created File instance.

        Raises:
            InvalidFileInputError: If the content is empty or the name is
                outside the allowed length.
            StorageFailureError: If the blob or the record cannot be stored.
        """
        display_name = _clean_display_name(original_name)

        size_bytes = get_file_size(file_obj)
        if size_bytes <= 0:
            raise InvalidFileInputError('No file uploaded.')

        mime_type = mime_type or detect_mime_type(display_name)
        storage_key = generate_storage_key(requester_id, display_name)

        # Step 1: Upload to blob store first
        try:
            logger.info('Uploading blob: %s', storage_key)
            self._blobs.put(storage_key, file_obj)
        except StorageFailureError:
            raise
        except Exception as error:
            logger.exception('Failed to upload blob: %s', storage_key)
            raise StorageFailureError('Upload failed') from error

        # Step 2: Create the record
        try:
            record = self._records.create(
                owner_id=requester_id,
                display_name=display_name,
                storage_key=storage_key,
                mime_type=mime_type,
                size_bytes=size_bytes,
                is_public=is_public,
            )
        except StorageFailureError:
            logger.exception(
                'Record creation failed after blob upload, '
                'orphaned blob: %s',
                storage_key,
            )
            self._rollback_blob(storage_key)
            raise

        logger.info(
            'File uploaded: %s (ID: %s, owner: %s, public: %s)',
            storage_key,
            record.id,
            requester_id,
            is_public,
        )
        return record

    def list_files(
        self,
        requester_id: object,
        list_filter: FileListFilter = FileListFilter.ALL,
    ) -> list[File]:
        """List the records a requester may see.

        Args:
            requester_id: Verified id of the requesting user.
            list_filter: Optional narrowing filter.

        Returns:
            Owned or public records, newest first.
        """
        records = self._records.list_visible_to(requester_id)
        logger.debug(
            'Listing %d visible files for %s (filter: %s)',
            len(records),
            requester_id,
            list_filter,
        )
        return [
            record
            for record in records
            if _matches_filter(requester_id, record, list_filter)
        ]

    def rename(
        self,
        requester_id: object,
        file_id: object,
        new_name: str,
    ) -> File:
        """Change the display name of a record.

        Args:
            requester_id: Verified id of the requesting user.
            file_id: Record id.
            new_name: New display name, trimmed before storing.

        Returns:
            Updated File instance.

        Raises:
            FileRecordNotFoundError: If the record does not exist.
            FileAccessForbiddenError: If the requester is not the owner.
            InvalidFileInputError: If the trimmed name is too short or
                too long.
        """
        record = self._load(file_id)
        authorize(requester_id, record, FileOperation.RENAME)

        display_name = _clean_display_name(new_name)

        updated = self._records.update_display_name(record.id, display_name)
        if updated is None:
            raise FileRecordNotFoundError(file_id)

        logger.info(
            'File renamed: ID=%s, %r -> %r',
            record.id,
            record.display_name,
            display_name,
        )
        return updated

    def set_visibility(
        self,
        requester_id: object,
        file_id: object,
        is_public: bool,
    ) -> File:
        """Share or unshare a record.

        Args:
            requester_id: Verified id of the requesting user.
            file_id: Record id.
            is_public: New visibility.

        Returns:
            Updated File instance.

        Raises:
            FileRecordNotFoundError: If the record does not exist.
            FileAccessForbiddenError: If the requester is not the owner.
        """
        record = self._load(file_id)
        authorize(requester_id, record, FileOperation.TOGGLE_VISIBILITY)

        updated = self._records.update_visibility(record.id, is_public)
        if updated is None:
            raise FileRecordNotFoundError(file_id)

        logger.info('File visibility changed: ID=%s, public=%s', record.id, is_public)
        return updated

    def download(self, requester_id: object, file_id: object) -> FileDownload:
        """Open a record's blob for streaming.

        Args:
            requester_id: Verified id of the requesting user.
            file_id: Record id.

        Returns:
            FileDownload with the open stream and the current name.

        Raises:
            FileRecordNotFoundError: If the record does not exist.
            FileAccessForbiddenError: If the record is not visible.
            StorageFailureError: If the blob cannot be read.
        """
        record = self._load(file_id)
        authorize(requester_id, record, FileOperation.DOWNLOAD)

        try:
            stream = self._blobs.open(record.storage_key)
        except BlobNotFoundError as error:
            logger.exception(
                'Record without blob (dangling): ID=%s, key=%s',
                record.id,
                record.storage_key,
            )
            raise StorageFailureError('Download failed') from error
        except Exception as error:
            logger.exception('Failed to open blob: %s', record.storage_key)
            raise StorageFailureError('Download failed') from error

        logger.info('File download: ID=%s by %s', record.id, requester_id)
        return FileDownload(
            record=record,
            stream=stream,
            display_name=record.display_name,
            mime_type=record.mime_type,
            size_bytes=record.size_bytes,
        )

    def download_url(
        self,
        requester_id: object,
        file_id: object,
        expires_in: int | None = None,
    ) -> str:
        """Build a time-limited retrieval URL for a record's blob.

        Args:
            requester_id: Verified id of the requesting user.
            file_id: Record id.
            expires_in: URL lifetime in seconds, FILES_DOWNLOAD_URL_EXPIRE
                when None.

        Returns:
            URL presenting the blob under its current display name.

        Raises:
            FileRecordNotFoundError: If the record does not exist.
            FileAccessForbiddenError: If the record is not visible.
            StorageFailureError: If the URL cannot be built.
        """
        record = self._load(file_id)
        authorize(requester_id, record, FileOperation.DOWNLOAD)

        if expires_in is None:
            expires_in = settings.FILES_DOWNLOAD_URL_EXPIRE

        try:
            return self._blobs.url(
                record.storage_key,
                record.display_name,
                expire=expires_in,
            )
        except Exception as error:
            logger.exception('Failed to build download URL: %s', record.storage_key)
            raise StorageFailureError('Download failed') from error

    def delete(self, requester_id: object, file_id: object) -> None:
        """Delete a record and its blob.

        The blob goes first. If that fails the record is kept, so no
        blob is ever left without a record pointing at it.

        Args:
            requester_id: Verified id of the requesting user.
            file_id: Record id.

        Raises:
            FileRecordNotFoundError: If the record does not exist.
            FileAccessForbiddenError: If the requester is not the owner.
            StorageFailureError: If the blob delete fails.
        """
        record = self._load(file_id)
        authorize(requester_id, record, FileOperation.DELETE)

        logger.info(
            'Deleting file: ID=%s, key=%s',
            record.id,
            record.storage_key,
        )

        # Step 1: Delete the blob, abort on failure
        try:
            self._blobs.delete(record.storage_key)
        except Exception as error:
            logger.exception(
                'Failed to delete blob, record kept: ID=%s, key=%s',
                record.id,
                record.storage_key,
            )
            raise StorageFailureError('Delete failed') from error

        # Step 2: Delete the record
        if not self._records.delete(record.id):
            raise FileRecordNotFoundError(file_id)

        logger.info('File deleted: ID=%s', record.id)

    def _load(self, file_id: object) -> File:
        record = self._records.get(file_id)
        if record is None:
            raise FileRecordNotFoundError(file_id)
        return record

    def _rollback_blob(self, storage_key: str) -> None:
        # Best effort: a failure leaves an orphan for audit_storage
        try:
            logger.warning('Rolling back upload, deleting blob: %s', storage_key)
            self._blobs.delete(storage_key)
        except Exception:
            logger.exception(
                'Failed to rollback upload, orphaned blob: %s',
                storage_key,
            )


def _clean_display_name(raw_name: str | None) -> str:
    display_name = (raw_name or '').strip()
    if not display_name:
        raise InvalidFileInputError('No file name supplied.')
    if len(display_name) < MIN_DISPLAY_NAME_LENGTH:
        raise InvalidFileInputError(
            f'Name must be at least {MIN_DISPLAY_NAME_LENGTH} characters.',
        )
    if len(display_name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidFileInputError(
            f'Name must be at most {MAX_DISPLAY_NAME_LENGTH} characters.',
        )
    return display_name


def _matches_filter(
    requester_id: object,
    record: File,
    list_filter: FileListFilter,
) -> bool:
    match list_filter:
        case FileListFilter.PUBLIC:
            return record.is_public
        case FileListFilter.PRIVATE:
            return not record.is_public and is_owner(requester_id, record)
        case FileListFilter.IMAGE:
            return classify_mime_type(record.mime_type) == FileCategory.IMAGE
        case FileListFilter.DOCUMENT:
            return classify_mime_type(record.mime_type) in _DOCUMENT_CATEGORIES
        case _:
            return True


def get_file_manager() -> FileLifecycleManager:
    """Build a manager over the configured default storage and the ORM.

    Returns:
        FileLifecycleManager instance.
    """
    return FileLifecycleManager(
        blob_store=DjangoStorageBlobStore(default_storage),
        metadata_store=DjangoMetadataStore(),
    )
