"""Custom storage backend for S3-compatible storage."""

import logging
from typing import Any, final

from typing_extensions import override

from django.utils.http import content_disposition_header
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with:
    - Enhanced error logging
    - Presigned download URLs carrying the current display name
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save a blob to the bucket, logging the outcome.

        Args:
            name: Storage key chosen by the blob store.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Storage path used. The blob store rejects any name other than
            the one it asked for.

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete a blob from the bucket, logging the outcome.

        Args:
            name: Storage key of the blob.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def download_url(
        self,
        name: str,
        filename: str,
        expire: int | None = None,
    ) -> str:
        """Build a presigned, time-limited download URL.

        The response served by S3 carries a Content-Disposition header
        with the given filename, so renamed files download under their
        current name.

        Args:
            name: Storage path of the file.
            filename: Filename presented to the client.
            expire: URL lifetime in seconds (storage default when None).

        Returns:
            Presigned URL string.
        """
        disposition = content_disposition_header(
            as_attachment=True,
            filename=filename,
        )
        return self.url(
            name,
            parameters={'ResponseContentDisposition': disposition},
            expire=expire,
        )
