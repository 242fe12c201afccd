"""Blob store: bytes addressed by an opaque key."""

import logging
from typing import BinaryIO, Protocol, final

from django.core.files.storage import Storage

from server.apps.files.exceptions import BlobNotFoundError, StorageFailureError
from server.apps.files.infrastructure.storage import FileStorage

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Key-addressed byte storage used by the file lifecycle manager."""

    def put(self, key: str, content: BinaryIO) -> None:
        """Store bytes under exactly ``key``."""

    def open(self, key: str) -> BinaryIO:
        """Open the blob for reading, raising BlobNotFoundError if absent."""

    def delete(self, key: str) -> None:
        """Delete the blob under ``key``."""

    def exists(self, key: str) -> bool:
        """Check whether a blob is stored under ``key``."""

    def url(self, key: str, filename: str, expire: int | None = None) -> str:
        """Build a retrieval URL presenting the blob as ``filename``."""

    def keys(self) -> list[str]:
        """List every top-level key in the store."""


@final
class DjangoStorageBlobStore:
    """BlobStore backed by any Django storage.

    With FileStorage (S3) URLs are presigned and time-limited; other
    storages hand out their plain URL.
    """

    def __init__(self, storage: Storage) -> None:
        """Initialize the blob store.

        Args:
            storage: Django storage backend holding the bytes.
        """
        self._storage = storage

    def put(self, key: str, content: BinaryIO) -> None:
        """Store content under the given key.

        Args:
            key: Storage key chosen by the caller.
            content: File-like object to store.

        Raises:
            StorageFailureError: If the storage saved under another name.
        """
        saved_name = self._storage.save(key, content)
        if saved_name != key:
            # Storage renamed the blob to avoid a clash, key is taken
            logger.error(
                'Storage key collision: requested %s, saved %s',
                key,
                saved_name,
            )
            self._storage.delete(saved_name)
            raise StorageFailureError('Storage key collision')

    def open(self, key: str) -> BinaryIO:
        """Open a blob for reading.

        Args:
            key: Storage key.

        Returns:
            Readable binary file object; the caller closes it.

        Raises:
            BlobNotFoundError: If no blob exists under the key.
        """
        try:
            return self._storage.open(key, 'rb')
        except FileNotFoundError as error:
            raise BlobNotFoundError(key) from error

    def delete(self, key: str) -> None:
        """Delete a blob.

        Args:
            key: Storage key.
        """
        self._storage.delete(key)

    def exists(self, key: str) -> bool:
        """Check whether a blob exists.

        Args:
            key: Storage key.

        Returns:
            True if the blob exists.
        """
        return self._storage.exists(key)

    def url(self, key: str, filename: str, expire: int | None = None) -> str:
        """Build a retrieval URL for a blob.

        Args:
            key: Storage key.
            filename: Name the client should save the file under.
            expire: URL lifetime in seconds, if supported.

        Returns:
            URL string.
        """
        if isinstance(self._storage, FileStorage):
            return self._storage.download_url(key, filename, expire=expire)
        return self._storage.url(key)

    def keys(self) -> list[str]:
        """List top-level keys.

        Returns:
            Sorted list of keys.
        """
        _, files = self._storage.listdir('')
        return sorted(files)
