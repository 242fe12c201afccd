"""Metadata store: durable FileRecord persistence."""

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar, final

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from server.apps.files.exceptions import StorageFailureError
from server.apps.files.models import File

logger = logging.getLogger(__name__)

_ResultT = TypeVar('_ResultT')


class MetadataStore(Protocol):
    """Record-level persistence used by the file lifecycle manager."""

    def create(  # noqa: WPS211
        self,
        *,
        owner_id: object,
        display_name: str,
        storage_key: str,
        mime_type: str,
        size_bytes: int,
        is_public: bool,
    ) -> File:
        """Create and return a new record."""

    def get(self, file_id: object) -> File | None:
        """Load a record, None when it does not exist."""

    def list_visible_to(self, requester_id: object) -> list[File]:
        """Records owned by the requester or public, newest first."""

    def update_display_name(self, file_id: object, display_name: str) -> File | None:
        """Rename a record, None when it no longer exists."""

    def update_visibility(self, file_id: object, is_public: bool) -> File | None:
        """Set visibility of a record, None when it no longer exists."""

    def delete(self, file_id: object) -> bool:
        """Delete a record, False when it was already gone."""

    def storage_keys(self) -> set[str]:
        """Every storage key referenced by a record."""


@final
class DjangoMetadataStore:
    """MetadataStore backed by the Django ORM.

    Every update and delete is a single conditional statement, so two
    requests racing on one record resolve to one consistent winner.
    Database errors are logged and re-raised as StorageFailureError.
    """

    def create(  # noqa: WPS211
        self,
        *,
        owner_id: object,
        display_name: str,
        storage_key: str,
        mime_type: str,
        size_bytes: int,
        is_public: bool,
    ) -> File:
        """Create a record.

        Args:
            owner_id: Id of the uploading user.
            display_name: Initial user-visible name.
            storage_key: Blob store key holding the bytes.
            mime_type: MIME type recorded at upload.
            size_bytes: Size of the stored blob.
            is_public: Initial visibility.

        Returns:
            Created File instance.
        """
        def _create() -> File:
            with transaction.atomic():
                return File.objects.create(
                    owner_id=owner_id,
                    display_name=display_name,
                    storage_key=storage_key,
                    mime_type=mime_type,
                    size_bytes=size_bytes,
                    is_public=is_public,
                )

        return _guarded(
            _create,
            'Metadata store failed to create record: %s',
            storage_key,
        )

    def get(self, file_id: object) -> File | None:
        """Load a record by id.

        Args:
            file_id: Record id; malformed ids resolve to None.

        Returns:
            File instance or None.
        """
        try:
            return _guarded(
                lambda: File.objects.select_related('owner').filter(
                    id=file_id,
                ).first(),
                'Metadata store failed to load record: %s',
                file_id,
            )
        except (ValidationError, ValueError):
            return None

    def list_visible_to(self, requester_id: object) -> list[File]:
        """List records visible to a requester.

        Args:
            requester_id: Id of the requesting user.

        Returns:
            Records owned by the requester or public, newest first.
        """
        return _guarded(
            lambda: list(_visible_records(requester_id)),
            'Metadata store failed to list records for user: %s',
            requester_id,
        )

    def update_display_name(
        self,
        file_id: object,
        display_name: str,
    ) -> File | None:
        """Rename a record in place.

        Args:
            file_id: Record id.
            display_name: New name, already validated.

        Returns:
            Updated File instance, None if the record is gone.
        """
        return self._update(file_id, display_name=display_name)

    def update_visibility(self, file_id: object, is_public: bool) -> File | None:
        """Change the visibility of a record.

        Args:
            file_id: Record id.
            is_public: New visibility.

        Returns:
            Updated File instance, None if the record is gone.
        """
        return self._update(file_id, is_public=is_public)

    def delete(self, file_id: object) -> bool:
        """Delete a record.

        Args:
            file_id: Record id.

        Returns:
            True if a row was deleted, False if it was already gone.
        """
        def _delete() -> bool:
            with transaction.atomic():
                deleted, _ = File.objects.filter(id=file_id).delete()
            return deleted > 0

        return _guarded(
            _delete,
            'Metadata store failed to delete record: %s',
            file_id,
        )

    def storage_keys(self) -> set[str]:
        """Collect every referenced storage key.

        Returns:
            Set of storage keys.
        """
        return _guarded(
            lambda: set(File.objects.values_list('storage_key', flat=True)),
            'Metadata store failed to collect storage keys',
        )

    def _update(self, file_id: object, **fields: object) -> File | None:
        def _apply() -> File | None:
            with transaction.atomic():
                updated = File.objects.filter(id=file_id).update(
                    modified_at=timezone.now(),
                    **fields,
                )
            if not updated:
                return None
            return File.objects.select_related('owner').filter(
                id=file_id,
            ).first()

        return _guarded(
            _apply,
            'Metadata store failed to update record: %s',
            file_id,
        )


def _visible_records(requester_id: object) -> QuerySet[File]:
    return File.objects.filter(
        Q(owner_id=requester_id) | Q(is_public=True),
    ).select_related('owner').order_by('-uploaded_at')


def _guarded(
    operation: Callable[[], _ResultT],
    message: str,
    *args: object,
) -> _ResultT:
    try:
        return operation()
    except DatabaseError as error:
        logger.exception(message, *args)
        raise StorageFailureError('Metadata store failure') from error
