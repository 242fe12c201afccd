"""Management command to check records and blobs against each other."""

import logging
from typing import Any

from django.core.files.storage import default_storage
from django.core.management.base import BaseCommand

from server.apps.files.infrastructure.blob_store import DjangoStorageBlobStore
from server.apps.files.infrastructure.metadata import STORAGE_KEY_PREFIX
from server.apps.files.infrastructure.metadata_store import DjangoMetadataStore

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Report dangling records and orphaned blobs.

    A dangling record points at a missing blob. An orphaned blob is
    left behind when an upload wrote the blob but failed to create
    the record. Orphans are only deleted with --delete-orphans.
    """

    help = 'Report records without blobs and blobs without records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--delete-orphans',
            action='store_true',
            help='Delete blobs no record refers to',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the audit.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        delete_orphans = options['delete_orphans']
        dry_run = options['dry_run']

        blob_store = DjangoStorageBlobStore(default_storage)
        known_keys = DjangoMetadataStore().storage_keys()

        dangling = sorted(
            key for key in known_keys if not blob_store.exists(key)
        )
        for key in dangling:
            self.stdout.write(f'Dangling record (blob missing): {key}')
            logger.warning('Dangling record, blob missing: %s', key)

        orphans = [
            key
            for key in blob_store.keys()
            if key.startswith(STORAGE_KEY_PREFIX) and key not in known_keys
        ]

        deleted = 0
        failed = 0
        for key in orphans:
            if not delete_orphans or dry_run:
                self.stdout.write(f'Orphaned blob (no record): {key}')
                continue

            try:
                blob_store.delete(key)
                deleted += 1
                logger.info('Deleted orphaned blob: %s', key)
            except Exception as exc:
                self.stderr.write(f'Failed to delete {key}: {exc}')
                logger.exception('Failed to delete orphaned blob: %s', key)
                failed += 1

        summary = (
            f'{len(dangling)} dangling records, {len(orphans)} orphaned blobs'
        )
        if delete_orphans and not dry_run:
            summary = f'{summary}, deleted {deleted}, {failed} failed'
        self.stdout.write(self.style.SUCCESS(summary))
