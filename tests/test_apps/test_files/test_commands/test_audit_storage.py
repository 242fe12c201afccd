"""Tests for audit_storage management command."""

from io import StringIO

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.management import call_command

from server.apps.files.models import File


def _run(*args):
    out = StringIO()
    call_command('audit_storage', *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestAuditStorageCommand:
    """Tests for audit_storage management command."""

    def test_consistent_store(self, user, s3_manager):
        """Test nothing is reported when records and blobs match."""
        s3_manager.upload(user.id, ContentFile(b'data'), 'ok.txt')

        output = _run()

        assert '0 dangling records, 0 orphaned blobs' in output

    def test_reports_dangling_record(self, user, mock_s3):
        """Test records whose blob is missing are reported."""
        File.objects.create(
            owner=user,
            display_name='ghost.txt',
            storage_key=f'user-{user.id}-1-abcd-ghost.txt',
            mime_type='text/plain',
            size_bytes=5,
        )

        output = _run()

        assert 'Dangling record (blob missing)' in output
        assert '1 dangling records' in output

    def test_reports_orphan_without_deleting(self, mock_s3):
        """Test orphaned blobs are only reported by default."""
        default_storage.save('user-9-1-abcd-orphan.txt', ContentFile(b'x'))

        output = _run()

        assert 'Orphaned blob (no record): user-9-1-abcd-orphan.txt' in output
        assert default_storage.exists('user-9-1-abcd-orphan.txt')

    def test_ignores_foreign_keys(self, mock_s3):
        """Test blobs outside the user- namespace are left alone."""
        default_storage.save('static-banner.png', ContentFile(b'x'))

        output = _run('--delete-orphans')

        assert '0 orphaned blobs' in output
        assert default_storage.exists('static-banner.png')

    def test_delete_orphans(self, mock_s3):
        """Test --delete-orphans removes orphaned blobs."""
        default_storage.save('user-9-1-abcd-orphan.txt', ContentFile(b'x'))

        output = _run('--delete-orphans')

        assert 'deleted 1, 0 failed' in output
        assert not default_storage.exists('user-9-1-abcd-orphan.txt')

    def test_delete_orphans_dry_run(self, mock_s3):
        """Test --dry-run keeps orphaned blobs."""
        default_storage.save('user-9-1-abcd-orphan.txt', ContentFile(b'x'))

        output = _run('--delete-orphans', '--dry-run')

        assert 'Orphaned blob (no record)' in output
        assert default_storage.exists('user-9-1-abcd-orphan.txt')
