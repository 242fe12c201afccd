"""Tests for file operations business logic."""

from datetime import timedelta
from io import BytesIO
from urllib.parse import parse_qs, urlparse

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone

from server.apps.files.exceptions import (
    FileAccessForbiddenError,
    FileRecordNotFoundError,
    InvalidFileInputError,
    StorageFailureError,
)
from server.apps.files.logic.access_control import (
    VisibilityLabel,
    visibility_label,
)
from server.apps.files.logic.file_operations import FileListFilter
from server.apps.files.models import File


def _upload(manager, owner, name='test.txt', content=b'content', **kwargs):
    return manager.upload(owner.id, ContentFile(content), name, **kwargs)


# Upload


@pytest.mark.django_db
def test_upload_file_success(user, s3_manager, sample_file_content):
    """Test successful file upload (S3 + DB)."""
    record = s3_manager.upload(user.id, sample_file_content, 'test.txt')

    assert record.id is not None
    assert record.owner_id == user.id
    assert record.display_name == 'test.txt'
    assert record.mime_type == 'text/plain'
    assert record.size_bytes == len(b'test file content')
    assert record.is_public is False
    assert record.storage_key.startswith(f'user-{user.id}-')
    assert File.objects.filter(id=record.id).exists()


@pytest.mark.django_db
def test_upload_then_download_round_trip(user, s3_manager):
    """Test downloaded bytes equal uploaded bytes."""
    payload = bytes(range(256)) * 64
    record = s3_manager.upload(
        user.id,
        BytesIO(payload),
        'blob.bin',
        mime_type='application/octet-stream',
    )

    download = s3_manager.download(user.id, record.id)
    try:
        assert download.stream.read() == payload
    finally:
        download.stream.close()


@pytest.mark.django_db
def test_upload_keeps_explicit_mime_type(user, manager):
    """Test client-supplied MIME type wins over detection."""
    record = _upload(manager, user, 'notes.txt', mime_type='text/markdown')

    assert record.mime_type == 'text/markdown'


@pytest.mark.django_db
def test_upload_trims_display_name(user, manager):
    """Test display name is the trimmed original name."""
    record = _upload(manager, user, '  report.pdf  ')

    assert record.display_name == 'report.pdf'


@pytest.mark.django_db
def test_upload_empty_content_rejected(user, manager, blob_store):
    """Test empty uploads are invalid and store nothing."""
    with pytest.raises(InvalidFileInputError):
        manager.upload(user.id, ContentFile(b''), 'empty.txt')

    assert File.objects.count() == 0
    assert blob_store.blobs == {}


@pytest.mark.django_db
def test_upload_missing_name_rejected(user, manager):
    """Test uploads need a file name."""
    with pytest.raises(InvalidFileInputError):
        manager.upload(user.id, ContentFile(b'data'), '   ')


@pytest.mark.django_db
@pytest.mark.parametrize('name', ['ab', ' ab ', 'x' * 256])
def test_upload_name_length_rejected(user, manager, blob_store, name):
    """Test upload names outside 3..255 characters store nothing."""
    with pytest.raises(InvalidFileInputError):
        manager.upload(user.id, ContentFile(b'data'), name)

    assert File.objects.count() == 0
    assert blob_store.blobs == {}


@pytest.mark.django_db
def test_upload_name_length_bounds_inclusive(user, manager):
    """Test names of exactly 3 and 255 characters are accepted."""
    short = manager.upload(user.id, ContentFile(b'data'), 'abc')
    longest = manager.upload(user.id, ContentFile(b'data'), 'y' * 255)

    assert short.display_name == 'abc'
    assert len(longest.display_name) == 255


@pytest.mark.django_db
def test_upload_blob_failure_creates_no_record(user, manager, blob_store):
    """Test failed blob write leaves no record."""
    blob_store.fail_put = True

    with pytest.raises(StorageFailureError):
        _upload(manager, user)

    assert File.objects.count() == 0


@pytest.mark.django_db
def test_upload_record_failure_rolls_back_blob(
    user,
    manager,
    blob_store,
    metadata_store,
    monkeypatch,
):
    """Test record failure after blob write removes the blob again."""
    def _failing_create(**kwargs):
        raise StorageFailureError('Metadata store failure')

    monkeypatch.setattr(metadata_store, 'create', _failing_create)

    with pytest.raises(StorageFailureError):
        _upload(manager, user)

    assert blob_store.blobs == {}


@pytest.mark.django_db
def test_upload_record_failure_with_failed_rollback_logged(
    user,
    manager,
    blob_store,
    metadata_store,
    monkeypatch,
    caplog,
):
    """Test an orphaned blob is logged when rollback fails too."""
    def _failing_create(**kwargs):
        raise StorageFailureError('Metadata store failure')

    monkeypatch.setattr(metadata_store, 'create', _failing_create)
    blob_store.fail_delete = True

    with pytest.raises(StorageFailureError):
        _upload(manager, user)

    assert len(blob_store.blobs) == 1
    assert 'orphaned blob' in caplog.text


@pytest.mark.django_db
def test_storage_keys_unique(user, manager):
    """Test no two records share a storage key."""
    for _ in range(20):
        _upload(manager, user, 'same name.txt')

    keys = list(File.objects.values_list('storage_key', flat=True))
    assert len(keys) == 20
    assert len(set(keys)) == 20


# Listing


@pytest.mark.django_db
def test_list_files_visibility(user, other_user, manager):
    """Test listing includes own and public files only."""
    own_private = _upload(manager, user, 'mine.txt')
    other_public = _upload(manager, other_user, 'shared.txt', is_public=True)
    _upload(manager, other_user, 'secret.txt')

    listed = manager.list_files(user.id)

    assert {record.id for record in listed} == {own_private.id, other_public.id}


@pytest.mark.django_db
def test_list_files_newest_first(user, manager):
    """Test listing is ordered by upload time descending."""
    older = _upload(manager, user, 'older.txt')
    newer = _upload(manager, user, 'newer.txt')
    now = timezone.now()
    File.objects.filter(id=older.id).update(uploaded_at=now - timedelta(days=1))
    File.objects.filter(id=newer.id).update(uploaded_at=now)

    listed = manager.list_files(user.id)

    assert [record.id for record in listed] == [newer.id, older.id]


@pytest.mark.django_db
def test_list_files_filters(user, other_user, manager):
    """Test narrowing filters on the visible set."""
    own_image = _upload(manager, user, 'photo.png')
    own_public_pdf = _upload(manager, user, 'paper.pdf', is_public=True)
    other_public_doc = _upload(
        manager,
        other_user,
        'notes.txt',
        is_public=True,
    )
    _upload(manager, other_user, 'hidden.png')

    def _ids(list_filter):
        return {
            record.id
            for record in manager.list_files(user.id, list_filter)
        }

    assert _ids(FileListFilter.PUBLIC) == {own_public_pdf.id, other_public_doc.id}
    assert _ids(FileListFilter.PRIVATE) == {own_image.id}
    assert _ids(FileListFilter.IMAGE) == {own_image.id}
    assert _ids(FileListFilter.DOCUMENT) == {
        own_public_pdf.id,
        other_public_doc.id,
    }


# Rename


@pytest.mark.django_db
def test_rename_success(user, manager):
    """Test owner rename stores the trimmed name."""
    record = _upload(manager, user)

    renamed = manager.rename(user.id, record.id, '  Report Final  ')

    assert renamed.display_name == 'Report Final'
    record.refresh_from_db()
    assert record.display_name == 'Report Final'


@pytest.mark.django_db
def test_rename_three_characters_accepted(user, manager):
    """Test the minimum name length is inclusive."""
    record = _upload(manager, user)

    assert manager.rename(user.id, record.id, 'abc').display_name == 'abc'


@pytest.mark.django_db
@pytest.mark.parametrize('new_name', ['Re', '', '   ', ' ab '])
def test_rename_too_short_rejected(user, manager, new_name):
    """Test short names are rejected and the old name kept."""
    record = _upload(manager, user, 'original.txt')

    with pytest.raises(InvalidFileInputError):
        manager.rename(user.id, record.id, new_name)

    record.refresh_from_db()
    assert record.display_name == 'original.txt'


@pytest.mark.django_db
def test_rename_too_long_rejected(user, manager, metadata_store, monkeypatch):
    """Test names over the column length are invalid input, not a DB error."""
    record = _upload(manager, user, 'original.txt')
    calls = []
    monkeypatch.setattr(
        metadata_store,
        'update_display_name',
        lambda *args: calls.append(args),
    )

    with pytest.raises(InvalidFileInputError):
        manager.rename(user.id, record.id, 'z' * 256)

    assert calls == []
    record.refresh_from_db()
    assert record.display_name == 'original.txt'


@pytest.mark.django_db
def test_rename_by_non_owner_forbidden(user, other_user, manager):
    """Test public files still cannot be renamed by others."""
    record = _upload(manager, user, is_public=True)

    with pytest.raises(FileAccessForbiddenError):
        manager.rename(other_user.id, record.id, 'Hijacked')


@pytest.mark.django_db
def test_rename_missing_file(user, manager):
    """Test renaming an unknown id."""
    with pytest.raises(FileRecordNotFoundError):
        manager.rename(user.id, 'not-a-uuid', 'Whatever')


@pytest.mark.django_db
def test_rename_racing_delete_not_found(
    user,
    manager,
    metadata_store,
    monkeypatch,
):
    """Test a rename losing a race with delete reports NotFound."""
    record = _upload(manager, user)
    monkeypatch.setattr(
        metadata_store,
        'update_display_name',
        lambda file_id, display_name: None,
    )

    with pytest.raises(FileRecordNotFoundError):
        manager.rename(user.id, record.id, 'Too Late')


# Visibility


@pytest.mark.django_db
def test_set_visibility_by_owner(user, other_user, manager):
    """Test sharing makes the file visible to others."""
    record = _upload(manager, user)

    updated = manager.set_visibility(user.id, record.id, is_public=True)

    assert updated.is_public is True
    assert record.id in {r.id for r in manager.list_files(other_user.id)}


@pytest.mark.django_db
def test_set_visibility_by_non_owner_forbidden(user, other_user, manager):
    """Test only owners toggle visibility."""
    record = _upload(manager, user, is_public=True)

    with pytest.raises(FileAccessForbiddenError):
        manager.set_visibility(other_user.id, record.id, is_public=False)

    record.refresh_from_db()
    assert record.is_public is True


# Download


@pytest.mark.django_db
def test_download_uses_current_name(user, manager):
    """Test downloads are attributed to the name after rename."""
    record = _upload(manager, user, 'draft.txt', content=b'hello')
    manager.rename(user.id, record.id, 'final.txt')

    download = manager.download(user.id, record.id)

    assert download.display_name == 'final.txt'
    assert download.mime_type == 'text/plain'
    assert download.size_bytes == 5
    assert download.stream.read() == b'hello'


@pytest.mark.django_db
def test_download_private_by_other_forbidden(user, other_user, manager):
    """Test private files cannot be downloaded by others."""
    record = _upload(manager, user)

    with pytest.raises(FileAccessForbiddenError):
        manager.download(other_user.id, record.id)


@pytest.mark.django_db
def test_download_public_by_other(user, other_user, manager):
    """Test public files can be downloaded by anyone."""
    record = _upload(manager, user, content=b'shared', is_public=True)

    assert manager.download(other_user.id, record.id).stream.read() == b'shared'


@pytest.mark.django_db
def test_download_missing_file(user, manager):
    """Test downloading an unknown id."""
    with pytest.raises(FileRecordNotFoundError):
        manager.download(user.id, '00000000-0000-0000-0000-000000000000')


@pytest.mark.django_db
def test_download_missing_blob_is_storage_failure(user, manager, blob_store):
    """Test a record without blob is reported as a storage failure."""
    record = _upload(manager, user)
    blob_store.blobs.clear()

    with pytest.raises(StorageFailureError):
        manager.download(user.id, record.id)


@pytest.mark.django_db
def test_download_aborted_stream_has_no_side_effects(user, manager):
    """Test closing a stream mid-read leaves record and blob intact."""
    record = _upload(manager, user, content=b'0123456789')
    first = manager.download(user.id, record.id)
    first.stream.read(3)
    first.stream.close()

    second = manager.download(user.id, record.id)

    assert second.stream.read() == b'0123456789'


@pytest.mark.django_db
def test_download_url_presigned(user, s3_manager):
    """Test presigned URL names the current display name."""
    record = s3_manager.upload(user.id, ContentFile(b'pdf'), 'draft.pdf')
    s3_manager.rename(user.id, record.id, 'Report Final.pdf')

    url = s3_manager.download_url(user.id, record.id, expires_in=60)

    query = parse_qs(urlparse(url).query)
    assert record.storage_key in url
    assert query['response-content-disposition'] == [
        'attachment; filename="Report Final.pdf"',
    ]


@pytest.mark.django_db
def test_download_url_default_expiry(user, manager, settings):
    """Test the configured expiry is used by default."""
    settings.FILES_DOWNLOAD_URL_EXPIRE = 123
    record = _upload(manager, user)

    assert manager.download_url(user.id, record.id).endswith('expire=123')


@pytest.mark.django_db
def test_download_url_private_by_other_forbidden(user, other_user, manager):
    """Test URLs follow download access rules."""
    record = _upload(manager, user)

    with pytest.raises(FileAccessForbiddenError):
        manager.download_url(other_user.id, record.id)


# Delete


@pytest.mark.django_db
def test_delete_removes_blob_and_record(user, s3_manager):
    """Test delete removes both sides."""
    record = s3_manager.upload(user.id, ContentFile(b'bye'), 'bye.txt')
    storage_key = record.storage_key

    s3_manager.delete(user.id, record.id)

    assert not File.objects.filter(id=record.id).exists()
    assert not default_storage.exists(storage_key)


@pytest.mark.django_db
def test_delete_twice_not_found(user, manager):
    """Test second delete of the same id reports NotFound."""
    record = _upload(manager, user)

    manager.delete(user.id, record.id)

    with pytest.raises(FileRecordNotFoundError):
        manager.delete(user.id, record.id)


@pytest.mark.django_db
def test_delete_by_non_owner_forbidden(user, other_user, manager, blob_store):
    """Test public files cannot be deleted by others."""
    record = _upload(manager, user, is_public=True)

    with pytest.raises(FileAccessForbiddenError):
        manager.delete(other_user.id, record.id)

    assert File.objects.filter(id=record.id).exists()
    assert blob_store.exists(record.storage_key)


@pytest.mark.django_db
def test_delete_blob_failure_keeps_record(user, manager, blob_store):
    """Test failed blob delete aborts and preserves the record."""
    record = _upload(manager, user)
    blob_store.fail_delete = True

    with pytest.raises(StorageFailureError):
        manager.delete(user.id, record.id)

    assert File.objects.filter(id=record.id).exists()
    assert blob_store.exists(record.storage_key)


@pytest.mark.django_db
def test_operations_after_delete_not_found(user, manager):
    """Test deleted records are terminal."""
    record = _upload(manager, user)
    manager.delete(user.id, record.id)

    with pytest.raises(FileRecordNotFoundError):
        manager.download(user.id, record.id)
    with pytest.raises(FileRecordNotFoundError):
        manager.rename(user.id, record.id, 'Revived')
    with pytest.raises(FileRecordNotFoundError):
        manager.set_visibility(user.id, record.id, is_public=True)


# Scenarios


@pytest.mark.django_db
def test_sharing_scenario(user, other_user, manager):
    """Test private file hidden, shared file visible, owner-only delete."""
    owner, viewer = user, other_user
    record = _upload(manager, owner, 'F1.txt')

    assert record.id not in {r.id for r in manager.list_files(viewer.id)}

    manager.set_visibility(owner.id, record.id, is_public=True)
    listed = {r.id: r for r in manager.list_files(viewer.id)}
    assert record.id in listed
    assert visibility_label(viewer.id, listed[record.id]) == (
        VisibilityLabel.SHARED_BY_OTHER
    )

    with pytest.raises(FileAccessForbiddenError):
        manager.delete(viewer.id, record.id)

    manager.delete(owner.id, record.id)

    for requester in (owner, viewer):
        with pytest.raises(FileRecordNotFoundError):
            manager.download(requester.id, record.id)


@pytest.mark.django_db
def test_rename_scenario(user, manager):
    """Test a valid rename followed by a rejected one."""
    record = _upload(manager, user, 'F2.txt')

    assert manager.rename(user.id, record.id, 'Report Final').display_name == (
        'Report Final'
    )

    with pytest.raises(InvalidFileInputError):
        manager.rename(user.id, record.id, 'Re')

    record.refresh_from_db()
    assert record.display_name == 'Report Final'
