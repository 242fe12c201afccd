"""Shared fixtures for files app tests."""

from io import BytesIO
from typing import BinaryIO

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from server.apps.files.exceptions import BlobNotFoundError
from server.apps.files.infrastructure.metadata_store import DjangoMetadataStore
from server.apps.files.logic.file_operations import (
    FileLifecycleManager,
    get_file_manager,
)

User = get_user_model()


class InMemoryBlobStore:
    """BlobStore fake keeping blobs in a dict, with failure switches."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.fail_put = False
        self.fail_delete = False

    def put(self, key: str, content: BinaryIO) -> None:
        if self.fail_put:
            raise OSError('blob store unavailable')
        content.seek(0)
        self.blobs[key] = content.read()

    def open(self, key: str) -> BinaryIO:
        if key not in self.blobs:
            raise BlobNotFoundError(key)
        return BytesIO(self.blobs[key])

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise OSError('blob store unavailable')
        self.blobs.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self.blobs

    def url(self, key: str, filename: str, expire: int | None = None) -> str:
        return f'memory://{key}?filename={filename}&expire={expire}'

    def keys(self) -> list[str]:
        return sorted(self.blobs)


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with file-share bucket.

    Yields:
        boto3 S3 resource with file-share bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket='file-share')

        yield conn


@pytest.fixture
def s3_manager(mock_s3) -> FileLifecycleManager:
    """Manager over the configured S3 storage (mocked).

    Returns:
        FileLifecycleManager using default storage and the ORM.
    """
    return get_file_manager()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    """In-memory blob store with failure switches.

    Returns:
        InMemoryBlobStore instance.
    """
    return InMemoryBlobStore()


@pytest.fixture
def metadata_store() -> DjangoMetadataStore:
    """ORM-backed metadata store.

    Returns:
        DjangoMetadataStore instance.
    """
    return DjangoMetadataStore()


@pytest.fixture
def manager(blob_store, metadata_store) -> FileLifecycleManager:
    """Manager over the in-memory blob store and the ORM.

    Returns:
        FileLifecycleManager instance.
    """
    return FileLifecycleManager(blob_store, metadata_store)


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')
