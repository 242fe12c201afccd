"""Database models for files app."""

import uuid
from typing import ClassVar, Final, final

from typing_extensions import override

from django.conf import settings
from django.core.validators import MinLengthValidator
from django.db import models

# Bounds every display name must respect, on upload, rename and in admin
MIN_DISPLAY_NAME_LENGTH: Final = 3
MAX_DISPLAY_NAME_LENGTH: Final = 255

# Constants for field max lengths
_STORAGE_KEY_MAX_LENGTH: Final = 512
_MIME_TYPE_MAX_LENGTH: Final = 255


@final
class File(models.Model):
    """Metadata record describing one uploaded file.

    The bytes live in the blob store under ``storage_key``; the record
    and the blob are created together and destroyed together.

    ``owner``, ``storage_key``, ``mime_type`` and ``size_bytes`` never
    change after creation. ``display_name`` changes on rename and
    ``is_public`` on a visibility toggle.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # Users with files cannot be removed behind the blob store's back
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='files',
        db_index=True,
        editable=False,
    )

    display_name = models.CharField(
        max_length=MAX_DISPLAY_NAME_LENGTH,
        validators=[MinLengthValidator(MIN_DISPLAY_NAME_LENGTH)],
        help_text='User-visible file name',
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        editable=False,
        help_text='Blob store key: user-{owner_id}-{millis}-{token}-{name}',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        editable=False,
    )

    size_bytes = models.BigIntegerField(
        editable=False,
        help_text='File size in bytes',
    )

    is_public = models.BooleanField(
        default=False,
        help_text='Public files are visible to every authenticated user',
    )

    # Timestamps
    uploaded_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-uploaded_at']

        indexes: ClassVar[list[models.Index]] = [
            # Owner's recent files
            models.Index(
                fields=['owner', '-uploaded_at'],
                name='files_owner_recent_idx',
            ),
            # Public recent files
            models.Index(
                fields=['is_public', '-uploaded_at'],
                name='files_public_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.display_name}'
