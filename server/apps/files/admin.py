"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.infrastructure.metadata import classify_mime_type
from server.apps.files.models import File


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model.

    Records are created and deleted only through the lifecycle manager,
    which keeps blobs in step; the admin can edit name and visibility.
    """

    list_display = [
        'display_name',
        'owner',
        'category_display',
        'size_display',
        'is_public',
        'uploaded_at',
    ]

    list_filter = [
        'is_public',
        'mime_type',
        'uploaded_at',
    ]

    search_fields = [
        'display_name',
        'storage_key',
    ]

    readonly_fields = [
        'id',
        'owner',
        'storage_key',
        'mime_type',
        'size_bytes',
        'uploaded_at',
        'modified_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('id', 'display_name', 'owner', 'is_public'),
        }),
        ('Storage', {
            'fields': ('storage_key', 'mime_type', 'size_bytes'),
        }),
        ('Timestamps', {
            'fields': ('uploaded_at', 'modified_at'),
        }),
    )

    def category_display(self, obj: File) -> str:
        """Display the category derived from the MIME type.

        Args:
            obj: File instance.

        Returns:
            Category name (e.g., 'image', 'pdf').
        """
        return classify_mime_type(obj.mime_type).value
    category_display.short_description = 'Category'  # type: ignore[attr-defined]

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string (e.g., '1.5 MB', '234 KB').
        """
        size_bytes = obj.size_bytes

        # Convert to appropriate unit
        if size_bytes < 1024:
            return f'{size_bytes} B'
        if size_bytes < 1024 * 1024:  # noqa: WPS531
            return f'{size_bytes / 1024:.1f} KB'
        if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
            return f'{size_bytes / (1024 * 1024):.1f} MB'
        return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner')

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Uploads go through the lifecycle manager only."""
        return False

    def has_delete_permission(
        self,
        request: HttpRequest,
        obj: File | None = None,
    ) -> bool:
        """Deleting here would leave the blob behind."""
        return False
