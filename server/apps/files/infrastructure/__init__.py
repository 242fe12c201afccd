"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Blob store over Django storages (S3/MinIO or local disk)
- Metadata store over the Django ORM
- Credential verification
- Metadata extraction (MIME type, storage keys)

Keep infrastructure concerns separate from business logic.
"""
