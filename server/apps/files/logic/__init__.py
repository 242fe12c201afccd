"""Business logic layer for files app.

This package contains all business logic for file operations:
- Access decisions (owner / public visibility)
- File upload, listing, rename, sharing, download, delete

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
