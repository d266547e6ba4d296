"""Domain errors for preset versioning.

Every outcome a caller can observe has its own class. The HTTP layer maps
``code`` to a status; nothing here knows about transports.
"""

from __future__ import annotations

from typing import Any


class PresetError(Exception):
    """Base exception for preset operations."""

    code = "preset_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class PresetValidationError(PresetError):
    """Malformed structural input."""

    code = "validation_error"


class NotFoundError(PresetError):
    """A referenced row does not exist."""

    code = "not_found"


class PresetNotFoundError(NotFoundError):
    code = "preset_not_found"


class FormNotFoundError(NotFoundError):
    code = "form_not_found"


class RevisionNotFoundError(NotFoundError):
    """No archived payload exists at the requested version."""

    code = "revision_not_found"


class TenantMismatchError(PresetError):
    """The row exists but belongs to another tenant."""

    code = "tenant_mismatch"

    def __init__(self, message: str, resource: str, details: dict[str, Any] | None = None):
        self.resource = resource
        super().__init__(message, details)


class InvalidVersionError(PresetError):
    """Rollback target equals the current version."""

    code = "invalid_version"


class PresetConflictError(PresetError):
    """A concurrent writer already claimed the archival slot."""

    code = "conflict"


class InvalidImportError(PresetValidationError):
    code = "invalid_import"


class ImportTooLargeError(PresetValidationError):
    code = "import_too_large"


class ImportRevisionLimitError(PresetValidationError):
    code = "import_revision_limit"


class UnauthorizedError(PresetError):
    """Missing or invalid caller identity."""

    code = "unauthorized"
