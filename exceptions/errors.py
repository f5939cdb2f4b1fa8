"""
Custom exception classes for the application.

Every per-file failure in the upload pipeline is raised as one of these and
converted into an AttachmentResult at the engine boundary; the `message`
attribute is what the user sees in the report.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None,
        message: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=message or f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# TRANSPORT ERRORS
# ===================

class UploadTransportError(ValidationError):
    """The transport layer reported a failed upload for this file."""

    def __init__(self, reason: str, error_code: int):
        super().__init__(
            code="UPLOAD_TRANSPORT_ERROR",
            message=reason,
            details={"upload_error": error_code}
        )


# ===================
# FILE VALIDATION ERRORS
# ===================

class InvalidFilenameError(ValidationError):
    """Filename is structurally invalid."""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            code="INVALID_FILENAME",
            message=f"Invalid filename: {reason}",
            details={"filename": filename}
        )


class InvalidSKUError(ValidationError):
    """SKU derived from a filename is not usable."""

    def __init__(self, sku: str, reason: str):
        super().__init__(
            code="INVALID_SKU",
            message=f"Invalid SKU: {reason}",
            details={"sku": sku}
        )


class UnreadableFileError(ValidationError):
    """Uploaded content could not be read."""

    def __init__(self, filename: str):
        super().__init__(
            code="UNREADABLE_FILE",
            message="Cannot read uploaded file",
            details={"filename": filename}
        )


class FileTooLargeError(ValidationError):
    """Upload exceeds the configured maximum size."""

    def __init__(self, size: str, max_size: str):
        super().__init__(
            code="FILE_TOO_LARGE",
            message=f"File too large ({size}). Maximum size is {max_size}",
            details={"size": size, "max_size": max_size}
        )


class EmptyFileError(ValidationError):
    """Upload has no content."""

    def __init__(self, filename: str):
        super().__init__(
            code="EMPTY_FILE",
            message="File is empty",
            details={"filename": filename}
        )


class InvalidFileTypeError(ValidationError):
    """File type unknown or not an allowed image type."""

    def __init__(self, filename: str, allowed: Optional[list[str]] = None):
        if allowed:
            message = f"File type not allowed. Allowed types: {', '.join(allowed)}"
        else:
            message = "Invalid or unknown file type"
        super().__init__(
            code="INVALID_FILE_TYPE",
            message=message,
            details={"filename": filename, "allowed": allowed or []}
        )


class CorruptImageError(ValidationError):
    """Image header could not be decoded."""

    def __init__(self, reason: str = ""):
        super().__init__(
            code="CORRUPT_IMAGE",
            message="Corrupted or invalid image",
            details={"reason": reason} if reason else None
        )


class ImageTooSmallError(ValidationError):
    """Image is below the minimum pixel dimensions."""

    def __init__(self, width: int, height: int, min_width: int, min_height: int):
        super().__init__(
            code="IMAGE_TOO_SMALL",
            message=(
                f"Image too small ({width}x{height}). "
                f"Minimum size is {min_width}x{min_height}"
            ),
            details={
                "width": width,
                "height": height,
                "min_width": min_width,
                "min_height": min_height,
            }
        )


# ===================
# NOT FOUND ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """No product carries the given SKU."""

    def __init__(self, sku: str):
        super().__init__(
            resource="Product",
            identifier=sku,
            code="PRODUCT_NOT_FOUND",
            message=f"No product found with SKU: {sku}"
        )


class UploadSessionNotFoundError(NotFoundError):
    """Staging session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Upload session",
            identifier=session_id,
            code="UPLOAD_SESSION_NOT_FOUND",
            message="Upload session not found or expired"
        )


class StagedItemNotFoundError(NotFoundError):
    """Index does not refer to an item staged in this session."""

    def __init__(self, index: int, stage: str):
        super().__init__(
            resource="Staged item",
            identifier=str(index),
            code="STAGED_ITEM_NOT_FOUND",
            message=f"No pending {stage} for file #{index}"
        )


# ===================
# CONFLICT ERRORS
# ===================

class GalleryDuplicateError(ConflictError):
    """Attachment already present in the product gallery."""

    def __init__(self, attachment_id: str, product_id: str):
        super().__init__(
            code="GALLERY_DUPLICATE",
            message="Image is already in the product gallery",
            details={"attachment_id": attachment_id, "product_id": product_id}
        )


class PendingRenamesError(ConflictError):
    """Conflicts cannot be resolved while renames are still pending."""

    def __init__(self, session_id: str, pending: int):
        super().__init__(
            code="PENDING_RENAMES",
            message=f"Resolve {pending} pending rename(s) before conflicts",
            details={"session_id": session_id, "pending_renames": pending}
        )


# ===================
# COLLABORATOR ERRORS
# ===================

class ObjectStoreError(ExternalServiceError):
    """Object storage rejected a write or delete."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="storage",
            message=message,
            details=details
        )


class CatalogError(DatabaseError):
    """Catalog rejected an attachment or reference update."""

    def __init__(self, operation: str, message: str, details: Optional[dict] = None):
        super().__init__(operation, message, details)
        # Surface the underlying message verbatim in per-file results
        self.message = message
