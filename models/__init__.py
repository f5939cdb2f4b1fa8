"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.product import (
    ProductDisplay,
    AttachmentRecord,
    StoredObject,
    ImageDimensions,
    GalleryImageIds,
)
from models.upload import (
    UploadErrorCode,
    describe_upload_error,
    AttachmentStatus,
    ConflictChoice,
    UploadItem,
    BatchOptions,
    DerivedSku,
    SkuResolution,
    AttachmentResult,
    PendingRename,
    PendingConflict,
    UndoRecord,
    BatchSummary,
    BatchResponse,
    RenameRequest,
    ConflictDecision,
    ResolutionResponse,
    UndoRequest,
    UndoResponse,
    ReportRequest,
    UploadConfigResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Catalog
    "ProductDisplay",
    "AttachmentRecord",
    "StoredObject",
    "ImageDimensions",
    "GalleryImageIds",

    # Uploads
    "UploadErrorCode",
    "describe_upload_error",
    "AttachmentStatus",
    "ConflictChoice",
    "UploadItem",
    "BatchOptions",
    "DerivedSku",
    "SkuResolution",
    "AttachmentResult",
    "PendingRename",
    "PendingConflict",
    "UndoRecord",
    "BatchSummary",
    "BatchResponse",
    "RenameRequest",
    "ConflictDecision",
    "ResolutionResponse",
    "UndoRequest",
    "UndoResponse",
    "ReportRequest",
    "UploadConfigResponse",
]
