"""
Upload pipeline schemas: incoming files, per-file results, staged items,
undo records and the request/response bodies of the image upload API.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from enum import Enum, IntEnum

from models.base import BaseSchema


class UploadErrorCode(IntEnum):
    """Upload failure codes reported by the transport layer."""
    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


UPLOAD_ERROR_MESSAGES = {
    UploadErrorCode.INI_SIZE: "The file exceeds the server's maximum upload size",
    UploadErrorCode.FORM_SIZE: "The file exceeds the maximum size allowed by the form",
    UploadErrorCode.PARTIAL: "The file was only partially uploaded",
    UploadErrorCode.NO_FILE: "No file was uploaded",
    UploadErrorCode.NO_TMP_DIR: "Missing a temporary folder",
    UploadErrorCode.CANT_WRITE: "Failed to write file to disk",
    UploadErrorCode.EXTENSION: "File upload stopped by an extension",
}


def describe_upload_error(code: Optional[int]) -> str:
    """Human readable cause for a transport error code."""
    try:
        return UPLOAD_ERROR_MESSAGES[UploadErrorCode(code)]
    except (ValueError, KeyError):
        return "Unknown upload error"


class AttachmentStatus(str, Enum):
    """Outcome of one uploaded file."""
    SUCCESS = "success"
    ERROR = "error"
    INVALID = "invalid"
    SKIPPED = "skipped"


class ConflictChoice(str, Enum):
    """Caller decision for a product that already has a primary image."""
    USE_NEW = "use_new"
    KEEP_EXISTING = "keep_existing"


# ===================
# INPUT
# ===================

class UploadItem(BaseModel):
    """
    One file of a batch, as decoded by the transport layer.

    `content` is None when the transport could not read the file.
    """
    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., description="Filename as supplied by the client")
    content: Optional[bytes] = Field(None, repr=False)
    declared_size: int = Field(0, ge=0)
    upload_error: UploadErrorCode = UploadErrorCode.OK


class BatchOptions(BaseModel):
    """Flags of a batch round."""
    rename_enabled: bool = False
    handle_conflicts: bool = False


class DerivedSku(BaseModel):
    """SKU candidates derived from a filename."""
    raw: str
    normalized: str
    fallback: Optional[str] = None


class SkuResolution(BaseModel):
    """Result of resolving a filename against the catalog."""
    filename: str
    derived_sku: Optional[DerivedSku] = None
    product_id: Optional[str] = None
    matched_sku: Optional[str] = None
    via_fallback: bool = False
    error: Optional[str] = None

    @property
    def sku(self) -> str:
        """SKU to show in messages."""
        if self.derived_sku:
            return self.derived_sku.normalized or self.derived_sku.raw
        return ""

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def found(self) -> bool:
        return self.product_id is not None


# ===================
# RESULTS
# ===================

class AttachmentResult(BaseSchema):
    """
    Outcome for one UploadItem.

    On success attachment_id and product_id are always set. A failed
    primary image assignment also carries attachment_id so the caller can
    clean up the orphaned attachment.
    """
    filename: str
    status: AttachmentStatus
    message: str
    attachment_id: Optional[str] = None
    product_id: Optional[str] = None
    is_featured: Optional[bool] = None
    product_name: Optional[str] = None
    permalink: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def failure(
        cls,
        filename: str,
        message: str,
        status: AttachmentStatus = AttachmentStatus.ERROR,
        **extra,
    ) -> "AttachmentResult":
        return cls(filename=filename, status=status, message=message, **extra)

    def to_undo_record(self) -> Optional["UndoRecord"]:
        """Undo record for a successful attachment, None otherwise."""
        if self.status != AttachmentStatus.SUCCESS:
            return None
        return UndoRecord(
            attachment_id=self.attachment_id,
            product_id=self.product_id,
            is_featured=bool(self.is_featured),
        )


class PendingRename(BaseSchema):
    """File whose SKU matched no product, waiting for a corrected SKU."""
    index: int
    filename: str
    original_sku: str


class PendingConflict(BaseSchema):
    """File whose product already has a primary image, waiting for a choice."""
    index: int
    filename: str
    product_id: str
    product_name: str
    existing_image_id: str
    existing_image_url: Optional[str] = None


class UndoRecord(BaseSchema):
    """What the caller keeps to reverse one successful attachment."""
    attachment_id: Optional[str] = None
    product_id: Optional[str] = None
    is_featured: Optional[bool] = None

    @field_validator("attachment_id", "product_id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Clients may send numeric ids."""
        if v is None:
            return v
        return str(v)

    @property
    def is_complete(self) -> bool:
        return bool(self.attachment_id) and bool(self.product_id) and self.is_featured is not None


class BatchSummary(BaseModel):
    """Counts shown above the results table."""
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0

    @classmethod
    def from_results(cls, results: list[AttachmentResult]) -> "BatchSummary":
        return cls(
            successful=sum(1 for r in results if r.status == AttachmentStatus.SUCCESS),
            failed=sum(
                1 for r in results
                if r.status in (AttachmentStatus.ERROR, AttachmentStatus.INVALID)
            ),
            skipped=sum(1 for r in results if r.status == AttachmentStatus.SKIPPED),
            total=len(results),
        )


# ===================
# API BODIES
# ===================

class BatchResponse(BaseModel):
    """Response of a first-pass batch round."""
    session_id: Optional[str] = Field(
        None,
        description="Upload session id, used for renames, conflicts and the session report"
    )
    results: list[AttachmentResult] = Field(default_factory=list)
    pending_renames: list[PendingRename] = Field(default_factory=list)
    pending_conflicts: list[PendingConflict] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


class RenameRequest(BaseModel):
    """Corrected SKU for one staged file."""
    index: int = Field(..., ge=0)
    new_sku: str = Field(..., description="SKU to look up (exact match)")


class ConflictDecision(BaseModel):
    """Choice for one staged conflict."""
    index: int = Field(..., ge=0)
    product_id: str
    choice: ConflictChoice

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v):
        return str(v) if v is not None else v


class ResolutionResponse(BaseModel):
    """Response of a rename or conflict round."""
    results: list[AttachmentResult] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


class UndoRequest(BaseModel):
    records: list[UndoRecord] = Field(default_factory=list)


class UndoResponse(BaseModel):
    undone: int = 0
    errors: int = 0
    message: str = ""


class ReportRequest(BaseModel):
    results: list[AttachmentResult] = Field(default_factory=list)


class UploadConfigResponse(BaseModel):
    """Limits a client needs before uploading."""
    max_file_size: int
    max_file_size_label: str
    allowed_types: list[str]
    allowed_mime_types: list[str]
    min_width: int
    min_height: int
    chunk_size: int
