"""
Image upload API routes.

Flow:
1. POST /api/image-uploads with images[] → results + pending renames/conflicts
2. POST /sessions/{id}/renames   (optional) → results for renamed files
3. POST /sessions/{id}/conflicts (optional) → results for conflicting files
4. POST /undo with the success records to reverse an upload
"""

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import structlog

from config import settings
from models.upload import (
    BatchOptions,
    BatchResponse,
    BatchSummary,
    ConflictChoice,
    ConflictDecision,
    RenameRequest,
    ReportRequest,
    ResolutionResponse,
    UndoRequest,
    UndoResponse,
    UploadConfigResponse,
    UploadErrorCode,
    UploadItem,
)
from services.attachment_service import ALLOWED_EXTENSIONS, ALLOWED_MIME_TYPES
from services.batch_upload_service import get_batch_upload_service
from services.report_service import build_csv_report, report_filename
from services.staging_service import get_staging_service
from services.undo_service import get_undo_service
from services.upload_session_service import get_session
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/image-uploads", tags=["Image Uploads"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# HELPERS
# ===================

async def _to_upload_item(file: UploadFile) -> UploadItem:
    """Decode one multipart file into an UploadItem."""
    if not file.filename:
        return UploadItem(filename="", upload_error=UploadErrorCode.NO_FILE)

    try:
        content = await file.read()
    except OSError as e:
        logger.warning("upload_read_failed", filename=file.filename, error=str(e))
        content = None

    declared_size = file.size if file.size is not None else len(content or b"")

    return UploadItem(
        filename=file.filename,
        content=content,
        declared_size=declared_size,
    )


def _parse_json_list(raw: str, model, field: str) -> list:
    try:
        return TypeAdapter(list[model]).validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            message=f"Invalid {field} payload",
            code="INVALID_PAYLOAD",
            details={"errors": e.errors(include_url=False, include_context=False)}
        )


# ===================
# ROUTES
# ===================

@router.get("/config", response_model=UploadConfigResponse)
async def get_upload_config():
    """Upload limits for clients (size, types, dimensions, chunk size)."""
    return UploadConfigResponse(
        max_file_size=settings.max_upload_size_bytes,
        max_file_size_label=settings.max_upload_size_label,
        allowed_types=ALLOWED_EXTENSIONS,
        allowed_mime_types=ALLOWED_MIME_TYPES,
        min_width=settings.min_image_width,
        min_height=settings.min_image_height,
        chunk_size=settings.upload_chunk_size,
    )


@router.post("", response_model=BatchResponse)
async def upload_images(
    images: list[UploadFile] = File(default=[], description="Images named by SKU"),
    rename_enabled: bool = Form(False, description="Stage unmatched files for renaming"),
    handle_conflicts: bool = Form(False, description="Stage files whose product has a featured image")
):
    """
    Upload a batch of images and attach each to the product matching its
    filename.

    Raises:
        400: No images were uploaded
    """
    if not images:
        raise HTTPException(status_code=400, detail="No images were uploaded.")

    try:
        items = [await _to_upload_item(f) for f in images]
        options = BatchOptions(rename_enabled=rename_enabled, handle_conflicts=handle_conflicts)
        return get_batch_upload_service().run_batch(items, options)

    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/renames", response_model=ResolutionResponse)
async def resolve_renames(
    session_id: str,
    renames: str = Form(..., description='JSON list: [{"index": 0, "new_sku": "ABC123"}]'),
    images: list[UploadFile] = File(default=[], description="Staged files, same order as renames")
):
    """
    Attach staged files under corrected SKUs.

    Raises:
        404: Session not found or expired
        422: Malformed renames payload
    """
    try:
        requests = _parse_json_list(renames, RenameRequest, "renames")
        files = [await _to_upload_item(f) for f in images]
        items = {r.index: item for r, item in zip(requests, files)}

        results = get_staging_service().resolve_renames(session_id, requests, items)
        return ResolutionResponse(results=results, summary=BatchSummary.from_results(results))

    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/conflicts", response_model=ResolutionResponse)
async def resolve_conflicts(
    session_id: str,
    conflicts: str = Form(..., description='JSON list: [{"index": 1, "product_id": "...", "choice": "use_new"}]'),
    images: list[UploadFile] = File(default=[], description="Files for use_new choices, same order")
):
    """
    Apply use_new / keep_existing choices to staged conflicts.

    Raises:
        404: Session not found or expired
        409: Renames of this session are still pending
        422: Malformed conflicts payload
    """
    try:
        decisions = _parse_json_list(conflicts, ConflictDecision, "conflicts")
        files = [await _to_upload_item(f) for f in images]
        use_new = [d for d in decisions if d.choice == ConflictChoice.USE_NEW]
        items = {d.index: item for d, item in zip(use_new, files)}

        results = get_staging_service().resolve_conflicts(session_id, decisions, items)
        return ResolutionResponse(results=results, summary=BatchSummary.from_results(results))

    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}/report.csv")
async def download_session_report(session_id: str):
    """CSV report of every result recorded for an upload session."""
    try:
        session = get_session(session_id)
        return _csv_response(build_csv_report(session.results))

    except Exception as e:
        return handle_error(e)


@router.post("/report.csv")
async def download_report(data: ReportRequest):
    """CSV report of caller-supplied results."""
    return _csv_response(build_csv_report(data.results))


@router.post("/undo", response_model=UndoResponse)
async def undo_uploads(data: UndoRequest):
    """
    Delete uploaded images and detach them from their products.

    Raises:
        400: No undo data provided
    """
    if not data.records:
        raise HTTPException(status_code=400, detail="No undo data provided.")

    try:
        return get_undo_service().undo(data.records)

    except Exception as e:
        return handle_error(e)


def _csv_response(content: str, filename: Optional[str] = None) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename or report_filename()}"'}
    )
