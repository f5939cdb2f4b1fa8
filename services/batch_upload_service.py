"""
Batch upload service: runs a list of uploaded files through validation,
SKU resolution and attachment (or staging) in input order.
"""

from typing import Optional
import structlog

from models.upload import (
    AttachmentResult,
    AttachmentStatus,
    BatchOptions,
    BatchResponse,
    BatchSummary,
    PendingConflict,
    PendingRename,
    UploadErrorCode,
    UploadItem,
    describe_upload_error,
)
from services.attachment_service import AttachmentService, get_attachment_service
from services.sku_resolver_service import SkuResolverService, get_sku_resolver_service
from services.staging_service import StagingService, get_staging_service
from services.upload_session_service import create_session, processing_lock
from utils.filename_utils import validate_filename
from exceptions import AppError, InvalidSKUError, ProductNotFoundError

logger = structlog.get_logger(__name__)


class BatchUploadService:
    """
    First-pass orchestration of an upload batch.

    One file's failure never aborts the batch. Files staged for renaming or
    conflict resolution are left out of `results` and returned as pending
    items under the batch's session id.
    """

    def __init__(
        self,
        resolver: Optional[SkuResolverService] = None,
        attachments: Optional[AttachmentService] = None,
        staging: Optional[StagingService] = None,
    ):
        self.resolver = resolver or get_sku_resolver_service()
        self.attachments = attachments or get_attachment_service()
        self.staging = staging or get_staging_service()

    def run_batch(self, items: list[UploadItem], options: Optional[BatchOptions] = None) -> BatchResponse:
        """
        Process a batch of uploads.

        Args:
            items: Uploaded files in client order
            options: rename_enabled / handle_conflicts flags

        Returns:
            BatchResponse with results, pending renames and pending conflicts
        """
        options = options or BatchOptions()
        results: list[AttachmentResult] = []
        pending_renames: list[PendingRename] = []
        pending_conflicts: list[PendingConflict] = []

        logger.info(
            "batch_started",
            count=len(items),
            rename_enabled=options.rename_enabled,
            handle_conflicts=options.handle_conflicts
        )

        with processing_lock:
            for index, item in enumerate(items):
                try:
                    outcome = self._process_item(index, item, options)
                except AppError as e:
                    logger.error("batch_item_failed", index=index, filename=item.filename, error=e.message)
                    outcome = AttachmentResult.failure(item.filename or "Unknown", e.message)

                if isinstance(outcome, PendingRename):
                    pending_renames.append(outcome)
                elif isinstance(outcome, PendingConflict):
                    pending_conflicts.append(outcome)
                else:
                    results.append(outcome)

            session = create_session(options, pending_renames, pending_conflicts, results)

        summary = BatchSummary.from_results(results)
        logger.info(
            "batch_complete",
            session_id=session.id,
            successful=summary.successful,
            failed=summary.failed,
            pending_renames=len(pending_renames),
            pending_conflicts=len(pending_conflicts)
        )

        return BatchResponse(
            session_id=session.id,
            results=results,
            pending_renames=pending_renames,
            pending_conflicts=pending_conflicts,
            summary=summary,
        )

    def _process_item(self, index: int, item: UploadItem, options: BatchOptions):
        """Returns an AttachmentResult, or a pending item when staged."""
        if not item.filename or item.upload_error != UploadErrorCode.OK:
            return AttachmentResult.failure(
                item.filename or "Unknown",
                f"File upload error: {describe_upload_error(item.upload_error)}"
            )

        check = validate_filename(item.filename)
        if not check.valid:
            return AttachmentResult.failure(
                item.filename,
                f"Invalid filename: {check.reason}",
                status=AttachmentStatus.INVALID,
            )

        resolution = self.resolver.resolve(item.filename)

        if not resolution.is_valid:
            return AttachmentResult.failure(
                item.filename,
                InvalidSKUError(resolution.sku, resolution.error).message,
                status=AttachmentStatus.INVALID,
            )

        if not resolution.found:
            if options.rename_enabled:
                return self.staging.stage_rename(index, item, resolution)
            return AttachmentResult.failure(
                item.filename,
                ProductNotFoundError(resolution.sku).message,
                status=AttachmentStatus.INVALID,
            )

        if options.handle_conflicts:
            conflict = self.staging.check_conflict(index, item, resolution)
            if conflict:
                return conflict

        return self.attachments.attach(item, resolution.product_id)


# Singleton instance for convenience
_batch_upload_service: Optional[BatchUploadService] = None


def get_batch_upload_service() -> BatchUploadService:
    """Get or create BatchUploadService instance."""
    global _batch_upload_service
    if _batch_upload_service is None:
        _batch_upload_service = BatchUploadService()
    return _batch_upload_service
