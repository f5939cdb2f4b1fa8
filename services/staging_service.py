"""
Staging service: deferred rename and conflict rounds.

When enabled by the batch flags, files whose SKU matched nothing and files
whose product already has a primary image are parked in the upload session
instead of being attached. The caller answers in a later request:

    renames:   {index, new_sku}            → exact lookup, then attach
    conflicts: {index, product_id, choice} → use_new / keep_existing

Renames must be settled before conflicts. Entries are consumed once; staged
items the caller does not answer are reported as skipped.
"""

from typing import Optional
import structlog

from models.upload import (
    AttachmentResult,
    AttachmentStatus,
    ConflictChoice,
    ConflictDecision,
    PendingConflict,
    PendingRename,
    RenameRequest,
    SkuResolution,
    UploadItem,
)
from services.attachment_service import AttachmentService, get_attachment_service
from services.catalog_service import CatalogService, get_catalog_service
from services.object_store_service import ObjectStoreService, get_object_store_service
from services.sku_resolver_service import SkuResolverService, get_sku_resolver_service
from services.upload_session_service import UploadSession, get_session, processing_lock
from utils.filename_utils import sanitize_sku_text
from exceptions import (
    AppError,
    ObjectStoreError,
    PendingRenamesError,
    ProductNotFoundError,
    StagedItemNotFoundError,
)

logger = structlog.get_logger(__name__)


class StagingService:
    """Stages unmatched/conflicting files and resolves them later."""

    def __init__(
        self,
        resolver: Optional[SkuResolverService] = None,
        attachments: Optional[AttachmentService] = None,
        catalog: Optional[CatalogService] = None,
        object_store: Optional[ObjectStoreService] = None,
    ):
        self.catalog = catalog or get_catalog_service()
        self.object_store = object_store or get_object_store_service()
        self.resolver = resolver or get_sku_resolver_service()
        self.attachments = attachments or get_attachment_service()

    # ===================
    # STAGING
    # ===================

    def stage_rename(self, index: int, item: UploadItem, resolution: SkuResolution) -> PendingRename:
        """Park a file whose SKU matched no product."""
        logger.info("rename_staged", index=index, filename=item.filename, sku=resolution.sku)
        return PendingRename(index=index, filename=item.filename, original_sku=resolution.sku)

    def check_conflict(
        self,
        index: int,
        item: UploadItem,
        resolution: SkuResolution,
    ) -> Optional[PendingConflict]:
        """
        Stage a conflict if the product already has a primary image.

        Variant (fallback) matches never conflict: they are extra images,
        not replacements.

        Returns:
            PendingConflict, or None if the file can be attached directly
        """
        if resolution.via_fallback or not resolution.product_id:
            return None

        existing_id = self.catalog.get_primary_image(resolution.product_id)
        if not existing_id:
            return None

        display = self.catalog.get_product_display(resolution.product_id)

        logger.info(
            "conflict_staged",
            index=index,
            filename=item.filename,
            product_id=resolution.product_id,
            existing_image_id=existing_id
        )

        return PendingConflict(
            index=index,
            filename=item.filename,
            product_id=resolution.product_id,
            product_name=display.name,
            existing_image_id=existing_id,
            existing_image_url=display.image_url,
        )

    # ===================
    # RENAME ROUND
    # ===================

    def resolve_renames(
        self,
        session_id: str,
        renames: list[RenameRequest],
        items: dict[int, UploadItem],
    ) -> list[AttachmentResult]:
        """
        Attach staged files under caller-corrected SKUs.

        Args:
            session_id: Session returned by the batch round
            renames: Corrected SKU per staged index
            items: Re-sent file for each index

        Returns:
            One result per answered rename, then one skipped result per
            staged rename left unanswered

        Raises:
            UploadSessionNotFoundError: If the session expired
        """
        session = get_session(session_id)
        results: list[AttachmentResult] = []

        with processing_lock:
            for request in renames:
                results.append(self._resolve_rename(session, request, items.get(request.index)))

            for pending in session.pending_renames.values():
                results.append(AttachmentResult.failure(
                    pending.filename,
                    "Rename skipped",
                    status=AttachmentStatus.SKIPPED,
                ))
            session.pending_renames.clear()

            session.results.extend(results)

        logger.info("renames_resolved", session_id=session_id, count=len(results))
        return results

    def _resolve_rename(
        self,
        session: UploadSession,
        request: RenameRequest,
        item: Optional[UploadItem],
    ) -> AttachmentResult:
        pending = session.take_rename(request.index)
        if pending is None:
            error = StagedItemNotFoundError(request.index, "rename")
            filename = item.filename if item else f"#{request.index}"
            return AttachmentResult.failure(filename, error.message)

        if item is None or item.filename != pending.filename:
            return AttachmentResult.failure(
                pending.filename,
                "Uploaded file does not match the staged file"
            )

        sku = sanitize_sku_text(request.new_sku)
        try:
            product_id = self.resolver.resolve_exact(sku)
        except AppError as e:
            return AttachmentResult.failure(pending.filename, e.message)

        if not product_id:
            return AttachmentResult.failure(
                pending.filename,
                ProductNotFoundError(sku).message,
                status=AttachmentStatus.INVALID,
            )

        logger.info(
            "rename_matched",
            filename=pending.filename,
            original_sku=pending.original_sku,
            new_sku=sku,
            product_id=product_id
        )
        return self.attachments.attach(item, product_id)

    # ===================
    # CONFLICT ROUND
    # ===================

    def resolve_conflicts(
        self,
        session_id: str,
        decisions: list[ConflictDecision],
        items: dict[int, UploadItem],
    ) -> list[AttachmentResult]:
        """
        Apply caller choices to staged conflicts.

        use_new deletes the product's current primary image and attaches
        the new file (which then becomes primary). keep_existing changes
        nothing.

        Raises:
            UploadSessionNotFoundError: If the session expired
            PendingRenamesError: If renames of this session are unresolved
        """
        session = get_session(session_id)
        if session.pending_renames:
            raise PendingRenamesError(session_id, len(session.pending_renames))

        results: list[AttachmentResult] = []

        with processing_lock:
            for decision in decisions:
                results.append(self._resolve_conflict(session, decision, items.get(decision.index)))

            for pending in session.pending_conflicts.values():
                results.append(AttachmentResult.failure(
                    pending.filename,
                    "Kept existing featured image",
                    status=AttachmentStatus.SKIPPED,
                    product_id=pending.product_id,
                ))
            session.pending_conflicts.clear()

            session.results.extend(results)

        logger.info("conflicts_resolved", session_id=session_id, count=len(results))
        return results

    def _resolve_conflict(
        self,
        session: UploadSession,
        decision: ConflictDecision,
        item: Optional[UploadItem],
    ) -> AttachmentResult:
        pending = session.take_conflict(decision.index)
        if pending is None:
            error = StagedItemNotFoundError(decision.index, "conflict")
            filename = item.filename if item else f"#{decision.index}"
            return AttachmentResult.failure(filename, error.message)

        if decision.product_id != pending.product_id:
            logger.warning(
                "conflict_product_mismatch",
                index=decision.index,
                staged_product_id=pending.product_id,
                supplied_product_id=decision.product_id
            )
            return AttachmentResult.failure(
                pending.filename,
                "Product does not match the staged conflict"
            )

        if decision.choice == ConflictChoice.KEEP_EXISTING:
            return AttachmentResult.failure(
                pending.filename,
                "Kept existing featured image",
                status=AttachmentStatus.SKIPPED,
                product_id=pending.product_id,
            )

        if item is None or item.filename != pending.filename:
            return AttachmentResult.failure(
                pending.filename,
                "Uploaded file does not match the staged file"
            )

        # Reject a bad replacement before the current image is destroyed
        try:
            self.attachments.validate(item)
        except AppError as e:
            return AttachmentResult.failure(pending.filename, e.message)

        try:
            self._remove_primary_image(pending.product_id)
        except AppError as e:
            return AttachmentResult.failure(pending.filename, e.message)

        return self.attachments.attach(item, pending.product_id)

    def _remove_primary_image(self, product_id: str) -> None:
        existing_id = self.catalog.get_primary_image(product_id)
        if not existing_id:
            return

        if not self.object_store.delete_object(existing_id):
            raise ObjectStoreError(
                "Could not remove the existing featured image",
                {"attachment_id": existing_id}
            )

        self.catalog.clear_primary_image(product_id)
        logger.info("primary_image_replaced", product_id=product_id, old_attachment_id=existing_id)


# Singleton instance for convenience
_staging_service: Optional[StagingService] = None


def get_staging_service() -> StagingService:
    """Get or create StagingService instance."""
    global _staging_service
    if _staging_service is None:
        _staging_service = StagingService()
    return _staging_service
