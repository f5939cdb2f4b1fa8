"""
Undo service: reverses successful attachments.

For each record the stored object (and its attachment entity) is deleted
first; product references are only touched once that delete succeeded, so a
product never loses its reference to an image that still exists.
"""

from typing import Optional
import structlog

from models.upload import UndoRecord, UndoResponse
from services.catalog_service import CatalogService, get_catalog_service
from services.object_store_service import ObjectStoreService, get_object_store_service
from services.upload_session_service import processing_lock
from exceptions import AppError

logger = structlog.get_logger(__name__)


class UndoService:
    """Deletes uploaded images and detaches them from their products."""

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        object_store: Optional[ObjectStoreService] = None,
    ):
        self.catalog = catalog or get_catalog_service()
        self.object_store = object_store or get_object_store_service()

    def undo(self, records: list[UndoRecord]) -> UndoResponse:
        """
        Undo a list of attachments.

        Not transactional: every record is attempted, failures are counted.

        Args:
            records: Undo records from successful upload results

        Returns:
            UndoResponse with undone/error counts and a summary message
        """
        undone = 0
        errors = 0

        with processing_lock:
            for record in records:
                if self._undo_one(record):
                    undone += 1
                else:
                    errors += 1

        message = f"Successfully undone {undone} upload(s)"
        if errors > 0:
            message += f" with {errors} error(s)"

        logger.info("undo_complete", undone=undone, errors=errors)

        return UndoResponse(undone=undone, errors=errors, message=message)

    def _undo_one(self, record: UndoRecord) -> bool:
        if not record.is_complete:
            logger.warning("undo_record_incomplete", record=record.model_dump())
            return False

        if not self.object_store.delete_object(record.attachment_id):
            logger.error(
                "undo_delete_failed",
                attachment_id=record.attachment_id,
                product_id=record.product_id
            )
            return False

        try:
            if record.is_featured:
                # Leave a primary image that was replaced since the upload alone
                if self.catalog.get_primary_image(record.product_id) == record.attachment_id:
                    self.catalog.clear_primary_image(record.product_id)
            else:
                gallery = self.catalog.get_gallery_image_ids(record.product_id)
                if gallery.remove(record.attachment_id):
                    self.catalog.set_gallery_image_ids(record.product_id, gallery)
        except AppError as e:
            # The object is already gone, so the upload counts as undone
            logger.error(
                "undo_reference_update_failed",
                attachment_id=record.attachment_id,
                product_id=record.product_id,
                error=e.message
            )

        logger.info(
            "upload_undone",
            attachment_id=record.attachment_id,
            product_id=record.product_id,
            is_featured=record.is_featured
        )
        return True


# Singleton instance for convenience
_undo_service: Optional[UndoService] = None


def get_undo_service() -> UndoService:
    """Get or create UndoService instance."""
    global _undo_service
    if _undo_service is None:
        _undo_service = UndoService()
    return _undo_service
