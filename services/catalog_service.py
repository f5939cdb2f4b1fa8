"""
Catalog service: product lookups and image references.

Products live in the `products` table (sku, name, slug, primary_image_id,
gallery_image_ids). Attachment entities live in `product_images`.
"""

from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.product import (
    ProductDisplay,
    AttachmentRecord,
    StoredObject,
    ImageDimensions,
    GalleryImageIds,
)
from exceptions import (
    CatalogError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Product catalog access.

    Only reads and writes what the upload pipeline needs; nothing is
    cached between calls.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.products_table
        self.images_table = settings.product_images_table

    # ===================
    # PRODUCT LOOKUPS
    # ===================

    def find_product_id_by_sku(self, sku: str) -> Optional[str]:
        """
        Exact SKU lookup.

        Args:
            sku: SKU as derived from the filename

        Returns:
            Product id or None if no product has this SKU
        """
        logger.debug("finding_product_by_sku", sku=sku)

        try:
            result = (
                self.db.table(self.table)
                .select("id")
                .eq("sku", sku)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("find_product_by_sku_failed", sku=sku, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return str(result.data[0]["id"])

    def _get_product_row(self, product_id: str, columns: str = "*") -> Optional[dict]:
        try:
            result = (
                self.db.table(self.table)
                .select(columns)
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        return result.data[0] if result.data else None

    def get_product_display(self, product_id: str) -> ProductDisplay:
        """
        Name, permalink and primary image URL for reporting.

        Missing products are reported with placeholder values rather than
        raising, since the display data is informational only.
        """
        row = self._get_product_row(product_id) or {}
        primary_id = row.get("primary_image_id")

        image_url = None
        if primary_id:
            attachment = self.get_attachment(str(primary_id))
            if attachment:
                image_url = attachment.metadata.get("thumbnail_url") or attachment.url

        slug = row.get("slug") or str(product_id)
        return ProductDisplay(
            id=str(product_id),
            sku=row.get("sku") or "",
            name=row.get("name") or row.get("sku") or "",
            permalink=f"{settings.storefront_url.rstrip('/')}/product/{slug}",
            image_url=image_url,
            primary_image_id=str(primary_id) if primary_id else None,
        )

    # ===================
    # PRIMARY IMAGE
    # ===================

    def get_primary_image(self, product_id: str) -> Optional[str]:
        """Current primary image attachment id, or None."""
        row = self._get_product_row(product_id, "id, primary_image_id")
        if not row or not row.get("primary_image_id"):
            return None
        return str(row["primary_image_id"])

    def set_primary_image(self, product_id: str, attachment_id: str) -> bool:
        """
        Point the product's primary image at an attachment.

        Returns:
            True if the product row was updated, False if the catalog
            rejected the change
        """
        try:
            result = (
                self.db.table(self.table)
                .update({"primary_image_id": attachment_id})
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "set_primary_image_failed",
                product_id=product_id,
                attachment_id=attachment_id,
                error=str(e)
            )
            return False

        updated = bool(result.data)
        if updated:
            logger.info("primary_image_set", product_id=product_id, attachment_id=attachment_id)
        return updated

    def clear_primary_image(self, product_id: str) -> None:
        """Remove the primary image reference."""
        try:
            (
                self.db.table(self.table)
                .update({"primary_image_id": None})
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("clear_primary_image_failed", product_id=product_id, error=str(e))
            raise CatalogError("update", str(e), {"product_id": product_id})

        logger.info("primary_image_cleared", product_id=product_id)

    # ===================
    # GALLERY
    # ===================

    def get_gallery_image_ids(self, product_id: str) -> GalleryImageIds:
        """Gallery attachment ids in display order."""
        row = self._get_product_row(product_id, "id, gallery_image_ids")
        if not row:
            return GalleryImageIds()
        return GalleryImageIds.parse(row.get("gallery_image_ids"))

    def set_gallery_image_ids(self, product_id: str, ids: GalleryImageIds) -> None:
        """
        Persist the gallery.

        An empty gallery clears the column instead of storing an empty list.
        """
        value = ids.to_list() if ids else None
        try:
            (
                self.db.table(self.table)
                .update({"gallery_image_ids": value})
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("set_gallery_failed", product_id=product_id, error=str(e))
            raise CatalogError("update", str(e), {"product_id": product_id})

        logger.debug("gallery_updated", product_id=product_id, count=len(ids))

    # ===================
    # ATTACHMENTS
    # ===================

    def create_attachment(
        self,
        product_id: str,
        title: str,
        stored: StoredObject,
        dimensions: Optional[ImageDimensions] = None,
    ) -> AttachmentRecord:
        """
        Create the attachment entity for a stored object.

        Raises:
            CatalogError: If the row could not be inserted
        """
        insert_data = {
            "product_id": product_id,
            "title": title,
            "storage_path": stored.path,
            "url": stored.url,
            "mime_type": stored.mime_type,
            "file_size": stored.size,
            "width": dimensions.width if dimensions else None,
            "height": dimensions.height if dimensions else None,
            "metadata": {},
        }

        try:
            result = self.db.table(self.images_table).insert(insert_data).execute()
        except Exception as e:
            logger.error(
                "create_attachment_failed",
                product_id=product_id,
                title=title,
                error=str(e)
            )
            raise CatalogError("insert", str(e), {"product_id": product_id})

        if not result.data:
            raise CatalogError(
                "insert",
                "Unknown error creating attachment",
                {"product_id": product_id}
            )

        attachment = AttachmentRecord(**result.data[0])
        logger.info(
            "attachment_created",
            attachment_id=attachment.id,
            product_id=product_id,
            title=title
        )
        return attachment

    def get_attachment(self, attachment_id: str) -> Optional[AttachmentRecord]:
        """Attachment entity or None."""
        try:
            result = (
                self.db.table(self.images_table)
                .select("*")
                .eq("id", attachment_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_attachment_failed", attachment_id=attachment_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return AttachmentRecord(**result.data[0])

    def update_attachment_metadata(self, attachment_id: str, metadata: dict) -> None:
        """Store derived metadata (sizes, thumbnail) on the attachment."""
        try:
            (
                self.db.table(self.images_table)
                .update({"metadata": metadata})
                .eq("id", attachment_id)
                .execute()
            )
        except Exception as e:
            raise CatalogError("update", str(e), {"attachment_id": attachment_id})

    def delete_attachment(self, attachment_id: str) -> bool:
        """Delete the attachment entity. Returns True if a row was removed."""
        try:
            result = (
                self.db.table(self.images_table)
                .delete()
                .eq("id", attachment_id)
                .execute()
            )
        except Exception as e:
            logger.error("delete_attachment_failed", attachment_id=attachment_id, error=str(e))
            raise CatalogError("delete", str(e), {"attachment_id": attachment_id})

        return bool(result.data)


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
