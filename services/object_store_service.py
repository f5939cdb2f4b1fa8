"""
Object store service: image bytes in a Supabase Storage bucket.

Also owns image decoding (Pillow) and derived metadata generation
(thumbnail + basic image info) for stored attachments.
"""

from datetime import datetime
from io import BytesIO
from typing import Optional
from uuid import uuid4

from PIL import Image, UnidentifiedImageError
import structlog

from config import get_supabase_client, settings
from models.product import AttachmentRecord, ImageDimensions, StoredObject
from services.catalog_service import CatalogService, get_catalog_service
from utils.filename_utils import get_extension, strip_extension
from exceptions import CorruptImageError, ObjectStoreError

logger = structlog.get_logger(__name__)

# Pillow format name per extension, for re-encoding thumbnails
_SAVE_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
    "webp": "WEBP",
}


class ObjectStoreService:
    """
    Binary storage for uploaded images.

    Deleting an object cascades to its attachment entity in the catalog.
    """

    def __init__(self, catalog: Optional[CatalogService] = None):
        self.db = get_supabase_client()
        self.bucket_name = settings.storage_bucket
        self.catalog = catalog or get_catalog_service()

    @property
    def bucket(self):
        return self.db.storage.from_(self.bucket_name)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def store_object(self, content: bytes, filename: str, mime_type: str) -> StoredObject:
        """
        Persist uploaded bytes.

        Objects are keyed by year/month plus a short random prefix so two
        uploads of the same filename never collide.

        Raises:
            ObjectStoreError: If the bucket rejects the upload
        """
        path = f"{datetime.utcnow():%Y/%m}/{uuid4().hex[:8]}-{filename}"

        try:
            self.bucket.upload(path, content, {"content-type": mime_type})
            url = self.bucket.get_public_url(path)
        except Exception as e:
            logger.error("store_object_failed", filename=filename, path=path, error=str(e))
            raise ObjectStoreError(str(e), {"path": path})

        logger.info("object_stored", filename=filename, path=path, size=len(content))

        return StoredObject(path=path, url=url, mime_type=mime_type, size=len(content))

    def remove_files(self, paths: list[str]) -> None:
        """Remove raw files from the bucket (no catalog changes)."""
        paths = [p for p in paths if p]
        if not paths:
            return
        try:
            self.bucket.remove(paths)
        except Exception as e:
            logger.error("remove_files_failed", paths=paths, error=str(e))
            raise ObjectStoreError(str(e), {"paths": paths})

    def delete_object(self, attachment_id: str) -> bool:
        """
        Delete an attachment's files and its attachment entity.

        Returns:
            True if the attachment existed and was fully removed
        """
        try:
            attachment = self.catalog.get_attachment(attachment_id)
            if attachment is None:
                logger.warning("delete_object_missing", attachment_id=attachment_id)
                return False

            self.remove_files([
                attachment.storage_path,
                attachment.metadata.get("thumbnail_path"),
            ])
            deleted = self.catalog.delete_attachment(attachment_id)

        except Exception as e:
            logger.error("delete_object_failed", attachment_id=attachment_id, error=str(e))
            return False

        if deleted:
            logger.info("object_deleted", attachment_id=attachment_id)
        return deleted

    # ===================
    # IMAGE HANDLING
    # ===================

    def decode_image_header(self, content: bytes) -> ImageDimensions:
        """
        Read pixel dimensions and check the image is decodable.

        Raises:
            CorruptImageError: If Pillow cannot identify or verify the image
        """
        try:
            with Image.open(BytesIO(content)) as img:
                width, height = img.size
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise CorruptImageError(str(e))

        return ImageDimensions(width=width, height=height, format=image_format)

    def generate_metadata(self, attachment: AttachmentRecord, content: bytes) -> dict:
        """
        Build a thumbnail and record image metadata on the attachment.

        Returns:
            The metadata dict stored on the attachment
        """
        ext = get_extension(attachment.storage_path)
        save_format = _SAVE_FORMATS.get(ext, "PNG")
        edge = settings.thumbnail_size

        with Image.open(BytesIO(content)) as img:
            width, height = img.size
            thumb = img.copy()
            thumb.thumbnail((edge, edge))
            if save_format == "JPEG" and thumb.mode not in ("RGB", "L"):
                thumb = thumb.convert("RGB")
            buffer = BytesIO()
            thumb.save(buffer, format=save_format)

        thumb_path = f"{strip_extension(attachment.storage_path)}-{thumb.width}x{thumb.height}.{ext or 'png'}"
        self.bucket.upload(thumb_path, buffer.getvalue(), {"content-type": attachment.mime_type})

        metadata = {
            "width": width,
            "height": height,
            "format": save_format,
            "file": attachment.storage_path,
            "thumbnail_path": thumb_path,
            "thumbnail_url": self.bucket.get_public_url(thumb_path),
            "sizes": {
                "thumbnail": {"width": thumb.width, "height": thumb.height, "file": thumb_path},
            },
        }
        self.catalog.update_attachment_metadata(attachment.id, metadata)

        logger.debug("metadata_generated", attachment_id=attachment.id, thumbnail=thumb_path)
        return metadata


# Singleton instance for convenience
_object_store_service: Optional[ObjectStoreService] = None


def get_object_store_service() -> ObjectStoreService:
    """Get or create ObjectStoreService instance."""
    global _object_store_service
    if _object_store_service is None:
        _object_store_service = ObjectStoreService()
    return _object_store_service
