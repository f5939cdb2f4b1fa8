"""
Attachment service: validate an uploaded image, store it and bind it to a
product as primary image or gallery image.

Every failure is converted into an AttachmentResult; nothing raises out of
attach().
"""

import mimetypes
from typing import Optional
import structlog

from config import settings, format_size
from models.product import AttachmentRecord, ImageDimensions
from models.upload import (
    AttachmentResult,
    AttachmentStatus,
    UploadErrorCode,
    UploadItem,
    describe_upload_error,
)
from services.catalog_service import CatalogService, get_catalog_service
from services.object_store_service import ObjectStoreService, get_object_store_service
from utils.filename_utils import (
    get_extension,
    sanitize_filename,
    strip_extension,
    validate_filename,
)
from exceptions import (
    AppError,
    EmptyFileError,
    FileTooLargeError,
    GalleryDuplicateError,
    ImageTooSmallError,
    InvalidFileTypeError,
    InvalidFilenameError,
    UnreadableFileError,
    UploadTransportError,
)

logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = ["jpeg", "jpg", "png", "gif", "webp"]
ALLOWED_MIME_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]

mimetypes.add_type("image/webp", ".webp")


class AttachmentService:
    """
    Attaches validated images to products.

    Binding rule: the first image of a product becomes its primary image,
    later ones are appended to its gallery.
    """

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        object_store: Optional[ObjectStoreService] = None,
    ):
        self.catalog = catalog or get_catalog_service()
        self.object_store = object_store or get_object_store_service()

    # ===================
    # VALIDATION
    # ===================

    def validate(self, item: UploadItem) -> tuple[str, ImageDimensions]:
        """
        Run every pre-write check on an upload.

        Returns:
            Tuple of (mime type, decoded dimensions)

        Raises:
            AppError subclass describing the first failed check
        """
        if item.upload_error != UploadErrorCode.OK:
            raise UploadTransportError(describe_upload_error(item.upload_error), int(item.upload_error))

        check = validate_filename(item.filename)
        if not check.valid:
            raise InvalidFilenameError(item.filename, check.reason)

        if item.content is None:
            raise UnreadableFileError(item.filename)

        if item.declared_size > settings.max_upload_size_bytes:
            raise FileTooLargeError(
                format_size(item.declared_size),
                format_size(settings.max_upload_size_bytes)
            )

        if item.declared_size == 0:
            raise EmptyFileError(item.filename)

        ext = get_extension(item.filename)
        mime_type, _ = mimetypes.guess_type(f"file.{ext}") if ext else (None, None)
        if not ext or not mime_type:
            raise InvalidFileTypeError(item.filename)

        if ext not in ALLOWED_EXTENSIONS or mime_type not in ALLOWED_MIME_TYPES:
            raise InvalidFileTypeError(item.filename, allowed=ALLOWED_EXTENSIONS)

        dimensions = self.object_store.decode_image_header(item.content)

        if (
            dimensions.width < settings.min_image_width
            or dimensions.height < settings.min_image_height
        ):
            raise ImageTooSmallError(
                dimensions.width,
                dimensions.height,
                settings.min_image_width,
                settings.min_image_height,
            )

        return mime_type, dimensions

    # ===================
    # ATTACH
    # ===================

    def attach(self, item: UploadItem, product_id: str) -> AttachmentResult:
        """
        Validate, store and bind one image.

        Args:
            item: Uploaded file
            product_id: Product the image belongs to

        Returns:
            AttachmentResult (status success or error)
        """
        filename = sanitize_filename(item.filename) or item.filename

        try:
            mime_type, dimensions = self.validate(item)
        except AppError as e:
            logger.info("upload_rejected", filename=item.filename, code=e.code, reason=e.message)
            return AttachmentResult.failure(item.filename, e.message)

        try:
            stored = self.object_store.store_object(item.content, filename, mime_type)
        except AppError as e:
            return AttachmentResult.failure(item.filename, e.message)

        try:
            attachment = self.catalog.create_attachment(
                product_id,
                strip_extension(filename),
                stored,
                dimensions,
            )
        except AppError as e:
            self._discard_file(stored.path)
            return AttachmentResult.failure(item.filename, e.message)

        self._generate_metadata(attachment, item.content)

        try:
            is_featured = self._bind(product_id, attachment.id)
        except GalleryDuplicateError as e:
            self.object_store.delete_object(attachment.id)
            return AttachmentResult.failure(item.filename, e.message)
        except AppError as e:
            logger.error(
                "image_binding_failed",
                product_id=product_id,
                attachment_id=attachment.id,
                error=e.message
            )
            return AttachmentResult.failure(
                item.filename,
                e.message,
                attachment_id=attachment.id,
                product_id=product_id,
            )

        if is_featured is None:
            # Primary image rejected; the attachment stays for the caller to clean up
            return AttachmentResult.failure(
                item.filename,
                "Image uploaded but could not be set as the featured image",
                attachment_id=attachment.id,
                product_id=product_id,
            )

        try:
            display = self.catalog.get_product_display(product_id)
        except AppError as e:
            logger.warning("product_display_failed", product_id=product_id, error=e.message)
            display = None

        logger.info(
            "image_attached",
            filename=item.filename,
            product_id=product_id,
            attachment_id=attachment.id,
            is_featured=is_featured
        )

        return AttachmentResult(
            filename=item.filename,
            status=AttachmentStatus.SUCCESS,
            message="Image set as featured" if is_featured else "Image added to gallery",
            attachment_id=attachment.id,
            product_id=product_id,
            is_featured=is_featured,
            product_name=display.name if display else None,
            permalink=display.permalink if display else None,
            image_url=display.image_url if display else None,
        )

    def _bind(self, product_id: str, attachment_id: str) -> Optional[bool]:
        """
        Make the attachment the primary image, or append it to the gallery.

        Returns:
            True if it is now the primary image, False if it went to the
            gallery, None if the catalog refused the primary image

        Raises:
            GalleryDuplicateError: If the id is already in the gallery
        """
        if not self.catalog.get_primary_image(product_id):
            if not self.catalog.set_primary_image(product_id, attachment_id):
                logger.warning(
                    "primary_image_rejected",
                    product_id=product_id,
                    attachment_id=attachment_id
                )
                return None
        else:
            gallery = self.catalog.get_gallery_image_ids(product_id)
            if not gallery.add(attachment_id):
                raise GalleryDuplicateError(attachment_id, product_id)
            self.catalog.set_gallery_image_ids(product_id, gallery)

        return self.catalog.get_primary_image(product_id) == attachment_id

    def _generate_metadata(self, attachment: AttachmentRecord, content: bytes) -> None:
        # Thumbnails are optional; a failure here never fails the upload
        try:
            self.object_store.generate_metadata(attachment, content)
        except Exception as e:
            logger.warning(
                "metadata_generation_failed",
                attachment_id=attachment.id,
                error=str(e),
                error_type=type(e).__name__
            )

    def _discard_file(self, path: str) -> None:
        try:
            self.object_store.remove_files([path])
        except AppError as e:
            logger.warning("discard_file_failed", path=path, error=e.message)


# Singleton instance for convenience
_attachment_service: Optional[AttachmentService] = None


def get_attachment_service() -> AttachmentService:
    """Get or create AttachmentService instance."""
    global _attachment_service
    if _attachment_service is None:
        _attachment_service = AttachmentService()
    return _attachment_service
