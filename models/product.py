"""
Catalog-side schemas: product display data, attachment entities and the
gallery id set.
"""

from pydantic import BaseModel, Field
from typing import Iterable, Iterator, Optional
from datetime import datetime

from models.base import BaseSchema


class ProductDisplay(BaseSchema):
    """Denormalized product data shown next to upload results."""

    id: str = Field(..., description="Product UUID")
    sku: str = Field(..., description="Product SKU")
    name: str = Field(..., description="Product display name")
    permalink: str = Field(..., description="Storefront URL of the product")
    image_url: Optional[str] = Field(
        None,
        description="URL of the current primary image (render hint)"
    )
    primary_image_id: Optional[str] = Field(
        None,
        description="Attachment id of the current primary image"
    )


class AttachmentRecord(BaseSchema):
    """Row of the product_images table."""

    id: str = Field(..., description="Attachment UUID")
    product_id: str = Field(..., description="Product the image was uploaded for")
    title: str = Field(..., description="Filename without extension")
    storage_path: str = Field(..., description="Object key in the storage bucket")
    mime_type: str = Field(..., description="Resolved MIME type")
    url: Optional[str] = Field(None, description="Public URL of the object")
    width: Optional[int] = None
    height: Optional[int] = None
    metadata: dict = Field(default_factory=dict, description="Derived image metadata")
    created_at: Optional[datetime] = None


class StoredObject(BaseModel):
    """A file persisted in object storage."""

    path: str
    url: str
    mime_type: str
    size: int


class ImageDimensions(BaseModel):
    """Pixel size read from an image header."""

    width: int
    height: int
    format: Optional[str] = None


class GalleryImageIds:
    """
    Ordered set of attachment ids making up a product gallery.

    Insertion order is kept, duplicates are impossible, and equality is
    order-insensitive. Serializes to a plain list for the products table.
    """

    def __init__(self, ids: Optional[Iterable] = None):
        self._ids: dict[str, None] = {}
        for image_id in ids or []:
            if image_id is None or str(image_id).strip() == "":
                continue
            self._ids[str(image_id).strip()] = None

    @classmethod
    def parse(cls, raw) -> "GalleryImageIds":
        """
        Build from a stored column value.

        Accepts a list, None, or a legacy comma separated string ("12,15,18").
        """
        if raw is None:
            return cls()
        if isinstance(raw, str):
            return cls(raw.split(","))
        return cls(raw)

    def add(self, image_id: str) -> bool:
        """Append an id. Returns False if it was already present."""
        if image_id in self._ids:
            return False
        self._ids[image_id] = None
        return True

    def remove(self, image_id: str) -> bool:
        """Drop an id. Returns False if it was not present."""
        if image_id not in self._ids:
            return False
        del self._ids[image_id]
        return True

    def to_list(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, image_id) -> bool:
        return str(image_id) in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __bool__(self) -> bool:
        return bool(self._ids)

    def __eq__(self, other) -> bool:
        if isinstance(other, GalleryImageIds):
            return set(self._ids) == set(other._ids)
        return NotImplemented

    def __repr__(self) -> str:
        return f"GalleryImageIds({self.to_list()!r})"
