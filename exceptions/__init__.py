"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Transport
    UploadTransportError,

    # File validation
    InvalidFilenameError,
    InvalidSKUError,
    UnreadableFileError,
    FileTooLargeError,
    EmptyFileError,
    InvalidFileTypeError,
    CorruptImageError,
    ImageTooSmallError,

    # Not found
    ProductNotFoundError,
    UploadSessionNotFoundError,
    StagedItemNotFoundError,

    # Conflicts
    GalleryDuplicateError,
    PendingRenamesError,

    # Collaborators
    ObjectStoreError,
    CatalogError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Transport
    "UploadTransportError",

    # File validation
    "InvalidFilenameError",
    "InvalidSKUError",
    "UnreadableFileError",
    "FileTooLargeError",
    "EmptyFileError",
    "InvalidFileTypeError",
    "CorruptImageError",
    "ImageTooSmallError",

    # Not found
    "ProductNotFoundError",
    "UploadSessionNotFoundError",
    "StagedItemNotFoundError",

    # Conflicts
    "GalleryDuplicateError",
    "PendingRenamesError",

    # Collaborators
    "ObjectStoreError",
    "CatalogError",
]
