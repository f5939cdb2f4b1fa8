"""
Business logic services.

Each service handles one step of the image upload pipeline.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.object_store_service import ObjectStoreService, get_object_store_service
from services.sku_resolver_service import SkuResolverService, get_sku_resolver_service, derive_sku
from services.attachment_service import AttachmentService, get_attachment_service
from services.staging_service import StagingService, get_staging_service
from services.batch_upload_service import BatchUploadService, get_batch_upload_service
from services.undo_service import UndoService, get_undo_service
from services.report_service import build_csv_report

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "ObjectStoreService",
    "get_object_store_service",
    "SkuResolverService",
    "get_sku_resolver_service",
    "derive_sku",
    "AttachmentService",
    "get_attachment_service",
    "StagingService",
    "get_staging_service",
    "BatchUploadService",
    "get_batch_upload_service",
    "UndoService",
    "get_undo_service",
    "build_csv_report",
]
