"""
SKU resolver: filename → product.

The SKU is the filename without its extension. When no product has that
exact SKU, a trailing number (optionally preceded by a hyphen) is stripped
and the lookup retried, so "ABC123-2.jpg" and "ABC1232.jpg" both land on
product "ABC123" as additional images.
"""

import re
from typing import Optional
import structlog

from models.upload import DerivedSku, SkuResolution
from services.catalog_service import CatalogService, get_catalog_service
from utils.filename_utils import (
    sanitize_filename,
    sanitize_sku_text,
    strip_extension,
    validate_sku,
)

logger = structlog.get_logger(__name__)

VARIANT_SUFFIX_RE = re.compile(r"-?\d+$")


def derive_sku(filename: str) -> DerivedSku:
    """
    Derive SKU candidates from a filename.

    Examples:
        'ABC123.jpg'   -> raw='ABC123', fallback='ABC'
        'XYZ999-2.jpg' -> raw='XYZ999-2', fallback='XYZ999'
        'BASE.png'     -> raw='BASE', fallback=None
        '.jpg'         -> raw='' (no stem, rejected as an empty SKU)
    """
    raw = sanitize_sku_text(sanitize_filename(strip_extension(filename or "")))
    fallback = VARIANT_SUFFIX_RE.sub("", raw)
    return DerivedSku(
        raw=raw,
        normalized=raw.strip(),
        fallback=fallback if fallback and fallback != raw else None,
    )


class SkuResolverService:
    """Resolves filenames to catalog products."""

    def __init__(self, catalog: Optional[CatalogService] = None):
        self.catalog = catalog or get_catalog_service()

    def resolve(self, filename: str) -> SkuResolution:
        """
        Resolve a filename to a product.

        Args:
            filename: Uploaded filename (with extension)

        Returns:
            SkuResolution; `error` is set when the derived SKU is invalid,
            `product_id` is None when nothing matched
        """
        derived = derive_sku(filename)

        check = validate_sku(derived.raw)
        if not check.valid:
            logger.info("sku_invalid", filename=filename, sku=derived.raw, reason=check.reason)
            return SkuResolution(filename=filename, derived_sku=derived, error=check.reason)

        product_id = self.catalog.find_product_id_by_sku(derived.normalized)
        if product_id:
            logger.debug("sku_exact_match", filename=filename, sku=derived.normalized)
            return SkuResolution(
                filename=filename,
                derived_sku=derived,
                product_id=product_id,
                matched_sku=derived.normalized,
            )

        if derived.fallback:
            product_id = self.catalog.find_product_id_by_sku(derived.fallback)
            if product_id:
                logger.info(
                    "sku_fallback_match",
                    filename=filename,
                    sku=derived.normalized,
                    matched_sku=derived.fallback
                )
                return SkuResolution(
                    filename=filename,
                    derived_sku=derived,
                    product_id=product_id,
                    matched_sku=derived.fallback,
                    via_fallback=True,
                )

        logger.info("sku_not_found", filename=filename, sku=derived.normalized)
        return SkuResolution(filename=filename, derived_sku=derived)

    def resolve_exact(self, sku: str) -> Optional[str]:
        """Exact lookup of a caller-supplied SKU, no variant fallback."""
        sku = sanitize_sku_text(sku)
        if not validate_sku(sku).valid:
            return None
        return self.catalog.find_product_id_by_sku(sku)


# Singleton instance for convenience
_sku_resolver_service: Optional[SkuResolverService] = None


def get_sku_resolver_service() -> SkuResolverService:
    """Get or create SkuResolverService instance."""
    global _sku_resolver_service
    if _sku_resolver_service is None:
        _sku_resolver_service = SkuResolverService()
    return _sku_resolver_service
