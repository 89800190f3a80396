"""
Catalog normalizer library.

Converts Shopify, WooCommerce and Wix product exports into one canonical
product model, and turns canonical products back into platform creation
payloads or CSV text. Customer and order exports (Shopify, WooCommerce,
BigCommerce) are normalized into Customer and Order records.

Public API:
- transform.parse_catalog, transform.build_payloads, transform.export_catalog, transform.transform
- io.read_rows, io.rows_from_records, io.read_any_rows, io.write_csv_text
- mapping.normalize_row, mapping.FIELD_MAPS
- combinations.generate_combinations
- validate.finalize_product, validate.ParseStats
- builders.get_builder, export.get_exporter
- settings.load_settings, settings.Settings
- records.parse_customers, records.parse_orders
"""

from . import io, mapping, normalize, models, combinations, validate, parsers, builders, export, records, transform  # re-export modules
from .errors import (
    CatalogError,
    CombinationLimitError,
    EmptyInputError,
    HeaderValidationError,
    InvariantViolationError,
    UnsupportedPlatformError,
)
from .models import Image, Metafield, OptionDefinition, Product, Variant
from .settings import Settings, load_settings
from .transform import build_payloads, export_catalog, parse_catalog

__all__ = [
    "io",
    "mapping",
    "normalize",
    "models",
    "combinations",
    "validate",
    "parsers",
    "builders",
    "export",
    "records",
    "transform",
    "CatalogError",
    "CombinationLimitError",
    "EmptyInputError",
    "HeaderValidationError",
    "InvariantViolationError",
    "UnsupportedPlatformError",
    "Image",
    "Metafield",
    "OptionDefinition",
    "Product",
    "Variant",
    "Settings",
    "load_settings",
    "build_payloads",
    "export_catalog",
    "parse_catalog",
]
