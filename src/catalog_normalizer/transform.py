from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .builders import get_builder
from .errors import InvariantViolationError
from .export import get_exporter
from .io import RowTable, check_headers, read_any_rows, read_rows, rows_from_records
from .mapping import REQUIRED_HEADERS, resolve_platform
from .models import Product
from .parsers import ParseResult, get_parser
from .settings import Settings


logger = logging.getLogger(__name__)

# a row needs at least one of these to belong to any product
ANCHOR_COLUMNS = {
    "shopify": ("Handle",),
    "woocommerce": ("ID", "SKU", "Name", "Parent"),
    "wix": ("handleId", "name"),
}


def parse_table(table: RowTable, platform: str, settings: Optional[Settings] = None) -> ParseResult:
    platform = resolve_platform(platform)
    settings = settings or Settings()
    if not settings.skip_validation:
        check_headers(table, REQUIRED_HEADERS[platform], platform)
    return get_parser(platform)(table, settings)


def parse_catalog(
    source: Union[str, Iterable[dict]],
    platform: str,
    settings: Optional[Settings] = None,
) -> ParseResult:
    """Parse CSV text, or a list of raw row dicts, into canonical products."""
    platform = resolve_platform(platform)
    anchors = ANCHOR_COLUMNS[platform]
    if isinstance(source, str):
        table = read_rows(source, anchors=anchors)
    else:
        table = rows_from_records(list(source), anchors=anchors)
    return parse_table(table, platform, settings)


def build_payloads(products: Sequence[Product], platform: str) -> List[dict]:
    builder = get_builder(platform)
    payloads = []
    for product in products:
        payload = builder(product)
        if payload is None:
            raise InvariantViolationError(f"Product {product.handle} has no variants after finalization")
        payloads.append(payload)
    return payloads


def export_catalog(products: Sequence[Product], platform: str, columns: Optional[Sequence[str]] = None) -> str:
    return get_exporter(platform)(products, columns)


def transform(
    input_path: Path,
    source: str,
    target: str,
    settings: Optional[Settings] = None,
) -> str:
    """Read a source export file (csv, xlsx or xls) and return target CSV text."""
    source = resolve_platform(source)
    table = read_any_rows(Path(input_path), anchors=ANCHOR_COLUMNS[source])
    result = parse_table(table, source, settings)
    logger.info(f"{input_path}: {len(result.products)} products, stats {result.stats.as_dict()}")
    return export_catalog(result.products, target)
