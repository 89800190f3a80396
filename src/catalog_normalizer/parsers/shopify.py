"""
Grouped-continuation parser for Shopify-style product CSVs.

All rows sharing a Handle belong to one product. The first row carries the
product fields; later rows add an image, a variant or both, and may leave
option names blank, so names are carried forward per handle.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..io import RowTable
from ..mapping import SHOPIFY_FIELD_MAP, NormalizedRow, normalize_row
from ..models import MAX_OPTIONS, Image, Metafield, OptionDefinition, Product, Variant
from ..normalize import (
    grams_to_unit,
    normalize_weight_unit,
    parse_bool,
    split_list,
    to_int,
)
from ..settings import Settings
from ..validate import ParseStats, finalize_product, is_placeholder_option
from .common import ParseResult, float_value, int_value, price_text


logger = logging.getLogger(__name__)

SEO_METAFIELD_KEYS = {"title": "title_tag", "description": "description_tag"}
GOOGLE_NAMESPACE = "mm-google-shopping"

DRAFT_STATUSES = {"draft", "archived", "unlisted"}


@dataclass
class CarryForwardState:
    option_names: List[str] = field(default_factory=lambda: [""] * MAX_OPTIONS)


@dataclass
class ShopifyBatch:
    settings: Settings = field(default_factory=Settings)
    products: Dict[str, Product] = field(default_factory=dict)
    carry: Dict[str, CarryForwardState] = field(default_factory=dict)
    stats: ParseStats = field(default_factory=ParseStats)


def _status(norm: NormalizedRow) -> str:
    status = norm.get("status").strip().lower()
    if status:
        return "draft" if status in DRAFT_STATUSES else "active"
    return "active" if parse_bool(norm.get("published"), default=True) else "draft"


def _standard_metafields(norm: NormalizedRow, metafield_type: str) -> List[Metafield]:
    out = []
    for key, value in (norm.fields.get("seo") or {}).items():
        if value.strip():
            out.append(Metafield(namespace="global", key=SEO_METAFIELD_KEYS[key], value=value.strip(), type=metafield_type))
    for key, value in (norm.fields.get("google") or {}).items():
        if value.strip():
            out.append(Metafield(namespace=GOOGLE_NAMESPACE, key=key, value=value.strip(), type=metafield_type))
    return out


def _new_product(handle: str, norm: NormalizedRow) -> Product:
    return Product(
        handle=handle,
        title=norm.get("title").strip(),
        body_html=norm.get("body_html"),
        vendor=norm.get("vendor").strip(),
        product_type=norm.get("product_type").strip(),
        product_category=norm.get("product_category").strip(),
        tags=split_list(norm.get("tags")),
        status=_status(norm),
    )


def _fill_missing(product: Product, norm: NormalizedRow) -> None:
    # continuation rows only fill fields the first row left empty
    for attr in ("title", "vendor", "product_type", "product_category"):
        if not getattr(product, attr):
            setattr(product, attr, norm.get(attr).strip())
    if not product.body_html:
        product.body_html = norm.get("body_html")
    if not product.tags:
        product.tags = split_list(norm.get("tags"))


def _add_image(product: Product, src: str, position: str, alt: str, stats: ParseStats) -> None:
    src = (src or "").strip()
    if not src:
        return
    pos = to_int(position)
    if pos is None or pos < 1:
        if (position or "").strip():
            stats.numeric_defaults += 1
            logger.warning(f"Bad image position {position!r} for {product.handle}; appending")
        pos = len(product.images) + 1
    product.images.append(Image(src=src, position=pos, alt=(alt or "").strip()))


def _variant_from_row(norm: NormalizedRow, stats: ParseStats) -> Variant:
    values = []
    for i in range(1, MAX_OPTIONS + 1):
        value = norm.get(f"option{i}.value").strip()
        values.append("" if is_placeholder_option(value) else value)

    unit = normalize_weight_unit(norm.get("variant.weight_unit"))
    grams = float_value(norm.get("variant.grams"), stats, "Variant Grams")
    compare = price_text(norm.get("variant.compare_at_price"), stats, "compare-at price")
    policy = norm.get("variant.inventory_policy").strip().lower()
    return Variant(
        option_values=values,
        price=price_text(norm.get("variant.price"), stats),
        compare_at_price=compare or None,
        sku=norm.get("variant.sku").strip(),
        barcode=norm.get("variant.barcode").strip(),
        weight=grams_to_unit(grams, unit) if grams else 0.0,
        weight_unit=unit,
        inventory_quantity=int_value(norm.get("variant.inventory_quantity"), stats, "Variant Inventory Qty"),
        inventory_policy="continue" if policy == "continue" else "deny",
        inventory_management=norm.get("variant.inventory_management").strip() or "shopify",
        requires_shipping=parse_bool(norm.get("variant.requires_shipping"), default=True),
        taxable=parse_bool(norm.get("variant.taxable"), default=True),
    )


def consume_row(batch: ShopifyBatch, row: dict, table: Optional[RowTable] = None) -> Optional[Product]:
    """Fold one row into the batch; returns the product it touched."""
    settings = batch.settings
    norm = normalize_row(
        row,
        SHOPIFY_FIELD_MAP,
        table.index if table is not None else None,
        settings.default_namespace,
        settings.default_metafield_type,
    )
    batch.stats.rows_read += 1
    handle = norm.get("handle").strip()
    if not handle:
        batch.stats.rows_skipped += 1
        logger.warning(f"Skipping row {batch.stats.rows_read}: no Handle")
        return None

    state = batch.carry.setdefault(handle, CarryForwardState())
    for i in range(MAX_OPTIONS):
        name = norm.get(f"option{i + 1}.name").strip()
        if name:
            state.option_names[i] = name

    product = batch.products.get(handle)
    if product is None:
        product = _new_product(handle, norm)
        batch.products[handle] = product
        logger.debug(f"New product {handle}")
    else:
        _fill_missing(product, norm)

    names = list(state.option_names)
    while names and not names[-1]:
        names.pop()
    product.options = [OptionDefinition(name=n) for n in names]

    _add_image(product, norm.get("image.src"), norm.get("image.position"), norm.get("image.alt"), batch.stats)
    _add_image(product, norm.get("variant.image"), "", "", batch.stats)
    product.variants.append(_variant_from_row(norm, batch.stats))
    product.metafields.extend(norm.metafields)
    product.metafields.extend(_standard_metafields(norm, settings.default_metafield_type))
    return product


def parse_shopify(table: RowTable, settings: Optional[Settings] = None) -> ParseResult:
    batch = ShopifyBatch(settings=settings or Settings())
    batch.stats.rows_skipped += table.skipped
    for row in table:
        consume_row(batch, row, table)

    products = [
        finalize_product(p, batch.stats, batch.settings.skip_validation)
        for p in batch.products.values()
    ]
    logger.info(f"Parsed {len(products)} Shopify products from {batch.stats.rows_read} rows")
    return ParseResult(products=products, stats=batch.stats)
