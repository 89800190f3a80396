"""
Single-row parser for Wix Stores product exports.

One ``Product`` row is one product. Options are encoded as a name plus a
semicolon separated description; the variant matrix is generated from them.
"""
from __future__ import annotations
import logging
import re
from decimal import Decimal
from typing import List, Optional

from ..combinations import generate_combinations
from ..io import RowTable
from ..mapping import WIX_FIELD_MAP, NormalizedRow, normalize_row
from ..models import MAX_OPTIONS, Image, Metafield, OptionDefinition, Product, Variant
from ..normalize import (
    format_decimal,
    normalize_weight_unit,
    parse_bool,
    round_cents,
    split_list,
    to_decimal,
    unique,
)
from ..settings import Settings
from ..validate import ParseStats, finalize_product
from .common import ParseResult, float_value, int_value, policy_from_stock, unique_handle


logger = logging.getLogger(__name__)

NAMESPACE = "wix"
OPTION_SLOTS = 6
ADDITIONAL_INFO_SLOTS = 6
CUSTOM_TEXT_SLOTS = 2
DISCOUNT_MODES = ("PERCENT", "AMOUNT")
SKIPPED_FIELD_TYPES = {"variant", "choice"}

_IMAGE_SEPARATORS = re.compile(r"[;,]")


def option_values(description: str) -> List[str]:
    """'Color:Red;Color:Blue' -> ['Red', 'Blue']; plain 'S;M' -> ['S', 'M']."""
    out = []
    for entry in split_list(description, ";"):
        if ":" in entry:
            entry = entry.split(":", 1)[1].strip()
        if entry:
            out.append(entry)
    return unique(out)


def image_urls(raw: str, base_url: str) -> List[str]:
    urls = []
    for part in _IMAGE_SEPARATORS.split(raw or ""):
        part = part.strip()
        if not part or part.lower() == "null":
            continue
        if not part.lower().startswith(("http://", "https://")):
            part = base_url.rstrip("/") + "/" + part.lstrip("/")
        urls.append(part)
    return unique(urls)


def discounted_price(price: Decimal, mode: str, value: Optional[Decimal]) -> Optional[Decimal]:
    """Discounted price, or None when no discount applies."""
    mode = (mode or "").strip().upper()
    if mode not in DISCOUNT_MODES or value is None or value <= 0:
        return None
    if mode == "PERCENT":
        result = price - price * value / Decimal(100)
    else:
        result = price - value
    return max(round_cents(result), Decimal(0))


def _inventory(raw: str, stats: ParseStats) -> tuple:
    text = (raw or "").strip()
    lowered = text.lower()
    # stock status without a count means inventory is not tracked
    if lowered in ("instock", "in stock"):
        return 0, policy_from_stock(0, in_stock=True), ""
    if lowered in ("outofstock", "out of stock"):
        return 0, policy_from_stock(0, in_stock=False), ""
    qty = int_value(text, stats, "inventory")
    return qty, policy_from_stock(qty), "shopify"


def _metafield(key: str, value: str, settings: Settings) -> Metafield:
    return Metafield(namespace=NAMESPACE, key=key, value=(value or "").strip(), type=settings.default_metafield_type)


def _wix_metafields(norm: NormalizedRow, settings: Settings) -> List[Metafield]:
    out = [
        _metafield("ribbon", norm.get("ribbon"), settings),
        _metafield("surcharge", norm.get("surcharge"), settings),
        _metafield("discountMode", norm.get("discount.mode"), settings),
        _metafield("discountValue", norm.get("discount.value"), settings),
        _metafield("cost", norm.get("cost"), settings),
    ]
    for i in range(1, ADDITIONAL_INFO_SLOTS + 1):
        title = norm.get(f"additional_info.{i}.title").strip()
        desc = norm.get(f"additional_info.{i}.description").strip()
        if title or desc:
            out.append(_metafield(f"additionalInfo{i}", f"{title}: {desc}" if title else desc, settings))
    for i in range(1, CUSTOM_TEXT_SLOTS + 1):
        out.append(_metafield(f"customTextField{i}", norm.get(f"custom_text.{i}.field"), settings))
        out.append(_metafield(f"customTextCharLimit{i}", norm.get(f"custom_text.{i}.char_limit"), settings))
        out.append(_metafield(f"customTextMandatory{i}", norm.get(f"custom_text.{i}.mandatory"), settings))
    return out


def _options(norm: NormalizedRow, handle: str, settings: Settings) -> tuple:
    options = []
    extra = []
    for i in range(1, OPTION_SLOTS + 1):
        name = norm.get(f"options.{i}.name").strip()
        values = option_values(norm.get(f"options.{i}.description"))
        if not name or not values:
            continue
        if len(options) < MAX_OPTIONS:
            options.append(OptionDefinition(name=name, values=values))
        else:
            logger.warning(f"{handle}: option {name!r} exceeds {MAX_OPTIONS} options; kept as metafield")
            extra.append(_metafield(f"productOption{i}", f"{name}: {';'.join(values)}", settings))
    return options, extra


def parse_wix_row(norm: NormalizedRow, handle: str, settings: Settings, stats: ParseStats) -> Product:
    title = norm.get("title").strip()
    collections = split_list(norm.get("collections"), ";")
    product = Product(
        handle=handle,
        title=title,
        body_html=norm.get("body_html"),
        vendor=norm.get("vendor").strip(),
        product_type=norm.get("product_type").strip(),
        product_category=collections[0] if collections else "",
        tags=split_list(norm.get("tags")),
        status="active" if parse_bool(norm.get("visible")) else "draft",
        collections=collections,
    )
    for pos, src in enumerate(image_urls(norm.get("images"), settings.wix_media_base_url), 1):
        product.images.append(Image(src=src, position=pos, alt=title))

    price_raw = norm.get("price").strip()
    base = to_decimal(price_raw)
    if base is None:
        if price_raw:
            stats.numeric_defaults += 1
            logger.warning(f"Unparseable price {price_raw!r} for {handle}; using 0")
        base = Decimal(0)
    discount = discounted_price(base, norm.get("discount.mode"), to_decimal(norm.get("discount.value")))
    if discount is None:
        price, compare = format_decimal(base), None
    else:
        price, compare = format_decimal(discount), format_decimal(base)

    qty, policy, tracker = _inventory(norm.get("inventory"), stats)
    weight = float_value(norm.get("weight"), stats)
    options, extra = _options(norm, handle, settings)
    product.options = options
    for combo in generate_combinations(options, settings.max_combinations, context=handle):
        product.variants.append(
            Variant(
                option_values=list(combo),
                price=price,
                compare_at_price=compare,
                sku=norm.get("sku").strip(),
                barcode=norm.get("barcode").strip(),
                weight=weight,
                weight_unit=normalize_weight_unit(norm.get("weight_unit")),
                inventory_quantity=qty,
                inventory_policy=policy,
                inventory_management=tracker,
            )
        )
    product.metafields.extend(_wix_metafields(norm, settings))
    product.metafields.extend(extra)
    product.metafields.extend(norm.metafields)
    return product


def parse_wix(table: RowTable, settings: Optional[Settings] = None) -> ParseResult:
    settings = settings or Settings()
    stats = ParseStats(rows_skipped=table.skipped)
    used_handles: set = set()
    products = []
    for row in table:
        stats.rows_read += 1
        norm = normalize_row(row, WIX_FIELD_MAP, table.index, settings.default_namespace, settings.default_metafield_type)
        field_type = norm.get("field_type").strip().lower()
        if field_type in SKIPPED_FIELD_TYPES:
            stats.rows_skipped += 1
            logger.debug(f"Skipping Wix {field_type} row {stats.rows_read}")
            continue
        handle_id = norm.get("handle").strip()
        title = norm.get("title").strip()
        if not handle_id and not title:
            stats.rows_skipped += 1
            logger.warning(f"Skipping row {stats.rows_read}: no handleId or name")
            continue
        if handle_id and handle_id not in used_handles:
            used_handles.add(handle_id)
            handle = handle_id
        else:
            handle = unique_handle(handle_id or title, used_handles)
        product = parse_wix_row(norm, handle, settings, stats)
        products.append(finalize_product(product, stats, settings.skip_validation))
    logger.info(f"Parsed {len(products)} Wix products from {stats.rows_read} rows")
    return ParseResult(products=products, stats=stats)
