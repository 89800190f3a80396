"""
Parent/child parser for WooCommerce product exports.

``variable`` rows create parents and ``variation`` rows attach to them by the
Parent column (an ID, optionally written ``id:123``, or the parent SKU).
``simple`` rows without a parent are standalone single-variant products.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from ..io import RowTable
from ..mapping import WOOCOMMERCE_FIELD_MAP, NormalizedRow, normalize_row
from ..models import MAX_OPTIONS, Image, Metafield, OptionDefinition, Product, Variant
from ..normalize import parse_bool, sanitize_key, split_list, unique
from ..settings import Settings
from ..validate import ParseStats, finalize_product
from .common import (
    ParseResult,
    float_value,
    int_value,
    policy_from_stock,
    price_text,
    unique_handle,
)


logger = logging.getLogger(__name__)

NAMESPACE = "woocommerce"
CATEGORY_SEPARATOR = ">"

_ESCAPED_NEWLINE = re.compile(r"\\n|\\r")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class _Group:
    gid: str
    row: NormalizedRow
    kind: str
    variations: List[NormalizedRow] = field(default_factory=list)


def row_types(raw: str) -> set:
    """'simple, virtual' -> {'simple', 'virtual'}; blank means simple."""
    tokens = {t.strip().lower() for t in (raw or "").split(",") if t.strip()}
    return tokens or {"simple"}


def parent_ref(raw: str) -> str:
    ref = (raw or "").strip()
    if ref.lower().startswith("id:"):
        ref = ref[3:].strip()
    return ref


def clean_description(text: str) -> str:
    text = _ESCAPED_NEWLINE.sub(" ", text or "")
    return _WHITESPACE.sub(" ", text).strip()


def woo_prices(regular_raw: str, sale_raw: str, stats: ParseStats) -> tuple:
    """(price, compare_at_price) from WooCommerce regular/sale prices."""
    regular = price_text(regular_raw, stats, "regular price")
    sale = price_text(sale_raw, stats, "sale price")
    if sale and regular and Decimal(sale) < Decimal(regular):
        return sale, regular
    if sale and not regular:
        return sale, None
    return regular, None


def _attributes(norm: NormalizedRow) -> List[tuple]:
    """[(name, raw values)] for the attribute slots that have a name."""
    out = []
    for i in range(1, MAX_OPTIONS + 1):
        name = norm.get(f"attributes.{i}.name").strip()
        if name:
            out.append((name, norm.get(f"attributes.{i}.values")))
    return out


def _categories(raw: str) -> List[str]:
    paths = []
    for entry in split_list(raw):
        parts = [p.strip() for p in entry.split(CATEGORY_SEPARATOR) if p.strip()]
        if parts:
            paths.append(f" {CATEGORY_SEPARATOR} ".join(parts))
    return paths


def _variant(
    norm: NormalizedRow,
    option_values: List[str],
    stats: ParseStats,
    parent: Optional[NormalizedRow] = None,
) -> Variant:
    price, compare = woo_prices(norm.get("regular_price"), norm.get("sale_price"), stats)
    weight_raw = norm.get("weight").strip() or (parent.get("weight") if parent is not None else "")
    stock_raw = norm.get("stock").strip()
    qty = int_value(stock_raw, stats, "Stock")
    backorders = norm.get("backorders").strip().lower()
    if backorders:
        policy = "deny" if backorders in ("0", "no", "false") else "continue"
    else:
        policy = policy_from_stock(qty)
    types = row_types(norm.get("type"))
    tax_status = (norm.get("tax_status") or (parent.get("tax_status") if parent is not None else "")).strip().lower()
    return Variant(
        option_values=option_values,
        price=price,
        compare_at_price=compare,
        sku=norm.get("sku").strip(),
        barcode=norm.get("barcode").strip(),
        weight=float_value(weight_raw, stats, "Weight (kg)"),
        weight_unit="kg",
        inventory_quantity=qty,
        inventory_policy=policy,
        inventory_management="shopify" if stock_raw else "",
        requires_shipping="virtual" not in types and "downloadable" not in types,
        taxable=tax_status != "none",
    )


def _build_product(group: _Group, used_handles: set, settings: Settings, stats: ParseStats) -> Optional[Product]:
    norm = group.row
    title = norm.get("name").strip()
    if not title:
        logger.warning(f"Skipping WooCommerce product {group.gid}: no Name")
        return None

    collections = _categories(norm.get("categories"))
    product = Product(
        handle=unique_handle(title, used_handles, fallback=group.gid),
        title=title,
        body_html=clean_description(norm.get("description") or norm.get("short_description")),
        vendor=(split_list(norm.get("brands")) or [""])[0],
        product_category=collections[0] if collections else "",
        tags=split_list(norm.get("tags")),
        status="active" if parse_bool(norm.get("published")) else "draft",
        collections=collections,
    )
    for src in split_list(norm.get("images")):
        product.images.append(Image(src=src, position=len(product.images) + 1, alt=title))

    parent_attrs = _attributes(norm)
    if group.kind == "variable" and group.variations:
        # attribute name -> value, per variation
        picked = []
        for v in group.variations:
            values = {}
            for i in range(1, MAX_OPTIONS + 1):
                name = v.get(f"attributes.{i}.name").strip()
                if not name and i <= len(parent_attrs):
                    name = parent_attrs[i - 1][0]
                value = v.get(f"attributes.{i}.values").strip()
                if name and value:
                    values[name] = value
            picked.append(values)

        names = [n for n, _ in parent_attrs if any(n in p for p in picked)]
        names += unique(n for p in picked for n in p if n not in names)
        if len(names) > MAX_OPTIONS:
            logger.warning(f"{product.handle}: only the first {MAX_OPTIONS} of {len(names)} attributes become options")
            names = names[:MAX_OPTIONS]
        declared = dict(parent_attrs)
        product.options = [OptionDefinition(name=n, values=split_list(declared.get(n, ""))) for n in names]
        for v, values in zip(group.variations, picked):
            product.variants.append(_variant(v, [values.get(n, "") for n in names], stats, parent=norm))
            for src in split_list(v.get("images")):
                product.images.append(Image(src=src, position=len(product.images) + 1, alt=title))
        unused = [(n, raw) for n, raw in parent_attrs if n not in names]
    else:
        if group.kind == "variable":
            logger.info(f"Variable product {product.handle} has no variations; using the parent row")
        product.variants.append(_variant(norm, [], stats))
        unused = parent_attrs

    # attributes that do not vary stay on the product
    for name, raw in unused:
        product.metafields.append(
            Metafield(namespace=NAMESPACE, key=sanitize_key(name), value=raw.strip(), type=settings.default_metafield_type)
        )
    if not group.gid.startswith("row-"):
        product.metafields.append(
            Metafield(namespace=NAMESPACE, key="product_id", value=group.gid, type=settings.default_metafield_type)
        )
    product.metafields.extend(norm.metafields)
    return product


def parse_woocommerce(table: RowTable, settings: Optional[Settings] = None) -> ParseResult:
    settings = settings or Settings()
    stats = ParseStats(rows_skipped=table.skipped)
    rows = [
        normalize_row(row, WOOCOMMERCE_FIELD_MAP, table.index, settings.default_namespace, settings.default_metafield_type)
        for row in table
    ]
    stats.rows_read = len(rows)

    groups: Dict[str, _Group] = {}
    by_sku: Dict[str, str] = {}
    variations = []
    for n, norm in enumerate(rows, 1):
        types = row_types(norm.get("type"))
        if "variation" in types:
            variations.append(norm)
            continue
        if "variable" in types:
            kind = "variable"
        elif "simple" in types and not parent_ref(norm.get("parent")):
            kind = "simple"
        else:
            stats.rows_skipped += 1
            logger.warning(f"Skipping row {n}: unsupported type {norm.get('type')!r}")
            continue
        gid = norm.get("id").strip() or f"row-{n}"
        if gid in groups:
            stats.rows_skipped += 1
            logger.warning(f"Skipping row {n}: duplicate ID {gid}")
            continue
        groups[gid] = _Group(gid=gid, row=norm, kind=kind)
        sku = norm.get("sku").strip()
        if sku:
            by_sku.setdefault(sku, gid)

    for norm in variations:
        ref = parent_ref(norm.get("parent"))
        group = groups.get(ref) or groups.get(by_sku.get(ref, ""))
        if group is None or group.kind != "variable":
            stats.orphan_variations += 1
            logger.warning(f"Dropping orphan variation {norm.get('sku') or norm.get('id')!r}: parent {ref!r} not found")
            continue
        group.variations.append(norm)

    products = []
    used_handles: set = set()
    for group in groups.values():
        product = _build_product(group, used_handles, settings, stats)
        if product is None:
            stats.rows_skipped += 1
            continue
        products.append(finalize_product(product, stats, settings.skip_validation))
    logger.info(
        f"Parsed {len(products)} WooCommerce products from {stats.rows_read} rows "
        f"({stats.orphan_variations} orphan variations)"
    )
    return ParseResult(products=products, stats=stats)
