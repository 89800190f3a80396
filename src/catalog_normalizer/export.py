"""
Canonical products -> platform CSV text.

The Shopify exporter writes the grouped-continuation layout that the Shopify
parser reads back: one main row per product, then one row per remaining
variant with only the variant columns filled.
"""
from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional, Sequence

from .io import write_csv_text
from .mapping import resolve_platform
from .models import DEFAULT_OPTION_NAME, DEFAULT_OPTION_VALUE, MAX_OPTIONS, Image, Product, Variant
from .normalize import format_decimal, grams_to_unit, to_decimal, unit_to_grams
from .parsers.shopify import GOOGLE_NAMESPACE, SEO_METAFIELD_KEYS
from .parsers.wix import ADDITIONAL_INFO_SLOTS, CUSTOM_TEXT_SLOTS, OPTION_SLOTS
from .parsers.woocommerce import NAMESPACE as WOO_NAMESPACE


logger = logging.getLogger(__name__)


SHOPIFY_COLUMNS = [
    "Handle",
    "Title",
    "Body (HTML)",
    "Vendor",
    "Product Category",
    "Type",
    "Tags",
    "Published",
    "Option1 Name",
    "Option1 Value",
    "Option2 Name",
    "Option2 Value",
    "Option3 Name",
    "Option3 Value",
    "Variant SKU",
    "Variant Grams",
    "Variant Inventory Tracker",
    "Variant Inventory Qty",
    "Variant Inventory Policy",
    "Variant Fulfillment Service",
    "Variant Price",
    "Variant Compare At Price",
    "Variant Requires Shipping",
    "Variant Taxable",
    "Variant Barcode",
    "Image Src",
    "Image Position",
    "Image Alt Text",
    "SEO Title",
    "SEO Description",
    "Google Shopping / Google Product Category",
    "Google Shopping / Gender",
    "Google Shopping / Age Group",
    "Google Shopping / MPN",
    "Google Shopping / Condition",
    "Google Shopping / Custom Product",
    "Variant Weight Unit",
    "Status",
]

WOOCOMMERCE_COLUMNS = [
    "ID",
    "Type",
    "SKU",
    "Name",
    "Published",
    "Description",
    "Tax status",
    "In stock?",
    "Stock",
    "Backorders allowed?",
    "Weight (kg)",
    "Sale price",
    "Regular price",
    "Categories",
    "Tags",
    "Brands",
    "Images",
    "Parent",
]
for _i in range(1, MAX_OPTIONS + 1):
    WOOCOMMERCE_COLUMNS += [
        f"Attribute {_i} name",
        f"Attribute {_i} value(s)",
        f"Attribute {_i} visible",
        f"Attribute {_i} global",
    ]

WIX_COLUMNS = [
    "handleId",
    "fieldType",
    "name",
    "description",
    "productImageUrl",
    "collection",
    "sku",
    "ribbon",
    "price",
    "surcharge",
    "visible",
    "discountMode",
    "discountValue",
    "inventory",
    "weight",
    "cost",
]
for _i in range(1, OPTION_SLOTS + 1):
    WIX_COLUMNS += [f"productOptionName{_i}", f"productOptionType{_i}", f"productOptionDescription{_i}"]
for _i in range(1, ADDITIONAL_INFO_SLOTS + 1):
    WIX_COLUMNS += [f"additionalInfoTitle{_i}", f"additionalInfoDescription{_i}"]
for _i in range(1, CUSTOM_TEXT_SLOTS + 1):
    WIX_COLUMNS += [f"customTextField{_i}", f"customTextCharLimit{_i}", f"customTextMandatory{_i}"]
WIX_COLUMNS.append("brand")
del _i

GOOGLE_COLUMNS = {
    "google_product_category": "Google Shopping / Google Product Category",
    "gender": "Google Shopping / Gender",
    "age_group": "Google Shopping / Age Group",
    "mpn": "Google Shopping / MPN",
    "condition": "Google Shopping / Condition",
    "custom_product": "Google Shopping / Custom Product",
}
SEO_COLUMNS = {"title_tag": "SEO Title", "description_tag": "SEO Description"}


def _bool(value: bool) -> str:
    return "true" if value else "false"


def metafield_column(namespace: str, key: str) -> str:
    return f"{key} (product.metafields.{namespace}.{key})"


def _standard_metafield_column(namespace: str, key: str) -> Optional[str]:
    if namespace == "global" and key in SEO_METAFIELD_KEYS.values():
        return SEO_COLUMNS[key]
    if namespace == GOOGLE_NAMESPACE:
        return GOOGLE_COLUMNS.get(key)
    return None


def _metafield_cells(product: Product) -> Dict[str, str]:
    """Column -> value for every metafield; first occurrence of a namespace/key wins."""
    cells: Dict[str, str] = {}
    for mf in product.metafields:
        column = _standard_metafield_column(mf.namespace, mf.key) or metafield_column(mf.namespace, mf.key)
        cells.setdefault(column, mf.value)
    return cells


# ── Shopify (grouped continuation) ────────────────────────────────

def _shopify_variant_cells(out: dict, product: Product, variant: Variant) -> None:
    for i, value in enumerate(variant.option_values, 1):
        out[f"Option{i} Value"] = value
    if not product.options:
        out["Option1 Value"] = DEFAULT_OPTION_VALUE
    out["Variant SKU"] = variant.sku
    out["Variant Grams"] = str(unit_to_grams(variant.weight, variant.weight_unit))
    out["Variant Inventory Tracker"] = variant.inventory_management
    out["Variant Inventory Qty"] = str(variant.inventory_quantity)
    out["Variant Inventory Policy"] = variant.inventory_policy
    out["Variant Fulfillment Service"] = "manual"
    out["Variant Price"] = variant.price
    out["Variant Compare At Price"] = variant.compare_at_price or ""
    out["Variant Requires Shipping"] = _bool(variant.requires_shipping)
    out["Variant Taxable"] = _bool(variant.taxable)
    out["Variant Barcode"] = variant.barcode
    out["Variant Weight Unit"] = variant.weight_unit


def _image_cells(out: dict, image: Image) -> None:
    out["Image Src"] = image.src
    out["Image Position"] = str(image.position)
    out["Image Alt Text"] = image.alt


def shopify_rows(product: Product, columns: Sequence[str]) -> List[dict]:
    images = sorted(product.images, key=lambda i: i.position)
    rows = []

    main = {h: "" for h in columns}
    main["Handle"] = product.handle
    main["Title"] = product.title
    main["Body (HTML)"] = product.body_html
    main["Vendor"] = product.vendor
    main["Product Category"] = product.product_category
    main["Type"] = product.product_type
    main["Tags"] = ", ".join(product.tags)
    main["Published"] = _bool(product.status == "active")
    main["Status"] = product.status
    if product.options:
        for i, opt in enumerate(product.options, 1):
            main[f"Option{i} Name"] = opt.name
    else:
        main["Option1 Name"] = DEFAULT_OPTION_NAME
    main.update(_metafield_cells(product))
    _shopify_variant_cells(main, product, product.variants[0])
    rows.append(main)

    for variant in product.variants[1:]:
        out = {h: "" for h in columns}
        out["Handle"] = product.handle
        _shopify_variant_cells(out, product, variant)
        rows.append(out)

    for row, image in zip(rows, images):
        _image_cells(row, image)
    for image in images[len(rows):]:
        out = {h: "" for h in columns}
        out["Handle"] = product.handle
        _image_cells(out, image)
        rows.append(out)
    return rows


def export_grouped_csv(products: Sequence[Product], columns: Optional[Sequence[str]] = None) -> str:
    if columns is None:
        columns = list(SHOPIFY_COLUMNS)
        for product in products:
            for column in _metafield_cells(product):
                if column not in columns:
                    columns.append(column)
    rows = []
    for product in products:
        if not product.variants:
            logger.error(f"Skipping export of {product.handle}: product has no variants")
            continue
        rows.extend(shopify_rows(product, columns))
    logger.info(f"Exported {len(products)} products as {len(rows)} Shopify rows")
    return write_csv_text(rows, list(columns))


# ── WooCommerce ───────────────────────────────────────────────────

def _woo_weight(variant: Variant) -> str:
    if not variant.weight:
        return ""
    kg = grams_to_unit(unit_to_grams(variant.weight, variant.weight_unit), "kg")
    return f"{round(kg, 3):g}"


def _woo_variant_cells(out: dict, variant: Variant) -> None:
    price = to_decimal(variant.price)
    compare = to_decimal(variant.compare_at_price)
    if price is not None and compare is not None and compare > price:
        out["Regular price"] = variant.compare_at_price
        out["Sale price"] = variant.price
    else:
        out["Regular price"] = variant.price
    out["SKU"] = variant.sku
    out["Tax status"] = "taxable" if variant.taxable else "none"
    managed = bool(variant.inventory_management)
    out["Stock"] = str(variant.inventory_quantity) if managed else ""
    out["In stock?"] = "1" if variant.inventory_quantity > 0 or variant.inventory_policy == "continue" else "0"
    out["Backorders allowed?"] = "1" if variant.inventory_policy == "continue" else "0"
    out["Weight (kg)"] = _woo_weight(variant)


def woocommerce_rows(product: Product, columns: Sequence[str]) -> List[dict]:
    parent = {h: "" for h in columns}
    id_field = product.metafield(WOO_NAMESPACE, "product_id")
    parent["ID"] = id_field.value if id_field else ""
    parent["Name"] = product.title
    parent["Published"] = "1" if product.status == "active" else "0"
    parent["Description"] = product.body_html
    parent["Categories"] = ", ".join(product.collections or ([product.product_category] if product.product_category else []))
    parent["Tags"] = ", ".join(product.tags)
    parent["Brands"] = product.vendor
    parent["Images"] = ", ".join(i.src for i in sorted(product.images, key=lambda i: i.position))

    if not product.options:
        parent["Type"] = "simple"
        _woo_variant_cells(parent, product.variants[0])
        return [parent]

    parent["Type"] = "variable"
    parent["SKU"] = product.handle
    for i, opt in enumerate(product.options, 1):
        parent[f"Attribute {i} name"] = opt.name
        parent[f"Attribute {i} value(s)"] = ", ".join(opt.values)
        parent[f"Attribute {i} visible"] = "1"
        parent[f"Attribute {i} global"] = "0"
    rows = [parent]
    for variant in product.variants:
        out = {h: "" for h in columns}
        out["Type"] = "variation"
        out["Name"] = f"{product.title} - {variant.title}"
        out["Published"] = "1"
        out["Parent"] = product.handle
        _woo_variant_cells(out, variant)
        for i, opt in enumerate(product.options, 1):
            out[f"Attribute {i} name"] = opt.name
            out[f"Attribute {i} value(s)"] = variant.option_values[i - 1]
        rows.append(out)
    return rows


def export_woocommerce_csv(products: Sequence[Product], columns: Optional[Sequence[str]] = None) -> str:
    columns = list(columns or WOOCOMMERCE_COLUMNS)
    rows = []
    for product in products:
        if not product.variants:
            logger.error(f"Skipping export of {product.handle}: product has no variants")
            continue
        rows.extend(woocommerce_rows(product, columns))
    logger.info(f"Exported {len(products)} products as {len(rows)} WooCommerce rows")
    return write_csv_text(rows, columns)


# ── Wix ───────────────────────────────────────────────────────────

def _wix_meta(product: Product, key: str) -> str:
    mf = product.metafield("wix", key)
    return mf.value if mf else ""


def wix_row(product: Product, columns: Sequence[str]) -> dict:
    first = product.variants[0]
    out = {h: "" for h in columns}
    out["handleId"] = product.handle
    out["fieldType"] = "Product"
    out["name"] = product.title
    out["description"] = product.body_html
    out["productImageUrl"] = ";".join(i.src for i in sorted(product.images, key=lambda i: i.position))
    out["collection"] = ";".join(product.collections)
    out["sku"] = first.sku
    out["visible"] = _bool(product.status == "active")
    out["weight"] = str(first.weight) if first.weight else ""
    out["brand"] = product.vendor

    price = to_decimal(first.price)
    compare = to_decimal(first.compare_at_price)
    if price is not None and compare is not None and compare > price:
        # Wix has no compare-at price; the difference becomes a fixed discount
        out["price"] = format_decimal(compare)
        out["discountMode"] = "AMOUNT"
        out["discountValue"] = format_decimal(compare - price)
    else:
        out["price"] = first.price

    if first.inventory_management:
        out["inventory"] = str(first.inventory_quantity)
    else:
        out["inventory"] = "InStock" if first.inventory_policy == "continue" else "OutOfStock"

    for i, opt in enumerate(product.options, 1):
        out[f"productOptionName{i}"] = opt.name
        out[f"productOptionType{i}"] = "DROP_DOWN"
        out[f"productOptionDescription{i}"] = ";".join(opt.values)
    for i in range(MAX_OPTIONS + 1, OPTION_SLOTS + 1):
        name, _, values = _wix_meta(product, f"productOption{i}").partition(": ")
        if values:
            out[f"productOptionName{i}"] = name
            out[f"productOptionType{i}"] = "DROP_DOWN"
            out[f"productOptionDescription{i}"] = values

    for key in ("ribbon", "surcharge", "cost"):
        out[key] = _wix_meta(product, key)
    for i in range(1, ADDITIONAL_INFO_SLOTS + 1):
        title, sep, desc = _wix_meta(product, f"additionalInfo{i}").partition(": ")
        out[f"additionalInfoTitle{i}"] = title if sep else ""
        out[f"additionalInfoDescription{i}"] = desc if sep else title
    for i in range(1, CUSTOM_TEXT_SLOTS + 1):
        for suffix in ("Field", "CharLimit", "Mandatory"):
            out[f"customText{suffix}{i}"] = _wix_meta(product, f"customText{suffix}{i}")
    return out


def export_wix_csv(products: Sequence[Product], columns: Optional[Sequence[str]] = None) -> str:
    columns = list(columns or WIX_COLUMNS)
    rows = []
    for product in products:
        if not product.variants:
            logger.error(f"Skipping export of {product.handle}: product has no variants")
            continue
        rows.append(wix_row(product, columns))
    logger.info(f"Exported {len(rows)} Wix products")
    return write_csv_text(rows, columns)


EXPORTERS: Dict[str, Callable[..., str]] = {
    "shopify": export_grouped_csv,
    "woocommerce": export_woocommerce_csv,
    "wix": export_wix_csv,
}


def get_exporter(platform: str) -> Callable[..., str]:
    return EXPORTERS[resolve_platform(platform)]


def export_products(products: Sequence[Product], platform: str, columns: Optional[Sequence[str]] = None) -> str:
    return get_exporter(platform)(products, columns)
