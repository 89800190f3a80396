from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List

from .errors import UnsupportedPlatformError
from .io import HeaderIndex
from .models import SINGLE_LINE_TEXT, Metafield
from .normalize import sanitize_key


logger = logging.getLogger(__name__)

METAFIELD_COLUMN = re.compile(r"(\w+)\.metafields\.([\w-]+)\.([\w-]+)")


SHOPIFY_FIELD_MAP = {
    "Handle": "handle",
    "Title": "title",
    "Body (HTML)": "body_html",
    "Vendor": "vendor",
    "Product Category": "product_category",
    "Type": "product_type",
    "Tags": "tags",
    "Published": "published",
    "Status": "status",
    "Option1 Name": "option1.name",
    "Option1 Value": "option1.value",
    "Option1 Linked To": "option1.linked_to",
    "Option2 Name": "option2.name",
    "Option2 Value": "option2.value",
    "Option2 Linked To": "option2.linked_to",
    "Option3 Name": "option3.name",
    "Option3 Value": "option3.value",
    "Option3 Linked To": "option3.linked_to",
    "Variant SKU": "variant.sku",
    "Variant Grams": "variant.grams",
    "Variant Inventory Tracker": "variant.inventory_management",
    "Variant Inventory Qty": "variant.inventory_quantity",
    "Variant Inventory Policy": "variant.inventory_policy",
    "Variant Fulfillment Service": "variant.fulfillment_service",
    "Variant Price": "variant.price",
    "Variant Compare At Price": "variant.compare_at_price",
    "Variant Requires Shipping": "variant.requires_shipping",
    "Variant Taxable": "variant.taxable",
    "Variant Barcode": "variant.barcode",
    "Variant Image": "variant.image",
    "Variant Weight Unit": "variant.weight_unit",
    "Variant Tax Code": "variant.tax_code",
    "Cost per item": "variant.cost",
    "Image Src": "image.src",
    "Image Position": "image.position",
    "Image Alt Text": "image.alt",
    "Gift Card": "gift_card",
    "SEO Title": "seo.title",
    "SEO Description": "seo.description",
    "Google Shopping / Google Product Category": "google.google_product_category",
    "Google Shopping / Gender": "google.gender",
    "Google Shopping / Age Group": "google.age_group",
    "Google Shopping / MPN": "google.mpn",
    "Google Shopping / Condition": "google.condition",
    "Google Shopping / Custom Product": "google.custom_product",
    "Google Shopping / Custom Label 0": "google.custom_label_0",
    "Google Shopping / Custom Label 1": "google.custom_label_1",
    "Google Shopping / Custom Label 2": "google.custom_label_2",
    "Google Shopping / Custom Label 3": "google.custom_label_3",
    "Google Shopping / Custom Label 4": "google.custom_label_4",
}

WOOCOMMERCE_FIELD_MAP = {
    "ID": "id",
    "Type": "type",
    "SKU": "sku",
    "GTIN, UPC, EAN, or ISBN": "barcode",
    "Name": "name",
    "Published": "published",
    "Is featured?": "featured",
    "Visibility in catalogue": "visibility",
    "Short description": "short_description",
    "Description": "description",
    "Date sale price starts": "sale_starts",
    "Date sale price ends": "sale_ends",
    "Tax status": "tax_status",
    "Tax class": "tax_class",
    "In stock?": "in_stock",
    "Stock": "stock",
    "Low stock amount": "low_stock",
    "Backorders allowed?": "backorders",
    "Sold individually?": "sold_individually",
    "Weight (kg)": "weight",
    "Length (cm)": "dimensions.length",
    "Width (cm)": "dimensions.width",
    "Height (cm)": "dimensions.height",
    "Allow customer reviews?": "reviews_allowed",
    "Purchase note": "purchase_note",
    "Sale price": "sale_price",
    "Regular price": "regular_price",
    "Categories": "categories",
    "Tags": "tags",
    "Brands": "brands",
    "Shipping class": "shipping_class",
    "Images": "images",
    "Download limit": "download_limit",
    "Download expiry days": "download_expiry",
    "Parent": "parent",
    "Grouped products": "grouped_products",
    "Upsells": "upsells",
    "Cross-sells": "cross_sells",
    "External URL": "external_url",
    "Button text": "button_text",
    "Position": "position",
}
for _i in range(1, 4):
    WOOCOMMERCE_FIELD_MAP[f"Attribute {_i} name"] = f"attributes.{_i}.name"
    WOOCOMMERCE_FIELD_MAP[f"Attribute {_i} value(s)"] = f"attributes.{_i}.values"
    WOOCOMMERCE_FIELD_MAP[f"Attribute {_i} visible"] = f"attributes.{_i}.visible"
    WOOCOMMERCE_FIELD_MAP[f"Attribute {_i} global"] = f"attributes.{_i}.global"
    WOOCOMMERCE_FIELD_MAP[f"Attribute {_i} default"] = f"attributes.{_i}.default"

WIX_FIELD_MAP = {
    "handleId": "handle",
    "fieldType": "field_type",
    "name": "title",
    "description": "body_html",
    "productImageUrl": "images",
    "collection": "collections",
    "sku": "sku",
    "barcode": "barcode",
    "ribbon": "ribbon",
    "price": "price",
    "surcharge": "surcharge",
    "visible": "visible",
    "discountMode": "discount.mode",
    "discountValue": "discount.value",
    "inventory": "inventory",
    "weight": "weight",
    "weightUnit": "weight_unit",
    "cost": "cost",
    "brand": "vendor",
    "productType": "product_type",
    "tags": "tags",
}
for _i in range(1, 7):
    WIX_FIELD_MAP[f"productOptionName{_i}"] = f"options.{_i}.name"
    WIX_FIELD_MAP[f"productOptionType{_i}"] = f"options.{_i}.type"
    WIX_FIELD_MAP[f"productOptionDescription{_i}"] = f"options.{_i}.description"
    WIX_FIELD_MAP[f"additionalInfoTitle{_i}"] = f"additional_info.{_i}.title"
    WIX_FIELD_MAP[f"additionalInfoDescription{_i}"] = f"additional_info.{_i}.description"
for _i in range(1, 3):
    WIX_FIELD_MAP[f"customTextField{_i}"] = f"custom_text.{_i}.field"
    WIX_FIELD_MAP[f"customTextCharLimit{_i}"] = f"custom_text.{_i}.char_limit"
    WIX_FIELD_MAP[f"customTextMandatory{_i}"] = f"custom_text.{_i}.mandatory"
del _i

FIELD_MAPS = {
    "shopify": SHOPIFY_FIELD_MAP,
    "woocommerce": WOOCOMMERCE_FIELD_MAP,
    "wix": WIX_FIELD_MAP,
}

PLATFORMS = tuple(FIELD_MAPS)

REQUIRED_HEADERS = {
    "shopify": ("Handle",),
    "woocommerce": ("Type", "Name"),
    "wix": ("name",),
}


def resolve_platform(platform: str) -> str:
    key = (platform or "").strip().lower()
    if key not in FIELD_MAPS:
        raise UnsupportedPlatformError(platform)
    return key


@dataclass
class NormalizedRow:
    fields: Dict = field(default_factory=dict)
    metafields: List[Metafield] = field(default_factory=list)

    def get(self, path: str, default: str = "") -> str:
        val = get_path(self.fields, path)
        if val is None or isinstance(val, dict):
            return default
        return val


def set_path(target: dict, path: str, value) -> None:
    """Assign ``value`` at a dotted path, creating nested dicts on the way."""
    parts = path.split(".")
    cur = target
    for part in parts[:-1]:
        nxt = cur.setdefault(part, {})
        if not isinstance(nxt, dict):
            raise ValueError(f"Field path {path!r} conflicts with scalar at {part!r}")
        cur = nxt
    if isinstance(cur.get(parts[-1]), dict):
        raise ValueError(f"Field path {path!r} would overwrite a nested object")
    cur[parts[-1]] = value


def get_path(source: dict, path: str, default=None):
    cur = source
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def column_metafield(
    column: str,
    value: str,
    default_namespace: str = "custom",
    metafield_type: str = SINGLE_LINE_TEXT,
) -> Metafield:
    m = METAFIELD_COLUMN.search(column)
    if m:
        return Metafield(namespace=m.group(2), key=m.group(3), value=value, type=metafield_type)
    return Metafield(namespace=default_namespace, key=sanitize_key(column), value=value, type=metafield_type)


def normalize_row(
    row: dict,
    field_map: dict,
    index: HeaderIndex | None = None,
    default_namespace: str = "custom",
    metafield_type: str = SINGLE_LINE_TEXT,
) -> NormalizedRow:
    """Map one raw row onto canonical field paths.

    Columns in ``field_map`` land at their (possibly dotted) path. Every other
    non-empty column becomes a Metafield, so nothing in the source is lost.
    """
    index = index or HeaderIndex(row.keys())
    out = NormalizedRow()
    mapped = set()
    for column, path in field_map.items():
        actual = index.resolve(column)
        if actual is None or actual not in row:
            continue
        set_path(out.fields, path, row[actual])
        mapped.add(actual)

    for column, value in row.items():
        if column in mapped or not column or not value:
            continue
        mf = column_metafield(column, value, default_namespace, metafield_type)
        logger.debug(f"Unmapped column {column!r} kept as metafield {mf.namespace}.{mf.key}")
        out.metafields.append(mf)
    return out
