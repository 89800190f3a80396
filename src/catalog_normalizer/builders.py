"""
Canonical product -> platform creation payloads.

Pure transformation: every builder takes one finalized Product and returns a
plain nested dict ready to be serialized by the caller. A product without
variants cannot be built; builders log it and return None.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from .mapping import resolve_platform
from .models import DEFAULT_OPTION_NAME, DEFAULT_OPTION_VALUE, Metafield, Product, Variant
from .normalize import format_decimal, to_decimal, unit_to_grams


logger = logging.getLogger(__name__)


# ── Shared helpers ────────────────────────────────────────────────

def flatten_metafields(metafields: List[Metafield]) -> List[Dict[str, Any]]:
    return [
        {"namespace": mf.namespace, "key": mf.key, "value": mf.value, "type": mf.type}
        for mf in metafields
    ]


def split_sale_price(variant: Variant) -> tuple:
    """(regular, sale) for platforms that model a discount as a sale price."""
    price = to_decimal(variant.price)
    compare = to_decimal(variant.compare_at_price)
    if price is not None and compare is not None and compare > price:
        return format_decimal(compare), format_decimal(price)
    return (format_decimal(price) if price is not None else "0"), ""


def _has_variants(product: Product, platform: str) -> bool:
    if product.variants:
        return True
    logger.error(f"Cannot build {platform} payload for {product.handle}: product has no variants")
    return False


# ── Shopify ───────────────────────────────────────────────────────

def build_shopify_variant(variant: Variant, has_options: bool) -> Dict[str, Any]:
    option1, option2, option3 = variant.option_values
    return {
        "option1": option1 if has_options else DEFAULT_OPTION_VALUE,
        "option2": option2 or None,
        "option3": option3 or None,
        "price": variant.price,
        "compare_at_price": variant.compare_at_price,
        "sku": variant.sku,
        "barcode": variant.barcode,
        "grams": unit_to_grams(variant.weight, variant.weight_unit),
        "weight": variant.weight,
        "weight_unit": variant.weight_unit,
        "inventory_quantity": variant.inventory_quantity,
        "inventory_policy": variant.inventory_policy,
        "inventory_management": variant.inventory_management or None,
        "requires_shipping": variant.requires_shipping,
        "taxable": variant.taxable,
    }


def build_shopify_product(product: Product) -> Optional[Dict[str, Any]]:
    if not _has_variants(product, "shopify"):
        return None
    if product.options:
        options = [{"name": o.name, "values": list(o.values)} for o in product.options]
    else:
        options = [{"name": DEFAULT_OPTION_NAME, "values": [DEFAULT_OPTION_VALUE]}]
    payload = {
        "handle": product.handle,
        "title": product.title,
        "body_html": product.body_html,
        "vendor": product.vendor,
        "product_type": product.product_type,
        "product_category": product.product_category,
        "status": product.status,
        "tags": list(product.tags),
        "options": options,
        "variants": [build_shopify_variant(v, bool(product.options)) for v in product.variants],
        "images": [{"src": i.src, "position": i.position, "alt": i.alt} for i in product.images],
        "metafields": flatten_metafields(product.metafields),
    }
    logger.debug(f"Built Shopify payload for {product.handle} with {len(product.variants)} variants")
    return payload


# ── WooCommerce ───────────────────────────────────────────────────

def _woo_stock(variant: Variant) -> Dict[str, Any]:
    managed = bool(variant.inventory_management)
    return {
        "manage_stock": managed,
        "stock_quantity": variant.inventory_quantity if managed else None,
        "backorders": "notify" if variant.inventory_policy == "continue" else "no",
    }


def build_woocommerce_variation(product: Product, variant: Variant) -> Dict[str, Any]:
    regular, sale = split_sale_price(variant)
    body = {
        "regular_price": regular,
        "sale_price": sale,
        "sku": variant.sku,
        "weight": str(variant.weight) if variant.weight else "",
        "tax_status": "taxable" if variant.taxable else "none",
        "virtual": not variant.requires_shipping,
        "attributes": [
            {"name": opt.name, "option": value}
            for opt, value in zip(product.options, variant.option_values)
        ],
    }
    body.update(_woo_stock(variant))
    return body


def build_woocommerce_product(product: Product) -> Optional[Dict[str, Any]]:
    if not _has_variants(product, "woocommerce"):
        return None
    first = product.variants[0]
    variable = bool(product.options)
    payload = {
        "name": product.title,
        "slug": product.handle,
        "type": "variable" if variable else "simple",
        "status": "publish" if product.status == "active" else "draft",
        "description": product.body_html,
        "sku": "" if variable else first.sku,
        "categories": [{"name": c} for c in (product.collections or ([product.product_category] if product.product_category else []))],
        "tags": [{"name": t} for t in product.tags],
        "images": [{"src": i.src, "alt": i.alt} for i in sorted(product.images, key=lambda i: i.position)],
        "attributes": [
            {"name": opt.name, "position": n, "visible": True, "variation": True, "options": list(opt.values)}
            for n, opt in enumerate(product.options)
        ],
        "meta_data": flatten_metafields(product.metafields),
    }
    if product.vendor:
        payload["brands"] = [{"name": product.vendor}]
    if variable:
        payload["variations"] = [build_woocommerce_variation(product, v) for v in product.variants]
    else:
        regular, sale = split_sale_price(first)
        payload.update(regular_price=regular, sale_price=sale, weight=str(first.weight) if first.weight else "")
        payload.update(_woo_stock(first))
    return payload


# ── Wix ───────────────────────────────────────────────────────────

def wix_extended_fields(metafields: List[Metafield]) -> Dict[str, Any]:
    namespaces: Dict[str, Dict[str, Any]] = {}
    for mf in metafields:
        namespaces.setdefault(mf.namespace, {})[mf.key] = {"value": mf.value, "type": mf.type}
    return {"namespaces": namespaces}


def _wix_price(variant: Variant) -> Dict[str, Any]:
    price = to_decimal(variant.price) or Decimal(0)
    compare = to_decimal(variant.compare_at_price)
    data: Dict[str, Any] = {"price": float(price)}
    if compare is not None and compare > price:
        data = {"price": float(compare), "discountedPrice": float(price)}
    return data


def build_wix_product(product: Product) -> Optional[Dict[str, Any]]:
    if not _has_variants(product, "wix"):
        return None
    first = product.variants[0]
    payload = {
        "name": product.title,
        "slug": product.handle,
        "productType": "physical" if first.requires_shipping else "digital",
        "description": product.body_html,
        "visible": product.status == "active",
        "sku": first.sku,
        "brand": product.vendor,
        "weight": first.weight,
        "priceData": _wix_price(first),
        "manageVariants": len(product.variants) > 1,
        "productOptions": [
            {"name": opt.name, "optionType": "drop_down", "choices": [{"value": v, "description": v} for v in opt.values]}
            for opt in product.options
        ],
        "variants": [
            {
                "choices": {opt.name: value for opt, value in zip(product.options, v.option_values)},
                "variant": {"priceData": _wix_price(v), "sku": v.sku, "weight": v.weight, "visible": True},
            }
            for v in product.variants
        ],
        "media": {"items": [{"src": i.src, "alt": i.alt} for i in sorted(product.images, key=lambda i: i.position)]},
        "collections": list(product.collections),
        "extendedFields": wix_extended_fields(product.metafields),
    }
    compare = to_decimal(first.compare_at_price)
    price = to_decimal(first.price)
    if compare is not None and price is not None and compare > price:
        payload["discount"] = {"type": "AMOUNT", "value": float(compare - price)}
    return payload


BUILDERS: Dict[str, Callable[[Product], Optional[Dict[str, Any]]]] = {
    "shopify": build_shopify_product,
    "woocommerce": build_woocommerce_product,
    "wix": build_wix_product,
}


def get_builder(platform: str) -> Callable[[Product], Optional[Dict[str, Any]]]:
    return BUILDERS[resolve_platform(platform)]
