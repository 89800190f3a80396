from ..mapping import resolve_platform
from .common import ParseResult
from .shopify import parse_shopify
from .wix import parse_wix
from .woocommerce import parse_woocommerce

PARSERS = {
    "shopify": parse_shopify,
    "woocommerce": parse_woocommerce,
    "wix": parse_wix,
}


def get_parser(platform: str):
    return PARSERS[resolve_platform(platform)]


__all__ = ["PARSERS", "ParseResult", "get_parser", "parse_shopify", "parse_woocommerce", "parse_wix"]
