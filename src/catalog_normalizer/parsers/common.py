from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..models import Product
from ..normalize import format_decimal, slugify_for_handle, to_decimal, to_float, to_int
from ..validate import ParseStats


logger = logging.getLogger(__name__)

_PLAIN_DECIMAL = re.compile(r"^-?\d+(?:\.\d+)?$")


@dataclass
class ParseResult:
    products: List[Product] = field(default_factory=list)
    stats: ParseStats = field(default_factory=ParseStats)

    def __iter__(self) -> Iterator[Product]:
        return iter(self.products)

    def __len__(self) -> int:
        return len(self.products)


def price_text(raw: str, stats: ParseStats, what: str = "price") -> str:
    """Blank stays blank; '19.90' is kept verbatim; '$1,200' -> '1200'; garbage -> '0'."""
    text = (raw or "").strip()
    if not text:
        return ""
    d = to_decimal(text)
    if d is None:
        stats.numeric_defaults += 1
        logger.warning(f"Unparseable {what} {text!r}; using 0")
        return "0"
    if _PLAIN_DECIMAL.match(text):
        return text
    return format_decimal(d)


def int_value(raw: str, stats: ParseStats, what: str = "quantity", default: int = 0) -> int:
    text = (raw or "").strip()
    if not text:
        return default
    val = to_int(text)
    if val is None:
        stats.numeric_defaults += 1
        logger.warning(f"Unparseable {what} {text!r}; using {default}")
        return default
    return val


def float_value(raw: str, stats: ParseStats, what: str = "weight", default: float = 0.0) -> float:
    text = (raw or "").strip()
    if not text:
        return default
    val = to_float(text)
    if val is None:
        stats.numeric_defaults += 1
        logger.warning(f"Unparseable {what} {text!r}; using {default}")
        return default
    return val


def policy_from_stock(quantity: int, in_stock: Optional[bool] = None) -> str:
    if in_stock is not None:
        return "continue" if in_stock else "deny"
    return "continue" if quantity > 0 else "deny"


def unique_handle(base: str, used: set, fallback: str = "product") -> str:
    handle = slugify_for_handle(base) or slugify_for_handle(fallback) or "product"
    candidate = handle
    n = 2
    while candidate in used:
        candidate = f"{handle}-{n}"
        n += 1
    used.add(candidate)
    return candidate
