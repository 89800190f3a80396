from __future__ import annotations
import math
import re
import unicodedata
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


TRUE_VALUES = {"true", "yes", "y", "1"}
FALSE_VALUES = {"false", "no", "n", "0"}

# grams per unit
WEIGHT_UNITS = {
    "g": Decimal("1"),
    "kg": Decimal("1000"),
    "lb": Decimal("453.59237"),
    "oz": Decimal("28.349523125"),
}

WEIGHT_UNIT_ALIASES = {
    "g": "g", "gram": "g", "grams": "g",
    "kg": "kg", "kilogram": "kg", "kilograms": "kg",
    "lb": "lb", "lbs": "lb", "pound": "lb", "pounds": "lb",
    "oz": "oz", "ounce": "oz", "ounces": "oz",
}

_INVISIBLE = re.compile(r"[\u200b-\u200d\ufeff]")
_CENT = Decimal("0.01")

# largest accepted magnitude is 10**MAX_DIGITS
MAX_DIGITS = 15


def slugify_for_handle(s: str) -> str:
    if not s:
        return ""
    s = unicodedata.normalize('NFKD', s)
    s = s.encode('ascii', 'ignore').decode('ascii')
    s = re.sub(r"[^a-zA-Z0-9]+", "-", s)
    s = s.strip('-').lower()
    return s


def sanitize_key(s: str) -> str:
    """Metafield key for an arbitrary column name: 'Gift Wrap?' -> 'gift_wrap_'."""
    return re.sub(r"[^a-z0-9_]", "_", s or "", flags=re.IGNORECASE).lower()


def fold_header(name: str) -> str:
    """Case- and encoding-insensitive form of a column name."""
    return _INVISIBLE.sub("", name or "").strip().lower()


def split_list(value: str, sep: str = ",") -> list:
    if not value:
        return []
    return [part.strip() for part in value.split(sep) if part.strip()]


def unique(values) -> list:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def parse_bool(value: str, default: bool = False) -> bool:
    key = (value or "").strip().lower()
    if key in TRUE_VALUES:
        return True
    if key in FALSE_VALUES:
        return False
    return default


def to_decimal(value) -> Decimal | None:
    """Parse a price-like string; returns None for blanks, garbage and out-of-range magnitudes."""
    if value is None:
        return None
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    text = re.sub(r"^[^\d\-.]+", "", text)
    try:
        d = Decimal(text)
    except InvalidOperation:
        return None
    if not d.is_finite() or d.adjusted() > MAX_DIGITS:
        return None
    return d


def format_decimal(d: Decimal) -> str:
    """Render without exponent or trailing zeros: Decimal('80.00') -> '80'."""
    if d == d.to_integral_value():
        return str(int(d))
    return format(d.quantize(_CENT, rounding=ROUND_HALF_UP).normalize(), "f")


def round_cents(d: Decimal) -> Decimal:
    return d.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_int(value) -> int | None:
    """'5' -> 5, '5.0' -> 5, '' -> None, 'abc' -> None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    m = re.match(r"^([+-]?\d+)(?:\.0*)?$", text)
    if m:
        digits = m.group(1).lstrip("+-").lstrip("0")
        return int(m.group(1)) if len(digits) <= MAX_DIGITS + 1 else None
    d = to_decimal(text)
    if d is None:
        return None
    return int(d)


def to_float(value) -> float | None:
    d = to_decimal(value)
    return float(d) if d is not None else None


def normalize_weight_unit(unit: str, default: str = "kg") -> str:
    return WEIGHT_UNIT_ALIASES.get((unit or "").strip().lower(), default)


def grams_to_unit(grams: float, unit: str) -> float:
    factor = WEIGHT_UNITS.get(unit, WEIGHT_UNITS["kg"])
    return float(Decimal(str(grams)) / factor)


def unit_to_grams(weight: float, unit: str) -> int:
    if not math.isfinite(weight):
        return 0
    factor = WEIGHT_UNITS.get(unit, WEIGHT_UNITS["kg"])
    return int((Decimal(str(weight)) * factor).to_integral_value(rounding=ROUND_HALF_UP))
