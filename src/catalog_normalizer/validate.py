from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from typing import List

from .models import (
    DEFAULT_OPTION_VALUE,
    MAX_OPTIONS,
    Image,
    Metafield,
    OptionDefinition,
    Product,
    Variant,
)
from .normalize import unique


logger = logging.getLogger(__name__)

MISSING_OPTION_VALUE = "Default"


@dataclass
class ParseStats:
    rows_read: int = 0
    rows_skipped: int = 0
    orphan_variations: int = 0
    invalid_variants: int = 0
    default_variants: int = 0
    numeric_defaults: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def is_placeholder_option(value: str) -> bool:
    return (value or "").strip().lower() == DEFAULT_OPTION_VALUE.lower()


def is_valid_variant(variant: Variant) -> bool:
    if (variant.price or "").strip():
        return True
    if (variant.sku or "").strip():
        return True
    first = (variant.option_values[0] if variant.option_values else "").strip()
    return bool(first) and not is_placeholder_option(first)


def default_variant() -> Variant:
    return Variant(option_values=[], price="0", sku="")


def dedupe_images(images: List[Image]) -> List[Image]:
    """First occurrence of each src wins and keeps its position.

    A later distinct image whose position is already taken is moved after
    the highest position seen so far.
    """
    out: List[Image] = []
    seen_src = set()
    seen_pos = set()
    for img in images:
        src = (img.src or "").strip()
        if not src or src in seen_src:
            continue
        pos = img.position
        if pos in seen_pos:
            pos = max(seen_pos) + 1
        seen_src.add(src)
        seen_pos.add(pos)
        out.append(Image(src=src, position=pos, alt=img.alt))
    return out


def drop_empty_metafields(metafields: List[Metafield]) -> List[Metafield]:
    return [mf for mf in metafields if mf.value is not None and str(mf.value).strip() != ""]


def normalize_options(product: Product) -> None:
    """Make options and every variant's option_values agree.

    The number of options is the highest non-empty option slot used by any
    variant. Declared names are kept and missing ones become 'Option N'.
    Each domain holds exactly the values the variants use, in declared order
    first, then in first-seen order. A variant missing a value inside the
    used slots gets MISSING_OPTION_VALUE.
    """
    width = 0
    for v in product.variants:
        for i in range(MAX_OPTIONS - 1, -1, -1):
            if (v.option_values[i] or "").strip():
                width = max(width, i + 1)
                break

    options: List[OptionDefinition] = []
    declared_values: List[List[str]] = []
    for i in range(width):
        declared = product.options[i] if i < len(product.options) else None
        name = (declared.name if declared else "") or f"Option{i + 1}"
        options.append(OptionDefinition(name=name, values=[]))
        declared_values.append(list(declared.values) if declared else [])

    for v in product.variants:
        vals = [(x or "").strip() for x in v.option_values]
        for i in range(width):
            if not vals[i]:
                logger.warning(
                    f"Variant {v.sku or '?'} of {product.handle} has no value for option {options[i].name}; using {MISSING_OPTION_VALUE!r}"
                )
                vals[i] = MISSING_OPTION_VALUE
            options[i].values.append(vals[i])
        for i in range(width, MAX_OPTIONS):
            vals[i] = ""
        v.option_values = vals

    for opt, declared in zip(options, declared_values):
        used = unique(opt.values)
        opt.values = [x for x in unique(declared) if x in used] + [x for x in used if x not in declared]
    product.options = options


def finalize_product(product: Product, stats: ParseStats | None = None, skip_validation: bool = False) -> Product:
    """Validate and deduplicate an in-progress product in place."""
    stats = stats if stats is not None else ParseStats()
    product.metafields = drop_empty_metafields(product.metafields)
    product.images = dedupe_images(product.images)

    if not skip_validation:
        kept = []
        for v in product.variants:
            if is_valid_variant(v):
                kept.append(v)
            else:
                stats.invalid_variants += 1
                logger.debug(f"Filtered out invalid variant of {product.handle}: {v.option_values}")
        product.variants = kept

    if not product.variants:
        logger.info(f"No valid variants for product {product.handle}; creating default variant")
        stats.default_variants += 1
        product.variants = [default_variant()]

    normalize_options(product)
    return product
