from __future__ import annotations
import logging
from typing import List, Sequence, Tuple

from .errors import CombinationLimitError
from .models import OptionDefinition


logger = logging.getLogger(__name__)

DEFAULT_MAX_COMBINATIONS = 1000


def _domains(options: Sequence) -> List[List[str]]:
    out = []
    for opt in options:
        if isinstance(opt, OptionDefinition):
            out.append(list(opt.values))
        else:
            out.append(list(opt))
    return out


def count_combinations(options: Sequence) -> int:
    total = 1
    for values in _domains(options):
        total *= len(values)
    return total


def generate_combinations(
    options: Sequence,
    max_combinations: int = DEFAULT_MAX_COMBINATIONS,
    context: str = "",
) -> List[Tuple[str, ...]]:
    """Cartesian product of option value domains, first option varying slowest.

    ``options`` holds OptionDefinition objects or plain value lists. No
    options gives one empty combination; an option with no values gives none.
    Raises CombinationLimitError before expanding anything when the total
    would exceed ``max_combinations`` (0 or less disables the check).
    """
    domains = _domains(options)
    total = count_combinations(domains)
    if max_combinations and max_combinations > 0 and total > max_combinations:
        raise CombinationLimitError(total, max_combinations, context)

    combos: List[Tuple[str, ...]] = [()]
    for values in domains:
        combos = [combo + (value,) for combo in combos for value in values]
    logger.debug(f"Generated {len(combos)} combinations for {len(domains)} options {context}".rstrip())
    return combos
