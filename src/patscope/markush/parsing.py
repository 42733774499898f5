"""Heuristic extraction of Markush structures from claim text.

Recognises a formula identifier ("formula (I)", "structure II") and R-group
definitions such as "R1 is selected from methyl, ethyl or phenyl". The result
has a placeholder core; the real scaffold has to come from a structure
drawing or a chemistry service.
"""

import logging
import re
from typing import List

from patscope.errors import ValidationError
from patscope.markush.structure import (
    POSITION_SYMBOL_PATTERN,
    MarkushStructure,
    Substituent,
    SubstituentType,
    VariablePosition,
    new_markush_structure,
)

logger = logging.getLogger(__name__)

FORMULA_PATTERN = re.compile(
    r"(?i:formula|structure)\s*\(?\s*([IVX]+|[A-Z]?\d+[a-z]?)\b\s*\)?"
)
VARIABLE_PATTERN = re.compile(
    rf"\b({POSITION_SYMBOL_PATTERN})\s+(?:(?:is\s+|are\s+)?selected\s+from|represents?|is|are)"
    r"\s+(?:the\s+group\s+consisting\s+of\s+)?"
    rf"((?:(?!\b(?:{POSITION_SYMBOL_PATTERN})\s+(?:is|are|represents?|selected)\b)[^;.])+)"
)
_ALTERNATIVE_SPLIT = re.compile(r",|;|\bor\b|\band\b")

# Checked in order; the first keyword found decides the type
TYPE_KEYWORDS = [
    ("hydrogen", SubstituentType.HYDROGEN),
    ("heteroaryl", SubstituentType.HETEROARYL),
    ("pyridyl", SubstituentType.HETEROARYL),
    ("alkoxy", SubstituentType.ALKOXY),
    ("methoxy", SubstituentType.ALKOXY),
    ("amino", SubstituentType.AMINO),
    ("cyano", SubstituentType.CYANO),
    ("halo", SubstituentType.HALOGEN),
    ("fluoro", SubstituentType.HALOGEN),
    ("chloro", SubstituentType.HALOGEN),
    ("bromo", SubstituentType.HALOGEN),
    ("iodo", SubstituentType.HALOGEN),
    ("aryl", SubstituentType.ARYL),
    ("phenyl", SubstituentType.ARYL),
    ("alkyl", SubstituentType.ALKYL),
    ("methyl", SubstituentType.ALKYL),
    ("ethyl", SubstituentType.ALKYL),
]

_CARBON_RANGE = re.compile(r"C\s*(\d+)\s*-\s*C?\s*(\d+)")


def classify_substituent(text: str) -> SubstituentType:
    """Guess the substituent type from its name."""
    lower = text.lower()
    for keyword, substituent_type in TYPE_KEYWORDS:
        if keyword in lower:
            return substituent_type
    return SubstituentType.CUSTOM


def parse_markush_from_text(text: str, claim_number: int = 1) -> MarkushStructure:
    """Extract a Markush structure from claim text.

    Args:
        text: Claim or description text.
        claim_number: Claim the structure is scoped to.

    Returns:
        Validated MarkushStructure with a "[Core]" placeholder scaffold.

    Raises:
        ValidationError: If no formula identifier or no variable definition
            is found.
    """
    if not text or not text.strip():
        raise ValidationError("text cannot be empty", field="text")

    match = FORMULA_PATTERN.search(text)
    if match is None:
        raise ValidationError("no markush structure identifier found", field="text")
    name = f"Formula {match.group(1)}"

    positions: List[VariablePosition] = []
    seen = set()
    for var_match in VARIABLE_PATTERN.finditer(text):
        symbol = var_match.group(1)
        if symbol in seen:
            continue
        seen.add(symbol)

        substituents = []
        for part in _ALTERNATIVE_SPLIT.split(var_match.group(2)):
            part = part.strip()
            if not part:
                continue
            carbon_range = (0, 0)
            range_match = _CARBON_RANGE.search(part)
            if range_match:
                low, high = int(range_match.group(1)), int(range_match.group(2))
                if low <= high:
                    carbon_range = (low, high)
            substituents.append(Substituent(
                substituent_id=f"{symbol}-{len(substituents)}",
                substituent_type=classify_substituent(part),
                name=part,
                carbon_range=carbon_range,
            ))

        if substituents:
            positions.append(VariablePosition(symbol=symbol, substituents=substituents))

    if not positions:
        raise ValidationError("no variable definitions found", field="text")

    logger.debug(f"Parsed {name} with {len(positions)} variable positions")
    return new_markush_structure(name, "[Core]", claim_number, positions)
