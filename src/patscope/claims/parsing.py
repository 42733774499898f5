"""Claim text heuristics.

Builds claim objects from raw claim records (number + text) by detecting
references to earlier claims and the statutory category of the preamble.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from patscope.claims.graph import ClaimSet
from patscope.claims.model import ClaimCategory, ClaimType, new_claim
from patscope.config import ClaimRulesConfig

logger = logging.getLogger(__name__)

_SUBJECTS = (
    r"(?:method|process|use|composition|compound|device|system|apparatus|kit|"
    r"article|formulation|salt|pharmaceutical\s+composition)"
)

# Patterns for dependent claims
DEPENDENT_PATTERNS = [
    rf"^\s*(?:The\s+|A\s+|An\s+)?{_SUBJECTS}\s+(?:of|according\s+to|as\s+claimed\s+in|as\s+defined\s+in|as\s+set\s+forth\s+in)\s+(?:any\s+(?:one\s+)?of\s+)?claims?\s+(\d+)",
    r"^\s*(?:The\s+)?claim\s+(\d+)",
    r"claims?\s+(\d+)\s*,?\s*wherein",
]

# "claims 1 to 3", "claims 1-3", "claims 1, 2 or 4"
_CLAIM_RANGE = re.compile(r"claims?\s+(\d+)\s*(?:-|to|through)\s*(\d+)", re.IGNORECASE)
_CLAIM_LIST = re.compile(r"claims?\s+((?:\d+\s*(?:,|or|and)\s*)+\d+)", re.IGNORECASE)

_METHOD_PREAMBLE = re.compile(
    r"^\s*(?:An?\s+|The\s+)?(?:method|process)\b", re.IGNORECASE
)
_USE_PREAMBLE = re.compile(
    r"^\s*(?:The\s+)?use\s+of\b|\bfor\s+use\s+in\b", re.IGNORECASE
)


def parse_claim_reference(claim_text: str, claim_number: int) -> Tuple[ClaimType, List[int]]:
    """Determine if a claim is independent or dependent.

    Args:
        claim_text: Full text of the claim.
        claim_number: The claim number.

    Returns:
        Tuple of (claim_type, referenced claim numbers). References that are
        not strictly lower than `claim_number` are kept so that validation
        reports them.
    """
    preamble = claim_text[:200]

    match = _CLAIM_RANGE.search(preamble)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if start <= end:
            return ClaimType.DEPENDENT, list(range(start, end + 1))

    match = _CLAIM_LIST.search(preamble)
    if match:
        numbers = [int(n) for n in re.findall(r"\d+", match.group(1))]
        return ClaimType.DEPENDENT, _dedupe(numbers)

    for pattern in DEPENDENT_PATTERNS:
        match = re.search(pattern, claim_text, re.IGNORECASE)
        if match:
            return ClaimType.DEPENDENT, [int(match.group(1))]

    return ClaimType.INDEPENDENT, []


def detect_category(claim_text: str) -> ClaimCategory:
    """Classify the statutory category of a claim from its preamble."""
    if _METHOD_PREAMBLE.search(claim_text):
        return ClaimCategory.METHOD
    if _USE_PREAMBLE.search(claim_text[:200]):
        return ClaimCategory.USE
    return ClaimCategory.PRODUCT


def claim_set_from_records(
    records: Iterable[Dict[str, Any]],
    rules: Optional[ClaimRulesConfig] = None,
) -> ClaimSet:
    """Build a validated claim set from raw claim records.

    Args:
        records: Dicts with `claim_number` and `claim_text` keys, as produced
            by patent full-text sources.
        rules: Text-length thresholds.

    Returns:
        Validated ClaimSet.

    Raises:
        ValidationError: If any claim or the set as a whole is invalid.
    """
    claims = []
    for record in records:
        number = record.get("claim_number", 0)
        text = record.get("claim_text", "")
        claim_type, depends_on = parse_claim_reference(text, number)
        claims.append(new_claim(
            number=number,
            text=text,
            claim_type=claim_type,
            category=detect_category(text),
            depends_on=depends_on,
            rules=rules,
        ))

    claim_set = ClaimSet(claims, rules=rules)
    logger.info(
        f"Parsed {len(claim_set)} claims "
        f"({len(claim_set.independent_claims())} independent)"
    )
    return claim_set


def _dedupe(numbers: List[int]) -> List[int]:
    seen = set()
    result = []
    for n in numbers:
        if n not in seen:
            seen.add(n)
            result.append(n)
    return result
