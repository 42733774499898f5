"""Claim modelling: claim value objects and the claim dependency graph."""

from .model import (
    ClaimType,
    ClaimCategory,
    ClaimElement,
    Claim,
    new_claim,
    validate_claim,
    validate_dependencies,
)
from .graph import ClaimSet
from .parsing import (
    parse_claim_reference,
    detect_category,
    claim_set_from_records,
)
