"""Patent claim value objects.

A claim is the legally operative unit of a patent: every FTO, infringement
and validity analysis works at claim granularity. Independent claims stand
alone; dependent claims incorporate the limitations of one or more earlier
claims by reference.

Claims are built through `new_claim`, which validates a complete candidate
before returning it. The only mutators are `Claim.set_dependencies` and
`Claim.add_element`; both either apply fully or leave the claim untouched.
"""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from patscope.config import DEFAULT_CONFIG, ClaimRulesConfig
from patscope.errors import ValidationError


class ClaimType(str, Enum):
    """Independent/dependent claim classification."""
    INDEPENDENT = "independent"
    DEPENDENT = "dependent"


class ClaimCategory(str, Enum):
    """Statutory category of a claim."""
    PRODUCT = "product"
    METHOD = "method"
    USE = "use"


# Tokens with no discriminative value in claim text
CLAIM_STOP_WORDS = frozenset({
    # Articles and pronouns
    "a", "an", "the", "its", "their", "it", "he", "this", "these", "those",
    # Prepositions and conjunctions
    "of", "in", "on", "at", "by", "to", "for", "from", "with", "into",
    "through", "between", "and", "or", "but", "nor", "not", "as", "than",
    # Patent boilerplate
    "claim", "claims", "wherein", "comprising", "consists", "consisting",
    "essentially", "according", "defined", "described", "said", "thereof",
    "therein", "whereby", "further", "least", "one", "two", "more",
    "plurality", "set", "group", "each", "such", "that", "which", "having",
    "being", "is", "are", "was", "were", "be", "been", "has", "have", "had",
    "do", "does", "did", "will", "would", "shall", "should", "may", "might",
    "can", "could",
})

_TOKEN_PATTERN = re.compile(r"[^\W_]+(?:-[^\W_]+)*")


@dataclass
class ClaimElement:
    """An atomic technical feature of a claim.

    The all-elements rule of infringement analysis requires every essential
    element of an asserted claim to be present in the accused product.
    """

    text: str
    is_essential: bool = True
    is_structural: bool = True      # structural feature vs functional limitation
    chemical_entities: List[str] = field(default_factory=list)  # names or SMILES
    element_id: str = ""

    def __post_init__(self):
        self.text = (self.text or "").strip()
        if not self.text:
            raise ValidationError("claim element text must not be empty", field="text")
        if not self.element_id:
            self.element_id = uuid.uuid4().hex
        self.chemical_entities = list(self.chemical_entities)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "element_id": self.element_id,
            "text": self.text,
            "is_essential": self.is_essential,
            "is_structural": self.is_structural,
            "chemical_entities": list(self.chemical_entities),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimElement":
        """Create from dictionary."""
        return cls(
            text=data.get("text", ""),
            is_essential=data.get("is_essential", True),
            is_structural=data.get("is_structural", True),
            chemical_entities=data.get("chemical_entities", []),
            element_id=data.get("element_id", ""),
        )


@dataclass
class Claim:
    """A single validated patent claim.

    Do not construct directly; use `new_claim` so the invariants hold.
    """

    number: int
    text: str
    claim_type: ClaimType
    category: ClaimCategory
    depends_on: List[int] = field(default_factory=list)
    elements: List[ClaimElement] = field(default_factory=list)
    markush_ids: List[str] = field(default_factory=list)

    @property
    def is_independent(self) -> bool:
        return self.claim_type == ClaimType.INDEPENDENT

    def set_dependencies(self, depends_on: Iterable[int]) -> None:
        """Replace the dependency set after re-validating it.

        Raises:
            ValidationError: If the new set breaks a dependency rule. The
                claim is left unchanged in that case.
        """
        candidate = list(depends_on)
        validate_dependencies(self.number, self.claim_type, candidate)
        self.depends_on = candidate

    def add_element(self, element: ClaimElement) -> None:
        """Append a technical element to the claim.

        Raises:
            ValidationError: If the claim would end up with elements but no
                essential one.
        """
        _validate_elements(self.number, self.elements + [element])
        self.elements.append(element)

    def contains_chemical_entity(self) -> bool:
        """Whether any element carries an extracted chemical entity."""
        return any(el.chemical_entities for el in self.elements)

    def essential_elements(self) -> List[ClaimElement]:
        return [el for el in self.elements if el.is_essential]

    def extract_key_terms(self) -> List[str]:
        """Lightweight key-term extraction from the claim text.

        Lowercases tokens, drops stop words and tokens shorter than three
        characters, and deduplicates while keeping first-seen order.
        """
        seen = set()
        terms = []
        for token in _TOKEN_PATTERN.findall(self.text):
            lower = token.lower()
            if len(lower) < 3 or lower in CLAIM_STOP_WORDS or lower in seen:
                continue
            seen.add(lower)
            terms.append(lower)
        return terms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "number": self.number,
            "text": self.text,
            "claim_type": self.claim_type.value,
            "category": self.category.value,
            "depends_on": list(self.depends_on),
            "elements": [el.to_dict() for el in self.elements],
            "markush_ids": list(self.markush_ids),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        rules: Optional[ClaimRulesConfig] = None,
    ) -> "Claim":
        """Create a validated claim from dictionary."""
        return new_claim(
            number=data.get("number", 0),
            text=data.get("text", ""),
            claim_type=data.get("claim_type", ""),
            category=data.get("category", ClaimCategory.PRODUCT.value),
            depends_on=data.get("depends_on", []),
            elements=[ClaimElement.from_dict(el) for el in data.get("elements", [])],
            markush_ids=data.get("markush_ids", []),
            rules=rules,
        )


def new_claim(
    number: int,
    text: str,
    claim_type: Union[ClaimType, str],
    category: Union[ClaimCategory, str] = ClaimCategory.PRODUCT,
    depends_on: Optional[Iterable[int]] = None,
    elements: Optional[Iterable[ClaimElement]] = None,
    markush_ids: Optional[Iterable[str]] = None,
    rules: Optional[ClaimRulesConfig] = None,
) -> Claim:
    """Construct and validate a claim.

    Args:
        number: Claim number as printed in the patent (>= 1).
        text: Full legal text; trimmed before length checks.
        claim_type: Independent or dependent.
        category: Product, method or use.
        depends_on: Numbers of the claims this claim refers to.
        elements: Ordered technical elements.
        markush_ids: Identifiers of Markush structures scoped to this claim.
        rules: Text-length thresholds; defaults to the global configuration.

    Returns:
        The validated claim.

    Raises:
        ValidationError: On the first violated rule.
    """
    rules = rules or DEFAULT_CONFIG.claims

    _validate_number(number)
    trimmed = (text or "").strip()
    _validate_text(number, trimmed, rules)

    claim_type = _coerce_enum(ClaimType, claim_type, number, "claim_type")
    category = _coerce_enum(ClaimCategory, category, number, "category")

    deps = list(depends_on or [])
    validate_dependencies(number, claim_type, deps)

    element_list = list(elements or [])
    _validate_elements(number, element_list)

    return Claim(
        number=number,
        text=trimmed,
        claim_type=claim_type,
        category=category,
        depends_on=deps,
        elements=element_list,
        markush_ids=list(markush_ids or []),
    )


def validate_claim(claim: Claim, rules: Optional[ClaimRulesConfig] = None) -> None:
    """Re-check every per-claim rule on an existing claim.

    Claims built directly through the dataclass constructor skip
    `new_claim`; this applies the same rules to them.

    Raises:
        ValidationError: On the first violated rule.
    """
    rules = rules or DEFAULT_CONFIG.claims

    _validate_number(claim.number)
    _validate_text(claim.number, (claim.text or "").strip(), rules)
    if not isinstance(claim.claim_type, ClaimType):
        raise ValidationError(
            f"claim {claim.number}: invalid claim_type {claim.claim_type!r}",
            field="claim_type", value=claim.claim_type,
        )
    if not isinstance(claim.category, ClaimCategory):
        raise ValidationError(
            f"claim {claim.number}: invalid category {claim.category!r}",
            field="category", value=claim.category,
        )
    validate_dependencies(claim.number, claim.claim_type, list(claim.depends_on))
    _validate_elements(claim.number, list(claim.elements))


def _validate_number(number) -> None:
    if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
        raise ValidationError(
            f"claim number must be a positive integer, got {number!r}",
            field="number", value=number,
        )


def _validate_text(number: int, trimmed: str, rules: ClaimRulesConfig) -> None:
    if len(trimmed) < rules.min_text_length:
        raise ValidationError(
            f"claim {number}: text must be at least {rules.min_text_length} characters "
            f"(got {len(trimmed)})",
            field="text", value=len(trimmed),
        )
    if len(trimmed) > rules.max_text_length:
        raise ValidationError(
            f"claim {number}: text must be at most {rules.max_text_length} characters "
            f"(got {len(trimmed)})",
            field="text", value=len(trimmed),
        )


def validate_dependencies(number: int, claim_type: ClaimType, depends_on: List[int]) -> None:
    """Check the dependency rules of a single claim.

    Raises:
        ValidationError: Naming the claim number and the broken rule.
    """
    if claim_type == ClaimType.INDEPENDENT:
        if depends_on:
            raise ValidationError(
                f"claim {number}: independent claim must not depend on other claims",
                field="depends_on", value=list(depends_on),
            )
        return

    if not depends_on:
        raise ValidationError(
            f"claim {number}: dependent claim must reference at least one earlier claim",
            field="depends_on", value=[],
        )

    seen = set()
    for dep in depends_on:
        if isinstance(dep, bool) or not isinstance(dep, int) or dep <= 0:
            raise ValidationError(
                f"claim {number}: dependency must be a positive integer, got {dep!r}",
                field="depends_on", value=dep,
            )
        if dep == number:
            raise ValidationError(
                f"claim {number}: self reference in dependencies",
                field="depends_on", value=dep,
            )
        if dep > number:
            raise ValidationError(
                f"claim {number}: forward reference to claim {dep}",
                field="depends_on", value=dep,
            )
        if dep in seen:
            raise ValidationError(
                f"claim {number}: duplicate dependency on claim {dep}",
                field="depends_on", value=dep,
            )
        seen.add(dep)


def _validate_elements(number: int, elements: List[ClaimElement]) -> None:
    if elements and not any(el.is_essential for el in elements):
        raise ValidationError(
            f"claim {number}: at least one element must be marked essential",
            field="elements",
        )


def _coerce_enum(enum_cls, value, number: int, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise ValidationError(
            f"claim {number}: invalid {field_name} {value!r}",
            field=field_name, value=value,
        ) from None
