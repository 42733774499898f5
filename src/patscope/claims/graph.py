"""Claim dependency graph for a single patent.

A `ClaimSet` holds the ordered claims of one patent and enforces the
set-level rules on top of the per-claim ones:

- claim numbers are unique and contiguous from 1
- at least one independent claim exists
- every dependency resolves to an existing, lower-numbered claim

Because dependencies always point at lower numbers the graph is acyclic by
construction. Traversals still keep a visited set.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional

from patscope.claims.model import Claim, ClaimElement, validate_claim
from patscope.config import DEFAULT_CONFIG, ClaimRulesConfig
from patscope.errors import ValidationError

if TYPE_CHECKING:
    from patscope.markush.structure import MarkushStructure

logger = logging.getLogger(__name__)


class ClaimSet:
    """Validated, ordered collection of the claims of one patent.

    Example:
        claims = ClaimSet([
            new_claim(1, "A compound of formula (I) ...", "independent"),
            new_claim(2, "The compound of claim 1 wherein ...", "dependent", depends_on=[1]),
        ])
        claims.claim_tree(1)  # -> [claim 1, claim 2]
    """

    def __init__(self, claims: Iterable[Claim], rules: Optional[ClaimRulesConfig] = None):
        self.rules = rules or DEFAULT_CONFIG.claims
        self._claims: List[Claim] = sorted(claims, key=lambda c: c.number)
        self.validate()
        self._by_number: Dict[int, Claim] = {c.number: c for c in self._claims}

    def __len__(self) -> int:
        return len(self._claims)

    def __iter__(self) -> Iterator[Claim]:
        return iter(self._claims)

    def __contains__(self, number: int) -> bool:
        return number in self._by_number

    @property
    def claims(self) -> List[Claim]:
        return list(self._claims)

    def validate(self) -> None:
        """Validate every claim and the set-level invariants.

        Raises:
            ValidationError: Naming the offending claim number and rule.
        """
        if not self._claims:
            raise ValidationError("claim set must contain at least one claim", field="claims")

        numbers = set()
        for claim in self._claims:
            if claim.number in numbers:
                raise ValidationError(
                    f"claim {claim.number}: duplicate claim number",
                    field="number", value=claim.number,
                )
            numbers.add(claim.number)

        # Claims may have been built directly rather than through new_claim
        for claim in self._claims:
            validate_claim(claim, self.rules)

        if not any(c.is_independent for c in self._claims):
            raise ValidationError(
                "claim set must contain at least one independent claim",
                field="claim_type",
            )

        for claim in self._claims:
            for dep in claim.depends_on:
                if dep not in numbers:
                    raise ValidationError(
                        f"claim {claim.number}: dependency on missing claim {dep}",
                        field="depends_on", value=dep,
                    )

        expected = 1
        for claim in self._claims:
            if claim.number != expected:
                raise ValidationError(
                    f"claim numbers must be contiguous from 1: expected claim {expected}, "
                    f"found claim {claim.number}",
                    field="number", value=claim.number,
                )
            expected += 1

    def get(self, number: int) -> Claim:
        """Return the claim with the given number.

        Raises:
            ValidationError: If no such claim exists.
        """
        try:
            return self._by_number[number]
        except KeyError:
            raise ValidationError(
                f"claim {number} does not exist in this claim set",
                field="number", value=number,
            ) from None

    def independent_claims(self) -> List[Claim]:
        return [c for c in self._claims if c.is_independent]

    def dependent_claims(self) -> List[Claim]:
        return [c for c in self._claims if not c.is_independent]

    def dependents_of(self, number: int) -> List[Claim]:
        """Claims that directly reference `number` in their dependency set."""
        return [c for c in self._claims if number in c.depends_on]

    def claim_tree(self, root_number: int) -> List[Claim]:
        """Return the root claim and all of its transitive dependents.

        Claims are returned in breadth-first level order starting with the
        root; each claim appears exactly once.
        """
        root = self.get(root_number)
        visited = {root.number}
        queue = deque([root])
        tree = []

        while queue:
            claim = queue.popleft()
            tree.append(claim)
            for dependent in self.dependents_of(claim.number):
                if dependent.number in visited:
                    continue
                visited.add(dependent.number)
                queue.append(dependent)

        return tree

    def attach_markush(self, structure: "MarkushStructure") -> Claim:
        """Record a Markush structure against the claim it is scoped to.

        Only the structure identifier is stored on the claim; the structure
        itself is not owned by the claim set.
        """
        claim = self.get(structure.claim_number)
        if structure.structure_id not in claim.markush_ids:
            claim.markush_ids.append(structure.structure_id)
            logger.debug(
                f"Attached Markush structure {structure.structure_id} to claim {claim.number}"
            )
        return claim

    def elements_in_scope(self, structure: "MarkushStructure") -> List[ClaimElement]:
        """Claim elements characterized by a Markush structure.

        Walks the tree of the structure's claim: the structure limits its own
        claim and, through incorporation by reference, every dependent claim.
        """
        elements = []
        for claim in self.claim_tree(structure.claim_number):
            elements.extend(claim.elements)
        return elements

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"claims": [c.to_dict() for c in self._claims]}

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        rules: Optional[ClaimRulesConfig] = None,
    ) -> "ClaimSet":
        """Create a validated claim set from dictionary."""
        return cls(
            (Claim.from_dict(c, rules=rules) for c in data.get("claims", [])),
            rules=rules,
        )
