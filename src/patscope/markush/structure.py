"""Markush structures: combinatorial chemical genus claims.

A Markush structure describes a family of compounds as a fixed core scaffold
plus labelled variable positions (R-groups), each of which may be occupied by
any one of a list of declared substituents. The scaffold carries one
placeholder token per position, written as the symbol in square brackets
(e.g. ``c1ccc([R1])cc1``).

Provides:
- Construction and validation of structures, positions and substituents
- Overflow-safe counting of the virtual compound library
- Bounded depth-first enumeration of exemplary compounds
- Matching of candidate molecules through a pluggable `MoleculeMatcher`
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from patscope.config import DEFAULT_CONFIG
from patscope.errors import MatcherError, ValidationError
from patscope.markush.matching import MoleculeMatcher, MoleculeMatchResult

logger = logging.getLogger(__name__)

# Variable position symbols: R1, R2a, Ar, Ar1, X, Y1, Z
POSITION_SYMBOL_PATTERN = r"R\d+[a-z]?|Ar\d*|[XYZ]\d*"

# Largest count representable as a 64-bit signed integer
MAX_COUNT = 2 ** 63 - 1


class SubstituentType(str, Enum):
    """Chemical classification of a substituent."""
    ALKYL = "alkyl"
    ARYL = "aryl"
    HETEROARYL = "heteroaryl"
    HALOGEN = "halogen"
    ALKOXY = "alkoxy"
    AMINO = "amino"
    CYANO = "cyano"
    HYDROGEN = "hydrogen"
    CUSTOM = "custom"


@dataclass
class Substituent:
    """One chemical alternative allowed at a variable position."""

    substituent_id: str
    substituent_type: SubstituentType
    name: str
    smiles: Optional[str] = None                   # structural fragment
    carbon_range: Tuple[int, int] = (0, 0)         # (min, max) carbon atoms
    description: str = ""
    is_preferred: bool = False

    @property
    def token(self) -> str:
        """Text substituted into the scaffold during enumeration."""
        return self.smiles or self.name

    def validate(self) -> None:
        if not self.substituent_id:
            raise ValidationError("substituent ID cannot be empty", field="substituent_id")
        if not self.name:
            raise ValidationError(
                f"substituent {self.substituent_id}: name cannot be empty", field="name"
            )
        if not isinstance(self.substituent_type, SubstituentType):
            raise ValidationError(
                f"substituent {self.substituent_id}: invalid substituent type "
                f"{self.substituent_type!r}",
                field="substituent_type", value=self.substituent_type,
            )
        low, high = self.carbon_range
        if low < 0 or low > high:
            raise ValidationError(
                f"substituent {self.substituent_id}: invalid carbon range {low}-{high}",
                field="carbon_range", value=(low, high),
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "substituent_id": self.substituent_id,
            "substituent_type": self.substituent_type.value,
            "name": self.name,
            "smiles": self.smiles,
            "carbon_range": list(self.carbon_range),
            "description": self.description,
            "is_preferred": self.is_preferred,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Substituent":
        """Create from dictionary."""
        raw_type = data.get("substituent_type", SubstituentType.CUSTOM.value)
        try:
            substituent_type = SubstituentType(raw_type)
        except ValueError:
            raise ValidationError(
                f"invalid substituent type {raw_type!r}",
                field="substituent_type", value=raw_type,
            ) from None
        return cls(
            substituent_id=data.get("substituent_id", ""),
            substituent_type=substituent_type,
            name=data.get("name", ""),
            smiles=data.get("smiles"),
            carbon_range=tuple(data.get("carbon_range", (0, 0))),
            description=data.get("description", ""),
            is_preferred=data.get("is_preferred", False),
        )


@dataclass
class VariablePosition:
    """A labelled attachment point (R-group) on the core scaffold."""

    symbol: str                                    # e.g. R1, X
    substituents: List[Substituent] = field(default_factory=list)
    is_optional: bool = False
    repeat_range: Tuple[int, int] = (0, 0)         # (min, max) repeat count
    linked_positions: List[str] = field(default_factory=list)
    description: str = ""

    @property
    def placeholder(self) -> str:
        """Token marking this position in the core scaffold."""
        return f"[{self.symbol}]"

    def substituent_count(self) -> int:
        return len(self.substituents)

    def combination_factor(self) -> int:
        """Number of variants this position contributes to the library.

        Alternatives, plus one for "absent" when optional, multiplied by the
        repeat span when a repeat range is declared. The repeat multiplier is
        a conservative approximation kept for compatibility with existing
        figures.
        """
        factor = len(self.substituents)
        if self.is_optional:
            factor += 1
        low, high = self.repeat_range
        if high > 0 or low > 0:
            span = high - low + 1
            if span > 0:
                factor *= span
        return factor

    def validate(self) -> None:
        if not self.symbol:
            raise ValidationError("variable position symbol cannot be empty", field="symbol")
        if not self.substituents and not self.is_optional:
            raise ValidationError(
                f"position {self.symbol}: non-optional variable position must have substituents",
                field="substituents", value=self.symbol,
            )
        low, high = self.repeat_range
        if low < 0 or low > high:
            raise ValidationError(
                f"position {self.symbol}: invalid repeat range {low}-{high}",
                field="repeat_range", value=(low, high),
            )
        seen_ids = set()
        for sub in self.substituents:
            sub.validate()
            if sub.substituent_id in seen_ids:
                raise ValidationError(
                    f"position {self.symbol}: duplicate substituent ID {sub.substituent_id}",
                    field="substituent_id", value=sub.substituent_id,
                )
            seen_ids.add(sub.substituent_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "substituents": [s.to_dict() for s in self.substituents],
            "is_optional": self.is_optional,
            "repeat_range": list(self.repeat_range),
            "linked_positions": list(self.linked_positions),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariablePosition":
        """Create from dictionary."""
        return cls(
            symbol=data.get("symbol", ""),
            substituents=[Substituent.from_dict(s) for s in data.get("substituents", [])],
            is_optional=data.get("is_optional", False),
            repeat_range=tuple(data.get("repeat_range", (0, 0))),
            linked_positions=list(data.get("linked_positions", [])),
            description=data.get("description", ""),
        )


@dataclass
class MarkushStructure:
    """A complete Markush structure scoped to one claim.

    The structure owns its positions and substituents by value. The owning
    claim is referenced by number only.
    """

    name: str
    core_structure: str                            # SMILES with [symbol] placeholders
    claim_number: int
    positions: List[VariablePosition] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    preferred_examples: List[str] = field(default_factory=list)
    core_description: str = ""
    structure_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    total_combinations: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def position_count(self) -> int:
        return len(self.positions)

    def get_position(self, symbol: str) -> Optional[VariablePosition]:
        """Return the variable position with the given symbol, if any."""
        for pos in self.positions:
            if pos.symbol == symbol:
                return pos
        return None

    def validate(self) -> None:
        """Check the structure's invariants.

        Raises:
            ValidationError: On the first violated rule.
        """
        if not self.name or not self.name.strip():
            raise ValidationError("name cannot be empty", field="name")
        if not self.core_structure or not self.core_structure.strip():
            raise ValidationError("core structure cannot be empty", field="core_structure")
        if isinstance(self.claim_number, bool) or not isinstance(self.claim_number, int) \
                or self.claim_number <= 0:
            raise ValidationError(
                f"claim number must be positive, got {self.claim_number!r}",
                field="claim_number", value=self.claim_number,
            )
        if not self.positions:
            raise ValidationError(
                "must have at least one variable position", field="positions"
            )

        symbols = set()
        for pos in self.positions:
            if pos.symbol in symbols:
                raise ValidationError(
                    f"duplicate position symbol: {pos.symbol}",
                    field="symbol", value=pos.symbol,
                )
            symbols.add(pos.symbol)
            pos.validate()

        for pos in self.positions:
            for linked in pos.linked_positions:
                if linked not in symbols or linked == pos.symbol:
                    raise ValidationError(
                        f"position {pos.symbol}: linked position {linked} not found",
                        field="linked_positions", value=linked,
                    )

        for constraint in self.constraints:
            if not constraint or not constraint.strip():
                raise ValidationError("constraint cannot be empty", field="constraints")

    def add_position(self, position: VariablePosition) -> None:
        """Add a variable position (stored as a copy).

        Linked positions must already be part of the structure.

        Raises:
            ValidationError: On a duplicate symbol, an unresolved link or an
                invalid position.
        """
        candidate = copy.deepcopy(position)
        candidate.validate()
        if self.get_position(candidate.symbol) is not None:
            raise ValidationError(
                f"duplicate position symbol: {candidate.symbol}",
                field="symbol", value=candidate.symbol,
            )
        for linked in candidate.linked_positions:
            if linked == candidate.symbol or self.get_position(linked) is None:
                raise ValidationError(
                    f"position {candidate.symbol}: linked position {linked} not found",
                    field="linked_positions", value=linked,
                )
        self.positions.append(candidate)
        self.calculate_combinations()

    def add_constraint(self, constraint: str) -> None:
        """Add a global constraint on the structure."""
        if not constraint or not constraint.strip():
            raise ValidationError("constraint cannot be empty", field="constraints")
        self.constraints.append(constraint.strip())

    # ------------------------------------------------------------------
    # Combinatorics
    # ------------------------------------------------------------------

    def calculate_combinations(self) -> int:
        """Size of the virtual compound library covered by the structure.

        Product of the per-position factors, saturating at MAX_COUNT instead
        of growing past the 64-bit range. A structure without positions
        yields 0.
        """
        if not self.positions:
            self.total_combinations = 0
            return 0

        total = 1
        for pos in self.positions:
            factor = pos.combination_factor()
            if total > 0 and factor > MAX_COUNT // total:
                logger.debug(
                    f"Combination count for {self.name} saturated at position {pos.symbol}"
                )
                total = MAX_COUNT
                break
            total *= factor

        self.total_combinations = total
        return total

    def enumerate_exemplary(self, max_count: int = 0) -> List[str]:
        """Generate up to `max_count` example compounds.

        Substitutes one alternative per position into the scaffold,
        depth-first in declaration order, and stops as soon as `max_count`
        strings exist. The output is plain string substitution, not a
        chemically validated structure. Positions whose placeholder is
        absent from the scaffold (e.g. the "[Core]" scaffold produced by
        text parsing) do not branch, so each example is distinct.

        Args:
            max_count: Maximum results; values <= 0 use the configured
                default (10).

        Returns:
            List of substituted scaffold strings.
        """
        if max_count <= 0:
            max_count = DEFAULT_CONFIG.enumeration.default_max_count

        results: List[str] = []
        self._expand(self.core_structure, 0, max_count, results)

        if len(results) >= max_count:
            logger.debug(f"Enumeration of {self.name} truncated at {max_count} examples")
        return results

    def _expand(self, partial: str, index: int, max_count: int, results: List[str]) -> None:
        if len(results) >= max_count:
            return
        if index == len(self.positions):
            if partial:
                results.append(partial)
            return

        pos = self.positions[index]
        if pos.placeholder not in partial:
            self._expand(partial, index + 1, max_count, results)
            return

        # A position without alternatives is left unsubstituted
        alternatives = list(dict.fromkeys(sub.token for sub in pos.substituents)) or [""]
        for alternative in alternatives:
            if len(results) >= max_count:
                return
            self._expand(
                partial.replace(pos.placeholder, alternative),
                index + 1,
                max_count,
                results,
            )

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match_molecule(
        self,
        candidate: str,
        matcher: Optional[MoleculeMatcher] = None,
    ) -> MoleculeMatchResult:
        """Check whether a molecule falls within the structure's scope.

        1. A candidate listed verbatim in the preferred examples matches
           with confidence 1.0, with or without a matcher.
        2. Without a matcher nothing else can be checked.
        3. The candidate must contain the core scaffold.
        4. The group at every position is extracted and compared with the
           declared alternatives. A missing or non-matching group at a
           required position rejects the candidate; at an optional position a
           missing group counts as satisfied.

        Confidence is the fraction of satisfied positions.

        Raises:
            ValidationError: If `candidate` is empty.
            MatcherError: If the matcher fails.
        """
        if not candidate or not candidate.strip():
            raise ValidationError("candidate molecule cannot be empty", field="candidate")

        result = MoleculeMatchResult(
            structure_id=self.structure_id,
            candidate=candidate,
            is_match=False,
        )

        if candidate in self.preferred_examples:
            result.is_match = True
            result.confidence = 1.0
            return result

        if matcher is None:
            return result

        if not self._invoke("is_substructure", matcher.is_substructure,
                            self.core_structure, candidate):
            return result

        extracted = self._invoke("extract_substituents", matcher.extract_substituents,
                                 self.core_structure, candidate) or {}

        if not self.positions:
            result.is_match = True
            result.confidence = 1.0
            return result

        satisfied = 0
        for pos in self.positions:
            actual = extracted.get(pos.symbol)
            if actual is None:
                if pos.is_optional:
                    satisfied += 1
                    continue
                result.unmatched_positions.append(pos.symbol)
                return result

            matched, matched_id = self._invoke("match_substituent", matcher.match_substituent,
                                               actual, pos.substituents)
            if matched:
                satisfied += 1
                result.matched_positions[pos.symbol] = matched_id or actual
            else:
                result.unmatched_positions.append(pos.symbol)
                if not pos.is_optional:
                    return result

        result.is_match = True
        result.confidence = satisfied / len(self.positions)
        return result

    def matches_molecule(
        self,
        candidate: str,
        matcher: Optional[MoleculeMatcher] = None,
    ) -> Tuple[bool, float]:
        """Return (is_match, confidence) for a candidate molecule."""
        result = self.match_molecule(candidate, matcher)
        return result.is_match, result.confidence

    def _invoke(self, operation: str, func: Callable, *args):
        try:
            return func(*args)
        except Exception as e:
            logger.warning(f"Matcher {operation} failed for structure {self.structure_id}: {e}")
            raise MatcherError(
                f"matcher {operation} failed for structure {self.structure_id}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "structure_id": self.structure_id,
            "name": self.name,
            "core_structure": self.core_structure,
            "core_description": self.core_description,
            "positions": [p.to_dict() for p in self.positions],
            "constraints": list(self.constraints),
            "preferred_examples": list(self.preferred_examples),
            "claim_number": self.claim_number,
            "total_combinations": self.total_combinations,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], validate: bool = True) -> "MarkushStructure":
        """Create from dictionary.

        Args:
            data: Output of `to_dict`.
            validate: Run `validate()` on the restored structure.
        """
        kwargs = {}
        if data.get("structure_id"):
            kwargs["structure_id"] = data["structure_id"]
        if data.get("created_at"):
            kwargs["created_at"] = datetime.fromisoformat(data["created_at"])

        structure = cls(
            name=data.get("name", ""),
            core_structure=data.get("core_structure", ""),
            claim_number=data.get("claim_number", 0),
            positions=[VariablePosition.from_dict(p) for p in data.get("positions", [])],
            constraints=list(data.get("constraints", [])),
            preferred_examples=list(data.get("preferred_examples", [])),
            core_description=data.get("core_description", ""),
            total_combinations=data.get("total_combinations", 0),
            **kwargs,
        )
        if validate:
            structure.validate()
        return structure


def new_markush_structure(
    name: str,
    core_structure: str,
    claim_number: int,
    positions: Iterable[VariablePosition],
    constraints: Iterable[str] = (),
    preferred_examples: Iterable[str] = (),
    core_description: str = "",
) -> MarkushStructure:
    """Construct and validate a Markush structure.

    Positions are deep-copied so the caller's objects are never shared.

    Raises:
        ValidationError: On the first violated rule.
    """
    structure = MarkushStructure(
        name=(name or "").strip(),
        core_structure=(core_structure or "").strip(),
        claim_number=claim_number,
        positions=copy.deepcopy(list(positions)),
        constraints=list(constraints),
        preferred_examples=list(preferred_examples),
        core_description=core_description,
    )
    structure.validate()
    structure.calculate_combinations()
    return structure
