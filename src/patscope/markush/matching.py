"""Molecule matching capability consumed by Markush structures.

The engine never reasons about chemistry itself. Substructure search,
R-group extraction and substituent comparison are delegated to a
`MoleculeMatcher` implementation (see `patscope.chemistry` for an RDKit
backed one); the engine only orchestrates the calls and interprets results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Tuple

if TYPE_CHECKING:
    from patscope.markush.structure import Substituent


class MoleculeMatcher(ABC):
    """Pluggable substructure / extraction / comparison backend.

    Implementations may perform I/O (e.g. call a chemistry service). Any
    exception they raise is wrapped in `MatcherError` by the caller.
    """

    @abstractmethod
    def is_substructure(self, core: str, candidate: str) -> bool:
        """Whether `candidate` contains the scaffold `core`."""

    @abstractmethod
    def extract_substituents(self, core: str, candidate: str) -> Dict[str, str]:
        """Map each position symbol to the group found at it in `candidate`.

        Positions left unsubstituted (hydrogen) are omitted from the mapping.
        """

    @abstractmethod
    def match_substituent(
        self,
        value: str,
        allowed: Sequence["Substituent"],
    ) -> Tuple[bool, str]:
        """Check an extracted group against the declared alternatives.

        Returns:
            Tuple of (matched, id of the matching substituent or "").
        """


@dataclass
class MoleculeMatchResult:
    """Detailed outcome of matching one molecule against one structure."""

    structure_id: str
    candidate: str
    is_match: bool
    confidence: float = 0.0
    matched_positions: Dict[str, str] = field(default_factory=dict)  # symbol -> substituent id
    unmatched_positions: List[str] = field(default_factory=list)
    matched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "structure_id": self.structure_id,
            "candidate": self.candidate,
            "is_match": self.is_match,
            "confidence": self.confidence,
            "matched_positions": dict(self.matched_positions),
            "unmatched_positions": list(self.unmatched_positions),
            "matched_at": self.matched_at.isoformat(),
        }
