"""Coverage analysis of molecule samples against Markush structures.

Answers "what fraction of these molecules does the patent cover?" for
freedom-to-operate and infringement workflows. A molecule is covered when it
matches any of the patent's structures; the first matching structure (in the
order given) is credited with the match.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set

import polars as pl

from patscope.config import DEFAULT_CONFIG, CoverageConfig
from patscope.markush.matching import MoleculeMatcher, MoleculeMatchResult
from patscope.markush.structure import MAX_COUNT, MarkushStructure

logger = logging.getLogger(__name__)


@dataclass
class MoleculeAttribution:
    """Coverage verdict for one sampled molecule."""

    candidate: str
    is_covered: bool
    structure_id: Optional[str] = None
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "candidate": self.candidate,
            "is_covered": self.is_covered,
            "structure_id": self.structure_id,
            "confidence": self.confidence,
        }


@dataclass
class CoverageReport:
    """Aggregate coverage of a molecule sample by a set of structures."""

    matched_count: int
    sampled_count: int
    coverage_rate: float
    total_combinations: int
    structure_ids: List[str] = field(default_factory=list)
    attributions: List[MoleculeAttribution] = field(default_factory=list)
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "matched_count": self.matched_count,
            "sampled_count": self.sampled_count,
            "coverage_rate": self.coverage_rate,
            "total_combinations": self.total_combinations,
            "structure_ids": list(self.structure_ids),
            "attributions": [a.to_dict() for a in self.attributions],
            "analyzed_at": self.analyzed_at.isoformat(),
        }

    def to_dataframe(self) -> pl.DataFrame:
        """One row per sampled molecule."""
        if not self.attributions:
            return pl.DataFrame(schema={
                "candidate": pl.Utf8,
                "is_covered": pl.Boolean,
                "structure_id": pl.Utf8,
                "confidence": pl.Float64,
            })
        return pl.DataFrame([a.to_dict() for a in self.attributions])


@dataclass
class MarkushCoverageAnalysis:
    """Coverage of a molecule sample by a single structure."""

    structure_id: str
    total_combinations: int
    sampled_molecules: int
    matched_molecules: int
    coverage_rate: float
    position_diversity: Dict[str, int] = field(default_factory=dict)
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "structure_id": self.structure_id,
            "total_combinations": self.total_combinations,
            "sampled_molecules": self.sampled_molecules,
            "matched_molecules": self.matched_molecules,
            "coverage_rate": self.coverage_rate,
            "position_diversity": dict(self.position_diversity),
            "analyzed_at": self.analyzed_at.isoformat(),
        }


class CoverageAnalyzer:
    """Scores molecule samples against Markush structures.

    Example:
        analyzer = CoverageAnalyzer(matcher=RDKitMoleculeMatcher())
        report = analyzer.analyze(structures, ["Clc1ccccc1", "CCO"])
        print(report.coverage_rate)
    """

    def __init__(
        self,
        matcher: Optional[MoleculeMatcher] = None,
        config: Optional[CoverageConfig] = None,
    ):
        self.matcher = matcher
        self.config = config or DEFAULT_CONFIG.coverage

    def _sample(self, molecules: Sequence[str]) -> List[str]:
        sample = list(molecules)
        limit = self.config.max_sample_size
        if limit is not None and len(sample) > limit:
            logger.info(f"Sample of {len(sample)} molecules capped at {limit}")
            sample = sample[:limit]
        return sample

    def analyze(
        self,
        structures: Sequence[MarkushStructure],
        molecules: Sequence[str],
    ) -> CoverageReport:
        """Union coverage of `molecules` by `structures`.

        Args:
            structures: Markush structures of one patent, in priority order.
            molecules: Candidate molecules (SMILES).

        Returns:
            CoverageReport with counts, rate and per-molecule attribution.

        Raises:
            MatcherError: If the matcher fails.
        """
        sample = self._sample(molecules)
        attributions = []
        matched = 0

        for candidate in sample:
            attribution = MoleculeAttribution(candidate=candidate, is_covered=False)
            for structure in structures:
                result = structure.match_molecule(candidate, self.matcher)
                if result.is_match:
                    attribution.is_covered = True
                    attribution.structure_id = structure.structure_id
                    attribution.confidence = result.confidence
                    break
            if attribution.is_covered:
                matched += 1
            attributions.append(attribution)

        sampled = len(sample)
        report = CoverageReport(
            matched_count=matched,
            sampled_count=sampled,
            coverage_rate=matched / sampled if sampled else 0.0,
            total_combinations=sum_combinations(structures),
            structure_ids=[s.structure_id for s in structures],
            attributions=attributions,
        )
        logger.info(
            f"Coverage: {matched}/{sampled} molecules ({report.coverage_rate:.1%}) "
            f"across {len(structures)} structures"
        )
        return report

    def analyze_structure(
        self,
        structure: MarkushStructure,
        molecules: Sequence[str],
    ) -> MarkushCoverageAnalysis:
        """Coverage of `molecules` by a single structure.

        Also reports, per position, how many distinct substituents were
        observed among the matched molecules.
        """
        sample = self._sample(molecules)
        diversity: Dict[str, Set[str]] = {pos.symbol: set() for pos in structure.positions}
        matched = 0

        for candidate in sample:
            result: MoleculeMatchResult = structure.match_molecule(candidate, self.matcher)
            if not result.is_match:
                continue
            matched += 1
            for symbol, substituent in result.matched_positions.items():
                diversity.setdefault(symbol, set()).add(substituent)

        sampled = len(sample)
        return MarkushCoverageAnalysis(
            structure_id=structure.structure_id,
            total_combinations=structure.calculate_combinations(),
            sampled_molecules=sampled,
            matched_molecules=matched,
            coverage_rate=matched / sampled if sampled else 0.0,
            position_diversity={symbol: len(seen) for symbol, seen in diversity.items()},
        )


def sum_combinations(structures: Sequence[MarkushStructure]) -> int:
    """Saturating sum of the library sizes of several structures."""
    total = 0
    for structure in structures:
        count = structure.calculate_combinations()
        if count > MAX_COUNT - total:
            return MAX_COUNT
        total += count
    return total
