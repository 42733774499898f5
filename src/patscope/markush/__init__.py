"""Markush structure modelling, enumeration, matching and coverage."""

from .matching import MoleculeMatcher, MoleculeMatchResult
from .structure import (
    MAX_COUNT,
    POSITION_SYMBOL_PATTERN,
    SubstituentType,
    Substituent,
    VariablePosition,
    MarkushStructure,
    new_markush_structure,
)
from .coverage import (
    CoverageAnalyzer,
    CoverageReport,
    MarkushCoverageAnalysis,
    MoleculeAttribution,
    sum_combinations,
)
from .parsing import parse_markush_from_text, classify_substituent
