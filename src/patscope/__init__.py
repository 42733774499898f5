"""PatScope: patent claim graphs and Markush structure scope analysis."""

__version__ = "0.1.0"

from patscope.errors import ValidationError, MatcherError
from patscope.claims import (
    ClaimType,
    ClaimCategory,
    ClaimElement,
    Claim,
    ClaimSet,
    new_claim,
)
from patscope.markush import (
    SubstituentType,
    Substituent,
    VariablePosition,
    MarkushStructure,
    MoleculeMatcher,
    CoverageAnalyzer,
    new_markush_structure,
)
