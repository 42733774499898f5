"""Tests for matching candidate molecules against Markush structures."""

import pytest

from patscope.errors import MatcherError, ValidationError
from patscope.markush import (
    MarkushStructure,
    MoleculeMatcher,
    Substituent,
    SubstituentType,
    VariablePosition,
    new_markush_structure,
)


class TableMatcher(MoleculeMatcher):
    """Matcher driven by a lookup table of candidate -> extracted groups."""

    def __init__(self, table):
        self.table = table
        self.calls = []

    def is_substructure(self, core, candidate):
        self.calls.append("is_substructure")
        return candidate in self.table

    def extract_substituents(self, core, candidate):
        self.calls.append("extract_substituents")
        return dict(self.table[candidate])

    def match_substituent(self, value, allowed):
        self.calls.append("match_substituent")
        for sub in allowed:
            if sub.smiles == value:
                return True, sub.substituent_id
        return False, ""


class BrokenMatcher(TableMatcher):
    def is_substructure(self, core, candidate):
        raise ConnectionError("chemistry service unavailable")


class BrokenExtractionMatcher(TableMatcher):
    def extract_substituents(self, core, candidate):
        raise TimeoutError("decomposition timed out")


class BrokenComparisonMatcher(TableMatcher):
    def match_substituent(self, value, allowed):
        raise ValueError(f"cannot parse fragment {value}")


@pytest.fixture
def structure():
    return new_markush_structure(
        "Formula I",
        "c1ccc([R1])cc1[R2]",
        1,
        [
            VariablePosition(symbol="R1", substituents=[
                Substituent("R1-F", SubstituentType.HALOGEN, "fluoro", smiles="F"),
                Substituent("R1-Cl", SubstituentType.HALOGEN, "chloro", smiles="Cl"),
            ]),
            VariablePosition(symbol="R2", is_optional=True, substituents=[
                Substituent("R2-Me", SubstituentType.ALKYL, "methyl", smiles="C"),
            ]),
        ],
        preferred_examples=["Fc1ccc(C)cc1"],
    )


class TestMatchMolecule:
    """Tests for MarkushStructure.match_molecule."""

    def test_empty_candidate(self, structure):
        """Test that an empty candidate is rejected."""
        with pytest.raises(ValidationError):
            structure.match_molecule("  ")

    def test_preferred_example_without_matcher(self, structure):
        """Test that preferred examples match without a matcher."""
        result = structure.match_molecule("Fc1ccc(C)cc1")
        assert result.is_match
        assert result.confidence == 1.0

    def test_preferred_example_skips_matcher(self, structure):
        """Test that preferred examples short-circuit the matcher."""
        matcher = TableMatcher({})
        assert structure.matches_molecule("Fc1ccc(C)cc1", matcher) == (True, 1.0)
        assert matcher.calls == []

    def test_no_matcher(self, structure):
        """Test that nothing else matches without a matcher."""
        assert structure.matches_molecule("Clc1ccccc1") == (False, 0.0)

    def test_core_not_found(self, structure):
        """Test candidates lacking the scaffold."""
        matcher = TableMatcher({})
        result = structure.match_molecule("CCO", matcher)
        assert not result.is_match
        assert matcher.calls == ["is_substructure"]

    def test_all_positions_matched(self, structure):
        """Test a full match."""
        matcher = TableMatcher({"Clc1ccc(C)cc1": {"R1": "Cl", "R2": "C"}})
        result = structure.match_molecule("Clc1ccc(C)cc1", matcher)
        assert result.is_match
        assert result.confidence == 1.0
        assert result.matched_positions == {"R1": "R1-Cl", "R2": "R2-Me"}
        assert result.unmatched_positions == []

    def test_optional_position_absent(self, structure):
        """Test that a missing group at an optional position is satisfied."""
        matcher = TableMatcher({"Clc1ccccc1": {"R1": "Cl"}})
        result = structure.match_molecule("Clc1ccccc1", matcher)
        assert result.is_match
        assert result.confidence == 1.0

    def test_required_position_absent(self, structure):
        """Test that a missing group at a required position rejects."""
        matcher = TableMatcher({"Cc1ccccc1": {"R2": "C"}})
        result = structure.match_molecule("Cc1ccccc1", matcher)
        assert not result.is_match
        assert result.unmatched_positions == ["R1"]

    def test_required_position_mismatch(self, structure):
        """Test that an undeclared group at a required position rejects."""
        matcher = TableMatcher({"Brc1ccccc1": {"R1": "Br"}})
        result = structure.match_molecule("Brc1ccccc1", matcher)
        assert not result.is_match
        assert result.confidence == 0.0

    def test_optional_position_mismatch_lowers_confidence(self, structure):
        """Test that a mismatch at an optional position only lowers confidence."""
        matcher = TableMatcher({"Fc1ccc(CC)cc1": {"R1": "F", "R2": "CC"}})
        result = structure.match_molecule("Fc1ccc(CC)cc1", matcher)
        assert result.is_match
        assert result.confidence == 0.5
        assert result.unmatched_positions == ["R2"]

    def test_matcher_failure_is_wrapped(self, structure):
        """Test that matcher exceptions surface as MatcherError."""
        with pytest.raises(MatcherError) as exc_info:
            structure.match_molecule("Clc1ccccc1", BrokenMatcher({}))
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.parametrize("matcher_cls,cause", [
        (BrokenExtractionMatcher, TimeoutError),
        (BrokenComparisonMatcher, ValueError),
    ])
    def test_later_matcher_failures_are_wrapped(self, structure, matcher_cls, cause):
        """Test wrapping of extraction and comparison failures."""
        matcher = matcher_cls({"Clc1ccccc1": {"R1": "Cl"}})
        with pytest.raises(MatcherError, match=structure.structure_id) as exc_info:
            structure.match_molecule("Clc1ccccc1", matcher)
        assert isinstance(exc_info.value.__cause__, cause)

    def test_no_positions_scaffold_match(self):
        """Test that a structure without positions matches on the scaffold alone."""
        structure = MarkushStructure(name="Bare core", core_structure="c1ccccc1", claim_number=1)
        matcher = TableMatcher({"Cc1ccccc1": {}})
        result = structure.match_molecule("Cc1ccccc1", matcher)
        assert result.is_match
        assert result.confidence == 1.0
        assert matcher.calls == ["is_substructure", "extract_substituents"]
        assert structure.matches_molecule("CCO", matcher) == (False, 0.0)

    def test_result_to_dict(self, structure):
        """Test serialization of match results."""
        matcher = TableMatcher({"Clc1ccccc1": {"R1": "Cl"}})
        d = structure.match_molecule("Clc1ccccc1", matcher).to_dict()
        assert d["structure_id"] == structure.structure_id
        assert d["is_match"] is True
        assert d["matched_positions"] == {"R1": "R1-Cl"}
