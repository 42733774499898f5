"""Tests for claim value objects."""

import pytest

from patscope.claims import (
    ClaimCategory,
    ClaimElement,
    ClaimType,
    Claim,
    new_claim,
)
from patscope.config import ClaimRulesConfig
from patscope.errors import ValidationError


INDEPENDENT_TEXT = "A compound of formula (I) or a pharmaceutically acceptable salt thereof."
DEPENDENT_TEXT = "The compound of claim 1, wherein R1 is methyl."


class TestNewClaim:
    """Tests for the validating claim constructor."""

    def test_valid_independent_claim(self):
        """Test creating an independent claim."""
        claim = new_claim(1, INDEPENDENT_TEXT, ClaimType.INDEPENDENT)
        assert claim.number == 1
        assert claim.is_independent
        assert claim.depends_on == []
        assert claim.category == ClaimCategory.PRODUCT

    def test_valid_dependent_claim(self):
        """Test creating a dependent claim."""
        claim = new_claim(2, DEPENDENT_TEXT, "dependent", depends_on=[1])
        assert claim.claim_type == ClaimType.DEPENDENT
        assert not claim.is_independent
        assert claim.depends_on == [1]

    def test_text_is_trimmed(self):
        """Test that surrounding whitespace is removed."""
        claim = new_claim(1, "   " + INDEPENDENT_TEXT + "\n", "independent")
        assert claim.text == INDEPENDENT_TEXT

    @pytest.mark.parametrize("number", [0, -3])
    def test_non_positive_number(self, number):
        """Test that claim numbers must be positive."""
        with pytest.raises(ValidationError) as exc_info:
            new_claim(number, INDEPENDENT_TEXT, "independent")
        assert exc_info.value.field == "number"

    def test_text_too_short(self):
        """Test the minimum text length after trimming."""
        with pytest.raises(ValidationError, match="at least 10"):
            new_claim(1, "   short   ", "independent")

    def test_text_too_long(self):
        """Test the maximum text length."""
        with pytest.raises(ValidationError, match="at most"):
            new_claim(1, "x" * 50001, "independent")

    def test_custom_text_rules(self):
        """Test configurable text-length rules."""
        rules = ClaimRulesConfig(min_text_length=3, max_text_length=20)
        claim = new_claim(1, "A kit.", "independent", rules=rules)
        assert claim.text == "A kit."

    def test_invalid_claim_type(self):
        """Test rejection of unknown claim types."""
        with pytest.raises(ValidationError) as exc_info:
            new_claim(1, INDEPENDENT_TEXT, "omnibus")
        assert exc_info.value.field == "claim_type"

    def test_invalid_category(self):
        """Test rejection of unknown categories."""
        with pytest.raises(ValidationError):
            new_claim(1, INDEPENDENT_TEXT, "independent", category="apparatus")

    def test_category_by_value(self):
        """Test category given as a string."""
        claim = new_claim(1, "A method of treating cancer.", "independent", category="method")
        assert claim.category == ClaimCategory.METHOD


class TestDependencyRules:
    """Tests for per-claim dependency rules."""

    def test_independent_with_dependencies(self):
        """Test that independent claims cannot reference other claims."""
        with pytest.raises(ValidationError, match="independent"):
            new_claim(2, INDEPENDENT_TEXT, "independent", depends_on=[1])

    def test_dependent_without_dependencies(self):
        """Test that dependent claims need a reference."""
        with pytest.raises(ValidationError, match="at least one"):
            new_claim(2, DEPENDENT_TEXT, "dependent")

    def test_forward_reference(self):
        """Test that a reference to a later claim is rejected."""
        with pytest.raises(ValidationError, match="forward reference"):
            new_claim(2, DEPENDENT_TEXT, "dependent", depends_on=[3])

    def test_self_reference(self):
        """Test that a claim cannot depend on itself."""
        with pytest.raises(ValidationError, match="self reference"):
            new_claim(2, DEPENDENT_TEXT, "dependent", depends_on=[2])

    def test_duplicate_dependency(self):
        """Test that dependencies are unique."""
        with pytest.raises(ValidationError, match="duplicate"):
            new_claim(3, DEPENDENT_TEXT, "dependent", depends_on=[1, 1])

    def test_non_positive_dependency(self):
        """Test that dependency numbers must be positive."""
        with pytest.raises(ValidationError):
            new_claim(3, DEPENDENT_TEXT, "dependent", depends_on=[0])

    def test_multiple_dependencies(self):
        """Test a claim depending on several earlier claims."""
        claim = new_claim(4, DEPENDENT_TEXT, "dependent", depends_on=[1, 3])
        assert claim.depends_on == [1, 3]


class TestClaimMutators:
    """Tests for set_dependencies and add_element."""

    def test_set_dependencies(self):
        """Test replacing the dependency set."""
        claim = new_claim(3, DEPENDENT_TEXT, "dependent", depends_on=[1])
        claim.set_dependencies([1, 2])
        assert claim.depends_on == [1, 2]

    def test_set_dependencies_invalid_leaves_claim_unchanged(self):
        """Test that a rejected update does not mutate the claim."""
        claim = new_claim(3, DEPENDENT_TEXT, "dependent", depends_on=[1])
        with pytest.raises(ValidationError, match="forward reference"):
            claim.set_dependencies([1, 5])
        assert claim.depends_on == [1]

    def test_add_element(self):
        """Test appending an element."""
        claim = new_claim(1, INDEPENDENT_TEXT, "independent")
        claim.add_element(ClaimElement(text="a benzene ring"))
        assert len(claim.elements) == 1
        assert claim.elements[0].element_id

    def test_add_non_essential_element_to_empty_claim(self):
        """Test that a claim cannot end up with only non-essential elements."""
        claim = new_claim(1, INDEPENDENT_TEXT, "independent")
        with pytest.raises(ValidationError, match="essential"):
            claim.add_element(ClaimElement(text="optionally a carrier", is_essential=False))
        assert claim.elements == []

    def test_add_non_essential_after_essential(self):
        """Test that non-essential elements are fine alongside essential ones."""
        claim = new_claim(1, INDEPENDENT_TEXT, "independent")
        claim.add_element(ClaimElement(text="a benzene ring"))
        claim.add_element(ClaimElement(text="optionally a carrier", is_essential=False))
        assert len(claim.essential_elements()) == 1

    def test_elements_require_essential(self):
        """Test the essential-element rule at construction."""
        with pytest.raises(ValidationError, match="essential"):
            new_claim(
                1, INDEPENDENT_TEXT, "independent",
                elements=[ClaimElement(text="a carrier", is_essential=False)],
            )

    def test_empty_element_text(self):
        """Test that element text is required."""
        with pytest.raises(ValidationError):
            ClaimElement(text="   ")


class TestClaimHelpers:
    """Tests for text helpers on claims."""

    def test_contains_chemical_entity(self):
        """Test detection of chemical entities in elements."""
        claim = new_claim(1, INDEPENDENT_TEXT, "independent")
        assert not claim.contains_chemical_entity()
        claim.add_element(ClaimElement(text="a phenyl ring", chemical_entities=["c1ccccc1"]))
        assert claim.contains_chemical_entity()

    def test_extract_key_terms(self):
        """Test stop-word filtering and deduplication."""
        claim = new_claim(
            1,
            "A pharmaceutical composition comprising a compound and a carrier, "
            "wherein the compound is an inhibitor.",
            "independent",
        )
        terms = claim.extract_key_terms()
        assert terms == ["pharmaceutical", "composition", "compound", "carrier", "inhibitor"]

    def test_extract_key_terms_keeps_hyphenated(self):
        """Test that hyphenated tokens survive tokenisation."""
        claim = new_claim(1, "A C1-C6 alkyl substituted pyridine ring.", "independent")
        assert "c1-c6" in claim.extract_key_terms()


class TestClaimSerialization:
    """Tests for dict round-trips."""

    def test_to_dict(self):
        """Test conversion to dictionary."""
        claim = new_claim(2, DEPENDENT_TEXT, "dependent", category="product", depends_on=[1])
        d = claim.to_dict()
        assert d["number"] == 2
        assert d["claim_type"] == "dependent"
        assert d["category"] == "product"
        assert d["depends_on"] == [1]

    def test_from_dict_preserves_elements(self):
        """Test that element identifiers survive a round-trip."""
        claim = new_claim(
            1, INDEPENDENT_TEXT, "independent",
            elements=[ClaimElement(text="a core scaffold", element_id="E1")],
            markush_ids=["m-1"],
        )
        restored = Claim.from_dict(claim.to_dict())
        assert restored == claim
        assert restored.elements[0].element_id == "E1"
        assert restored.markush_ids == ["m-1"]

    def test_from_dict_validates(self):
        """Test that invalid payloads are rejected."""
        with pytest.raises(ValidationError):
            Claim.from_dict({"number": 2, "text": DEPENDENT_TEXT,
                             "claim_type": "dependent", "depends_on": [2]})
