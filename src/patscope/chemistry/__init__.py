"""Chemistry backends implementing the molecule matching capability."""

from .rdkit_matcher import RDKitMoleculeMatcher, RDKIT_AVAILABLE, PLACEHOLDER_PATTERN
