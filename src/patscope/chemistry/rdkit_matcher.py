"""RDKit-backed molecule matcher.

Implements the `MoleculeMatcher` capability with RDKit:
- Scaffold containment via substructure search
- R-group extraction via RGroupDecomposition
- Substituent comparison by canonical SMILES, falling back to simple
  class rules (halogen, alkyl with carbon range, cyano) when a declared
  substituent has no structural fragment

Scaffold placeholders (``[R1]``, ``[Ar]``, ``[X]``, ``[Y1]``) are rewritten to
numbered dummy atoms (``[*:1]``) before RDKit sees them.

Reference:
- RDKit R-group decomposition: https://www.rdkit.org/docs/source/rdkit.Chem.rdRGroupDecomposition.html
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence, Tuple

from patscope.markush.matching import MoleculeMatcher
from patscope.markush.structure import POSITION_SYMBOL_PATTERN, Substituent, SubstituentType

logger = logging.getLogger(__name__)

# Try to import RDKit
try:
    from rdkit import Chem
    from rdkit.Chem import rdRGroupDecomposition
    RDKIT_AVAILABLE = True
except ImportError:
    RDKIT_AVAILABLE = False

PLACEHOLDER_PATTERN = re.compile(rf"\[({POSITION_SYMBOL_PATTERN})\]")

HALOGEN_ATOMIC_NUMBERS = {9, 17, 35, 53}
_HYDROGEN_FRAGMENTS = {"", "[H]", "[HH]"}


class RDKitMoleculeMatcher(MoleculeMatcher):
    """Molecule matcher using RDKit substructure search and R-group decomposition."""

    def __init__(self):
        if not RDKIT_AVAILABLE:
            raise ImportError("RDKit required. Install with: pip install rdkit")

        self._dummy = Chem.MolFromSmarts("[#0]")
        self._canonical_cache: Dict[str, Optional[str]] = {}

    def parse_smiles(self, smiles: str) -> Optional[Any]:
        """Parse SMILES to molecule object."""
        try:
            return Chem.MolFromSmiles(smiles)
        except Exception as e:
            logger.warning(f"Failed to parse SMILES: {smiles}, error: {e}")
            return None

    def canonical_smiles(self, smiles: str) -> Optional[str]:
        """Canonical SMILES, or None if unparseable."""
        if smiles in self._canonical_cache:
            return self._canonical_cache[smiles]
        mol = self.parse_smiles(smiles)
        canonical = Chem.MolToSmiles(mol) if mol is not None else None
        self._canonical_cache[smiles] = canonical
        return canonical

    def core_query(self, core: str) -> Tuple[Any, Dict[int, str]]:
        """Rewrite placeholders to dummy atoms and parse the scaffold.

        Returns:
            Tuple of (core molecule, map of dummy label -> position symbol).

        Raises:
            ValueError: If the rewritten scaffold is not valid SMILES.
        """
        labels: Dict[str, int] = {}

        def relabel(match) -> str:
            symbol = match.group(1)
            if symbol not in labels:
                labels[symbol] = len(labels) + 1
            return f"[*:{labels[symbol]}]"

        smiles = PLACEHOLDER_PATTERN.sub(relabel, core)
        mol = self.parse_smiles(smiles)
        if mol is None:
            raise ValueError(f"Cannot parse core structure: {core}")
        return mol, {index: symbol for symbol, index in labels.items()}

    def is_substructure(self, core: str, candidate: str) -> bool:
        """Check if candidate contains the scaffold with attachment points removed."""
        core_mol, _ = self.core_query(core)
        scaffold = Chem.DeleteSubstructs(core_mol, self._dummy)
        target = self.parse_smiles(candidate)
        if target is None:
            return False
        return target.HasSubstructMatch(scaffold)

    def extract_substituents(self, core: str, candidate: str) -> Dict[str, str]:
        """Decompose candidate into the scaffold and its R-groups.

        Returns:
            Map of position symbol to canonical fragment SMILES. Positions
            carrying only hydrogen are omitted.
        """
        core_mol, labels = self.core_query(core)
        target = self.parse_smiles(candidate)
        if target is None:
            return {}

        groups, unmatched = rdRGroupDecomposition.RGroupDecompose(
            [core_mol], [target], asSmiles=True
        )
        if unmatched or not groups:
            return {}

        extracted = {}
        for label, fragment_smiles in groups[0].items():
            if not label.startswith("R"):
                continue
            try:
                symbol = labels.get(int(label[1:]))
            except ValueError:
                continue
            if symbol is None:
                continue
            fragment = self._strip_attachment(fragment_smiles)
            if fragment not in _HYDROGEN_FRAGMENTS:
                extracted[symbol] = fragment
        return extracted

    def match_substituent(
        self,
        value: str,
        allowed: Sequence[Substituent],
    ) -> Tuple[bool, str]:
        """Match an extracted fragment against declared substituents."""
        value_canonical = self.canonical_smiles(value)

        for sub in allowed:
            if sub.smiles:
                if value_canonical is not None and \
                        value_canonical == self.canonical_smiles(sub.smiles):
                    return True, sub.substituent_id
                continue
            if self._matches_class(value, sub):
                return True, sub.substituent_id

        return False, ""

    def _strip_attachment(self, fragment_smiles: str) -> str:
        mol = self.parse_smiles(fragment_smiles)
        if mol is None:
            return re.sub(r"\(?\[\*:\d+\]\)?", "", fragment_smiles)
        return Chem.MolToSmiles(Chem.DeleteSubstructs(mol, self._dummy))

    def _matches_class(self, value: str, sub: Substituent) -> bool:
        mol = self.parse_smiles(value)
        if mol is None:
            return False

        atomic_numbers = [atom.GetAtomicNum() for atom in mol.GetAtoms()]

        if sub.substituent_type == SubstituentType.HALOGEN:
            return len(atomic_numbers) == 1 and atomic_numbers[0] in HALOGEN_ATOMIC_NUMBERS

        if sub.substituent_type == SubstituentType.ALKYL:
            if not atomic_numbers or any(n != 6 for n in atomic_numbers):
                return False
            if mol.GetRingInfo().NumRings() > 0:
                return False
            low, high = sub.carbon_range
            if high > 0:
                return low <= len(atomic_numbers) <= high
            return True

        if sub.substituent_type == SubstituentType.CYANO:
            return self.canonical_smiles(value) == "C#N"

        return False
