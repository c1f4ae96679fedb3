from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from rdkit import Chem

from .errors import PatternCompileError, StructureParseError
from .molecule import MoleculeRecord
from .patterns import Pattern, compile_pattern


Matcher = Tuple[Chem.Mol, str]


class MatchResult:
    """Outcome of one matching pass: the partition plus what went wrong."""

    def __init__(self, matched: List[MoleculeRecord], unmatched: List[MoleculeRecord],
                 pattern_names: Sequence[str] = (),
                 errors: Optional[List[PatternCompileError]] = None):
        self.matched = matched
        self.unmatched = unmatched
        # names of the selected patterns, in library order
        self.pattern_names = list(pattern_names)
        self.errors = errors or []

    def __repr__(self):
        return (f"MatchResult(matched={len(self.matched)}, unmatched={len(self.unmatched)}, "
                f"list_name={self.list_name!r})")

    @property
    def list_name(self) -> str:
        return "|".join(self.pattern_names)

    @property
    def matched_title(self) -> str:
        return f"Matched : {self.list_name}"

    @property
    def unmatched_title(self) -> str:
        return f"Didn't Match : {self.list_name}"


# ─────────────────────────────────────────────────────────────────────────────
#   Orchestrator
# ─────────────────────────────────────────────────────────────────────────────
class MatchOrchestrator:
    """
    Turn selected patterns into matchers and split a molecule collection
    into the molecules any matcher hits and the ones none does.
    """

    def __init__(self):
        # compile errors of the last build(), for the caller to report
        self.errors: List[PatternCompileError] = []

    # ────────────────────────── public interface ───────────────────────────
    @staticmethod
    def select(patterns: Sequence[Pattern], chosen: Optional[Iterable[str]] = None,
               allow_multiple: bool = True) -> List[Pattern]:
        """
        Patterns whose names are in `chosen`, in library order. None chooses
        all of them.
        """
        if chosen is None:
            selected = list(patterns)
        else:
            names = set(chosen)
            selected = [p for p in patterns if p.name in names]
        if not allow_multiple and len(selected) > 1:
            raise ValueError(f"Only one pattern may be chosen, got {len(selected)}")
        return selected

    def build(self, selected: Sequence[Pattern],
              sub_definitions: Optional[Mapping[str, str]] = None) -> List[Matcher]:
        """Compile each pattern; a pattern that fails is reported and skipped."""
        self.errors = []
        matchers: List[Matcher] = []
        for pattern in selected:
            try:
                matchers.append((compile_pattern(pattern, sub_definitions), pattern.name))
            except PatternCompileError as e:
                print(f"[WARN] {e}")
                self.errors.append(e)
        return matchers

    def classify(self, molecules: Iterable[MoleculeRecord],
                 matchers: Sequence[Matcher]) -> Tuple[List[MoleculeRecord], List[MoleculeRecord]]:
        """
        (matched, unmatched). A molecule is matched if any matcher finds at
        least one occurrence in it. Unparsable molecules count as unmatched.
        """
        matched, unmatched = [], []
        for rec in molecules:
            try:
                mol = rec.to_mol()
            except StructureParseError as e:
                print(f"[WARN] {e}")
                unmatched.append(rec)
                continue
            if any(mol.HasSubstructMatch(query) for query, _ in matchers):
                matched.append(rec)
            else:
                unmatched.append(rec)
        return matched, unmatched

    def run(self, molecules: Sequence[MoleculeRecord], patterns: Sequence[Pattern],
            sub_definitions: Optional[Mapping[str, str]] = None,
            chosen: Optional[Iterable[str]] = None) -> MatchResult:
        """select, build and classify in one go."""
        selected = self.select(patterns, chosen)
        names = [p.name for p in selected]
        list_name = "|".join(names)
        matchers = self.build(selected, sub_definitions)
        if not matchers:
            print("[WARN] No usable patterns, leaving all molecules unmatched.")
            return MatchResult([], list(molecules), names, self.errors)

        print(f"[INFO] Matching {len(molecules)} molecules against {list_name}")
        matched, unmatched = self.classify(molecules, matchers)
        print(f"[INFO] {len(matched)} matched, {len(unmatched)} didn't match")
        return MatchResult(matched, unmatched, names, self.errors)

    @staticmethod
    def first_match(mol: Chem.Mol, query: Chem.Mol) -> Optional[Tuple[int, ...]]:
        """Molecule atom indices of the first occurrence, in query atom order."""
        match = mol.GetSubstructMatch(query)
        return tuple(match) if match else None

    def atom_membership(self, mol: Chem.Mol, matchers: Sequence[Matcher]) -> Dict[str, Set[int]]:
        """For each matcher that hits `mol`, the atoms of its first match."""
        membership: Dict[str, Set[int]] = {}
        for query, name in matchers:
            match = self.first_match(mol, query)
            if match:
                membership[name] = set(match)
        return membership
