"""
Core/R-group decomposition of a molecule collection.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import multiprocessing as mp

from rdkit import Chem

from ..errors import MissingColumnError, PatternCompileError, StructureParseError
from ..molecule import MoleculeRecord
from ..patterns import Pattern, PatternKind, compile_pattern
from ..settings import (CORE_CONTAINED_IN_COLUMN, CORE_PREFIX, MATCH_POLICY, MatchPolicy,
                        OTHER_TAG_ELEMENT, OUTPUT_COLUMNS, RGROUP_POSITIONS_COLUMN,
                        ROOT_TAG_ELEMENT, UNIQUE_RGROUPS_COLUMN)
from .fragment_extraction import generate_rgroup_smiles, in_core_flags


class CoreDecomposer:
    """
    Cut the substituents off one core match and name each one by the
    canonical SMILES of the tagged fragment.

    Only the first match of a core in a molecule is used; symmetry-equivalent
    matches aren't looked at.
    """

    def __init__(self, root_tag: int = ROOT_TAG_ELEMENT, other_tag: int = OTHER_TAG_ELEMENT,
                 match_policy: MatchPolicy = MATCH_POLICY):
        if root_tag == other_tag:
            raise ValueError("root_tag and other_tag must be different elements")
        self.root_tag = root_tag
        self.other_tag = other_tag
        self.match_policy = match_policy

    def decompose(self, mol: Chem.Mol, core_match: Sequence[int]) -> List[Tuple[int, str]]:
        """
        Args:
            mol: Molecule the core was matched on. Not modified.
            core_match: Molecule atom indices of the core, in query atom order

        Returns:
            (position, fragment SMILES) for every non-core neighbour of every
            core atom; position is the core atom's place in `core_match`
        """
        in_core = in_core_flags(mol, core_match)
        rgroups = []
        for pos, core_idx in enumerate(core_match):
            for nbr in mol.GetAtomWithIdx(core_idx).GetNeighbors():
                if in_core[nbr.GetIdx()]:
                    continue
                smi = generate_rgroup_smiles(mol, nbr.GetIdx(), in_core,
                                             self.root_tag, self.other_tag)
                rgroups.append((pos, smi))
        return rgroups

    def decompose_first(self, mol: Chem.Mol, query: Chem.Mol) -> List[Tuple[int, str]]:
        """Decompose the first match of `query`; empty if there isn't one."""
        match = mol.GetSubstructMatch(query)
        if not match:
            return []
        return self.decompose(mol, match)


class AggregateRecord:
    """What one core pattern saw across the whole collection."""

    def __init__(self, name: str, positions: Optional[Set[int]] = None,
                 rgroups: Optional[Set[str]] = None, core_contained_in: int = 0):
        self.name = name
        self.positions = set(positions or ())
        self.rgroups = set(rgroups or ())
        self.core_contained_in = core_contained_in

    def __repr__(self):
        return (f"AggregateRecord({self.name!r}, rgroup_positions={self.rgroup_positions}, "
                f"unique_rgroups={self.unique_rgroups}, "
                f"core_contained_in={self.core_contained_in})")

    def __eq__(self, other):
        if not isinstance(other, AggregateRecord):
            return NotImplemented
        return (self.name == other.name and self.positions == other.positions
                and self.rgroups == other.rgroups
                and self.core_contained_in == other.core_contained_in)

    @property
    def rgroup_positions(self) -> int:
        return len(self.positions)

    @property
    def unique_rgroups(self) -> int:
        return len(self.rgroups)

    def add(self, rgroups: Iterable[Tuple[int, str]]) -> None:
        for pos, smi in rgroups:
            self.positions.add(pos)
            self.rgroups.add(smi)

    def merge(self, other: "AggregateRecord") -> None:
        self.positions |= other.positions
        self.rgroups |= other.rgroups
        self.core_contained_in += other.core_contained_in

    def to_dict(self) -> Dict[str, int]:
        return {
            RGROUP_POSITIONS_COLUMN: self.rgroup_positions,
            UNIQUE_RGROUPS_COLUMN: self.unique_rgroups,
            CORE_CONTAINED_IN_COLUMN: self.core_contained_in,
        }


# ─────────────────────────────────────────────────────────────────────────────
#   Aggregation
# ─────────────────────────────────────────────────────────────────────────────
def _aggregate_molecules(molecules: Iterable[Tuple[str, str]],
                         cores: Sequence[Tuple[str, Chem.Mol]],
                         decomposer: CoreDecomposer,
                         core_prefix: str) -> Dict[str, AggregateRecord]:
    records = {name: AggregateRecord(name) for name, _ in cores}
    for smiles, mol_name in molecules:
        rec = MoleculeRecord(smiles, mol_name)
        try:
            mol = rec.to_mol()
        except StructureParseError as e:
            print(f"[WARN] {e}")
            continue
        core_mol = rec.is_core(core_prefix)
        for name, query in cores:
            if core_mol:
                if mol.HasSubstructMatch(query):
                    records[name].core_contained_in += 1
            else:
                records[name].add(decomposer.decompose_first(mol, query))
    return records


def _aggregate_worker(args) -> Dict[str, AggregateRecord]:
    """Process-pool entry point; compiles its own matchers."""
    molecules, patterns, sub_definitions, core_prefix, root_tag, other_tag = args
    cores = [(p.name, compile_pattern(p, sub_definitions)) for p in patterns]
    return _aggregate_molecules(molecules, cores, CoreDecomposer(root_tag, other_tag),
                                core_prefix)


class DecompositionAggregator:
    """
    For every core pattern, count over a molecule collection the substitution
    positions used, the distinct substituents seen and the core molecules
    (names starting with the core prefix) that contain it.
    """

    def __init__(self, decomposer: Optional[CoreDecomposer] = None,
                 core_prefix: str = CORE_PREFIX, n_workers: int = 1):
        self.decomposer = decomposer or CoreDecomposer()
        self.core_prefix = core_prefix
        self.n_workers = max(1, n_workers)
        self.errors: List[PatternCompileError] = []

    # ────────────────────────── public interface ───────────────────────────
    def aggregate(self, molecules: Sequence[MoleculeRecord], patterns: Sequence[Pattern],
                  sub_definitions: Optional[Mapping[str, str]] = None) -> Dict[str, AggregateRecord]:
        """
        Returns:
            {core pattern name: AggregateRecord}. Non-core patterns and
            patterns that don't compile are left out.
        """
        self.errors = []
        cores: List[Tuple[str, Chem.Mol]] = []
        core_patterns: List[Pattern] = []
        for pattern in patterns:
            if pattern.kind != PatternKind.CORE:
                continue
            try:
                cores.append((pattern.name, compile_pattern(pattern, sub_definitions)))
                core_patterns.append(pattern)
            except PatternCompileError as e:
                print(f"[WARN] {e}")
                self.errors.append(e)

        print(f"[INFO] R-group analysis of {len(molecules)} molecules "
              f"with {len(cores)} core patterns")
        mol_data = [(rec.smiles, rec.name) for rec in molecules]
        if self.n_workers == 1 or len(mol_data) < 2 or not cores:
            return _aggregate_molecules(mol_data, cores, self.decomposer, self.core_prefix)
        return self._aggregate_parallel(mol_data, core_patterns, sub_definitions or {})

    def write_back(self, table, records: Mapping[str, AggregateRecord]) -> int:
        """
        Put the counts into the RgroupPositions, NumberOfUniqueRgroups and
        CoreContainedIn columns of the row whose first column is the core's
        name. Nothing is written if any of those columns is missing.

        Returns:
            Number of rows updated
        """
        cols = {}
        for col_name in OUTPUT_COLUMNS:
            col = table.column_index(col_name)
            if col is None:
                raise MissingColumnError(col_name)
            cols[col_name] = col

        updated = 0
        for name, record in records.items():
            row = table.find_row(name, 0)
            if row is None:
                print(f"[WARN] No row named {name} in data table")
                continue
            for col_name, value in record.to_dict().items():
                table.set(row, cols[col_name], value)
            updated += 1
        return updated

    # ───────────────────────── internal helpers ────────────────────────────
    def _aggregate_parallel(self, mol_data: List[Tuple[str, str]], patterns: List[Pattern],
                            sub_definitions: Mapping[str, str]) -> Dict[str, AggregateRecord]:
        n_chunks = min(self.n_workers, len(mol_data))
        chunks = [mol_data[i::n_chunks] for i in range(n_chunks)]
        worker_args = [
            (chunk, patterns, dict(sub_definitions), self.core_prefix,
             self.decomposer.root_tag, self.decomposer.other_tag)
            for chunk in chunks
        ]
        print(f"[INFO] Processing with {n_chunks} processes")
        with mp.Pool(n_chunks) as pool:
            results = pool.map(_aggregate_worker, worker_args)

        merged = {p.name: AggregateRecord(p.name) for p in patterns}
        for partial in results:
            for name, record in partial.items():
                merged[name].merge(record)
        return merged
