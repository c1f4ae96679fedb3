"""
Molecule records, named molecule lists and structure file I/O.

A record keeps the input SMILES and parses a fresh RDKit molecule on
demand, so every caller owns its own graph and atom indices never leak
between a mutated copy and the original.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence

import gzip
import re
from enum import Enum
from pathlib import Path

from rdkit import Chem

from .errors import StructureParseError
from .settings import CORE_PREFIX, CORE_SMILES_COLUMN


_FIELD_SEP = re.compile(r"[ ,\t]")


class MoleculeRecord:
    """One molecule of the collection: input SMILES plus a name."""

    def __init__(self, smiles: str, name: str):
        self.smiles = smiles
        self.name = name
        self._canonical: Optional[str] = None

    def __repr__(self):
        return f"MoleculeRecord({self.smiles!r}, {self.name!r})"

    @classmethod
    def from_mol(cls, mol: Chem.Mol) -> "MoleculeRecord":
        name = mol.GetProp("_Name") if mol.HasProp("_Name") else ""
        rec = cls(Chem.MolToSmiles(mol, isomericSmiles=True), name)
        rec._canonical = rec.smiles
        return rec

    def to_mol(self) -> Chem.Mol:
        """Parse a new molecule (aromaticity perceived) from the input SMILES."""
        mol = Chem.MolFromSmiles(self.smiles)
        if mol is None:
            raise StructureParseError(self.smiles, self.name)
        return mol

    @property
    def canonical_smiles(self) -> str:
        if self._canonical is None:
            self._canonical = Chem.MolToSmiles(self.to_mol(), isomericSmiles=True)
        return self._canonical

    def is_core(self, prefix: str = CORE_PREFIX) -> bool:
        return self.name.startswith(prefix)


def copy_molecule(mol: Chem.Mol) -> Chem.RWMol:
    """Private, editable copy of `mol`. Edits to the copy never reach `mol`."""
    return Chem.RWMol(mol)


# ─────────────────────────────────────────────────────────────────────────────
#   File I/O
# ─────────────────────────────────────────────────────────────────────────────
def parse_smiles_lines(lines: Iterable[str], first_number: int = 1) -> List[MoleculeRecord]:
    """
    Turn `SMILES [name ...]` lines into records.

    The name is everything after the first field, trimmed. Lines with no
    name get `Mol<N>`, N being the running record count.
    """
    records: List[MoleculeRecord] = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        fields = _FIELD_SEP.split(line)
        smiles = fields[0]
        if len(fields) > 1:
            name = line[len(smiles) + 1:].strip()
        else:
            name = f"Mol{first_number + len(records)}"
        records.append(MoleculeRecord(smiles, name))
    return records


def read_smiles_file(path, first_number: int = 1) -> List[MoleculeRecord]:
    """Read a .smi or gzip-compressed .smi.gz file."""
    path = Path(path)
    opener = gzip.open if path.name.endswith(".gz") else open
    with opener(path, "rt") as f:
        records = parse_smiles_lines(f, first_number)
    print(f"[INFO] Read {len(records)} molecules from {path.name}")
    return records


def read_structure_file(path) -> List[MoleculeRecord]:
    """Read an SD file; names come from the molecule titles."""
    records = []
    supplier = Chem.SDMolSupplier(str(path))
    for i, mol in enumerate(supplier):
        if mol is None:
            print(f"[WARN] Skipping unreadable molecule {i + 1} in {path}")
            continue
        records.append(MoleculeRecord.from_mol(mol))
    print(f"[INFO] Read {len(records)} molecules from {Path(path).name}")
    return records


def read_molecule_file(path, first_number: int = 1) -> List[MoleculeRecord]:
    name = str(path)
    if name.endswith(".smi") or name.endswith(".smi.gz"):
        return read_smiles_file(path, first_number)
    return read_structure_file(path)


def write_smiles_file(records: Iterable[MoleculeRecord], path) -> None:
    with open(path, "w") as f:
        for rec in records:
            f.write(f"{rec.smiles} {rec.name}\n")


# ─────────────────────────────────────────────────────────────────────────────
#   Repository of records and named lists
# ─────────────────────────────────────────────────────────────────────────────
class SearchMode(Enum):
    EXACT = 0
    STARTS_WITH = 1
    CONTAINS = 2


class MoleculeRepository:
    """
    Owns the full molecule collection and the named subsets built from it
    (match results, user-saved lists, core SMILES from the data table).
    """

    def __init__(self, records: Optional[Iterable[MoleculeRecord]] = None):
        self.records: List[MoleculeRecord] = list(records or [])
        self._lists: Dict[str, List[MoleculeRecord]] = {}

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def add_records(self, records: Iterable[MoleculeRecord]) -> None:
        self.records.extend(records)

    def read_file(self, path) -> int:
        new_recs = read_molecule_file(path, first_number=len(self.records) + 1)
        self.records.extend(new_recs)
        return len(new_recs)

    def clear(self) -> None:
        self.records = []
        self._lists = {}

    def update_record(self, smiles: str, name: str) -> MoleculeRecord:
        """Replace the record called `name`, or append a new one."""
        new_rec = MoleculeRecord(smiles, name)
        for i, rec in enumerate(self.records):
            if rec.name == name:
                self.records[i] = new_rec
                return new_rec
        self.records.append(new_rec)
        return new_rec

    # ---------------- named lists -----------------------------------------
    def add_list(self, name: str, records: Sequence[MoleculeRecord],
                 overwrite: bool = False) -> bool:
        """Store a named list. Returns False if the name exists and overwrite is off."""
        if name in self._lists and not overwrite:
            print(f"[WARN] List {name} already exists, not over-writing")
            return False
        self._lists[name] = list(records)
        return True

    def get_list(self, name: str) -> List[MoleculeRecord]:
        return self._lists[name]

    def list_names(self) -> List[str]:
        return list(self._lists)

    # ---------------- search ----------------------------------------------
    def find(self, name: str, mode: SearchMode = SearchMode.EXACT,
             start: int = 0, records: Optional[Sequence[MoleculeRecord]] = None) -> Optional[int]:
        """
        Index of the first record at or after `start` whose name matches.
        EXACT always searches from the beginning.
        """
        recs = self.records if records is None else records
        first = 0 if mode == SearchMode.EXACT else start
        for i in range(first, len(recs)):
            rec_name = recs[i].name
            if mode == SearchMode.EXACT and rec_name == name:
                return i
            if mode == SearchMode.STARTS_WITH and rec_name.startswith(name):
                return i
            if mode == SearchMode.CONTAINS and name in rec_name:
                return i
        return None

    def build_core_smiles_list(self, table) -> List[MoleculeRecord]:
        """
        Make records from the table's CoreSmiles column, named from column 0,
        add them to the collection and keep them as the CoreSmiles list.
        """
        col = table.column_index(CORE_SMILES_COLUMN)
        if col is None:
            print(f"[WARN] No column named {CORE_SMILES_COLUMN} in data table")
            return []
        core_recs = [
            MoleculeRecord(str(table.get(row, col)), str(table.get(row, 0)))
            for row in range(table.row_count)
        ]
        self.records.extend(core_recs)
        current = self._lists.get(CORE_SMILES_COLUMN, [])
        self._lists[CORE_SMILES_COLUMN] = current + core_recs
        return core_recs
