"""
Named substructure patterns: SMARTS definitions with sub-definitions
("vector bindings") and MDL query molecules, plus their files.
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Tuple

import re
from enum import Enum
from pathlib import Path

from rdkit import Chem

from .errors import PatternCompileError, PatternFileError
from .settings import CORE_PREFIX, CORE_SMARTS_COLUMN


# `$name` refers to a sub-definition; `$(` is already recursive SMARTS
_SUB_REF = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


class PatternKind(Enum):
    CORE = "core"
    GENERIC = "generic"


def kind_from_name(name: str, prefix: str = CORE_PREFIX) -> PatternKind:
    """Naming convention used when a pattern's kind isn't given explicitly."""
    return PatternKind.CORE if name.startswith(prefix) else PatternKind.GENERIC


class Pattern:
    """A named query: SMARTS text or an MDL query block."""

    SMARTS = "smarts"
    MDL = "mdl"

    def __init__(self, name: str, definition: str, kind: Optional[PatternKind] = None,
                 source: str = SMARTS):
        self.name = name
        self.definition = definition
        self.kind = kind if kind is not None else kind_from_name(name)
        self.source = source

    def __repr__(self):
        return f"Pattern({self.name!r}, {self.definition!r}, {self.kind.name})"

    @property
    def is_core(self) -> bool:
        return self.kind == PatternKind.CORE


# ─────────────────────────────────────────────────────────────────────────────
#   Compilation
# ─────────────────────────────────────────────────────────────────────────────
def expand_sub_definitions(name: str, smarts: str, sub_definitions: Mapping[str, str],
                           _seen: Tuple[str, ...] = ()) -> str:
    """Replace every `$ref` with `$(definition)`, recursively."""
    def _replace(match):
        ref = match.group(1)
        if ref in _seen:
            raise PatternCompileError(name, f"sub-definition ${ref} refers to itself")
        if ref not in sub_definitions:
            raise PatternCompileError(name, f"unresolved sub-definition ${ref}")
        inner = expand_sub_definitions(name, sub_definitions[ref], sub_definitions,
                                       _seen + (ref,))
        return f"$({inner})"

    return _SUB_REF.sub(_replace, smarts)


def compile_pattern(pattern: Pattern,
                    sub_definitions: Optional[Mapping[str, str]] = None) -> Chem.Mol:
    """
    Build a query molecule from `pattern`.

    Raises PatternCompileError for bad syntax or an unresolved sub-definition.
    """
    if pattern.source == Pattern.MDL:
        query = Chem.MolFromMolBlock(pattern.definition, removeHs=False)
        if query is None:
            query = Chem.MolFromMolBlock(pattern.definition, sanitize=False, removeHs=False)
        if query is None or query.GetNumAtoms() == 0:
            raise PatternCompileError(pattern.name, "couldn't read MDL query")
        query.UpdatePropertyCache(strict=False)
        return query

    smarts = expand_sub_definitions(pattern.name, pattern.definition, sub_definitions or {})
    query = Chem.MolFromSmarts(smarts)
    if query is None:
        raise PatternCompileError(pattern.name, f"bad SMARTS {pattern.definition!r}")
    return query


# ─────────────────────────────────────────────────────────────────────────────
#   Library
# ─────────────────────────────────────────────────────────────────────────────
class PatternLibrary:
    """
    Full SMARTS definitions, sub-definitions and MDL queries, keyed by name.
    Every full definition is also available as a sub-definition.
    """

    def __init__(self):
        self.definitions: Dict[str, Pattern] = {}
        self.sub_definitions: Dict[str, str] = {}
        self.mdl_queries: Dict[str, Pattern] = {}
        self.last_smarts_file: Optional[str] = None

    def __len__(self):
        return len(self.definitions)

    def smarts_patterns(self) -> List[Pattern]:
        return list(self.definitions.values())

    def mdl_patterns(self) -> List[Pattern]:
        return list(self.mdl_queries.values())

    def get(self, name: str) -> Optional[Pattern]:
        return self.definitions.get(name) or self.mdl_queries.get(name)

    def clear(self) -> None:
        self.definitions = {}
        self.sub_definitions = {}

    def add_definition(self, name: str, smarts: str, overwrite: bool = False,
                       kind: Optional[PatternKind] = None) -> bool:
        """
        Add a full definition. An existing name (full or sub-definition) is
        only replaced when `overwrite` is set. Returns whether anything changed.
        """
        exists = name in self.definitions or name in self.sub_definitions
        if exists and not overwrite:
            print(f"[WARN] SMARTS named {name} already exists, not over-writing")
            return False
        self.definitions[name] = Pattern(name, smarts, kind=kind)
        self.sub_definitions[name] = smarts
        return True

    def add_sub_definition(self, name: str, smarts: str) -> None:
        self.sub_definitions[name] = smarts
        if name in self.definitions:
            self.definitions[name].definition = smarts

    # ---------------- SMARTS files ----------------------------------------
    def read_smarts_file(self, path) -> int:
        """
        Read `name smarts [use full]` lines. A `full` flag of 0 makes the
        line a sub-definition only. Nothing is added if any line is bad.
        """
        full: List[Tuple[str, str]] = []
        subs: List[Tuple[str, str]] = []
        with open(path) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                fields = line.split()
                if len(fields) < 2 or len(fields) > 4:
                    raise PatternFileError(str(path), line_num, line)
                if len(fields) == 4 and fields[3] == "0":
                    subs.append((fields[0], fields[1]))
                else:
                    full.append((fields[0], fields[1]))

        for name, smarts in subs:
            self.add_sub_definition(name, smarts)
        for name, smarts in full:
            self.add_definition(name, smarts, overwrite=True)
        self.last_smarts_file = str(path)
        print(f"[INFO] Read {len(full)} SMARTS definitions and {len(subs)} "
              f"sub-definitions from {Path(path).name}")
        return len(full)

    def write_smarts_file(self, path) -> None:
        with open(path, "w") as f:
            f.write("#\n# SMARTS file written by molset_analysis\n#\n"
                    "# Full Definitions\n#\n")
            for pattern in self.definitions.values():
                f.write(f"{pattern.name}\t{pattern.definition}\t1\t1\n")
            f.write("#\n# Sub-Definitions (Vector Bindings)\n#\n")
            for name, smarts in self.sub_definitions.items():
                if name not in self.definitions:
                    f.write(f"{name}\t{smarts}\t1\t0\n")

    # ---------------- MDL query files -------------------------------------
    def read_mdl_query_file(self, path) -> int:
        """Queries are separated by `$$$$` and named `<file name>_<count>`."""
        path = Path(path)
        blocks: List[List[str]] = [[]]
        with open(path) as f:
            for line in f:
                line = line.rstrip("\r\n")
                if line == "$$$$":
                    blocks.append([])
                else:
                    blocks[-1].append(line)
        count = 0
        for lines in blocks:
            if not any(l.strip() for l in lines):
                continue
            count += 1
            name = f"{path.name}_{count}"
            self.mdl_queries[name] = Pattern(name, _clean_mdl_query(lines),
                                             kind=PatternKind.GENERIC, source=Pattern.MDL)
        print(f"[INFO] Read {count} MDL queries from {path.name}")
        return count

    # ---------------- table-driven cores ----------------------------------
    def build_core_smarts_definitions(self, table, overwrite: bool = True) -> int:
        """One definition per row of the CoreSmarts column, named from column 0."""
        col = table.column_index(CORE_SMARTS_COLUMN)
        if col is None:
            print(f"[WARN] No column named {CORE_SMARTS_COLUMN} in data table")
            return 0
        added = 0
        for row in range(table.row_count):
            if self.add_definition(str(table.get(row, 0)), str(table.get(row, col)),
                                   overwrite=overwrite):
                added += 1
        return added


def _clean_mdl_query(lines: List[str]) -> str:
    # R-group decorations start with $; nothing after M  END is wanted
    kept = []
    for line in lines:
        if not line.startswith("$"):
            kept.append(line)
        if line.startswith("M  END"):
            break
    return "\n".join(kept) + "\n"
