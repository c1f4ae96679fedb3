"""
Error hierarchy for molecule-set analysis.

Every error is scoped to the operation that raised it: a bad pattern is
skipped, a bad table row is handled per load policy, a missing output
column aborts only the write-back.
"""

from typing import Any, Dict, Optional


class MolSetError(Exception):
    """Base class for all molset_analysis errors.

    Attributes:
        code: Machine-readable error code (e.g. "PATTERN_COMPILE").
        message: Human-readable error description.
    """

    code = "MOLSET_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {"code": self.code, "message": self.message}


class StructureParseError(MolSetError):
    """Raised when a molecule's SMILES can't be parsed."""

    code = "STRUCTURE_PARSE"

    def __init__(self, smiles: str, name: Optional[str] = None):
        self.smiles = smiles
        self.name = name
        label = f" ({name})" if name else ""
        super().__init__(f"Couldn't parse SMILES {smiles!r}{label}")


class PatternCompileError(MolSetError):
    """Raised when a pattern has bad syntax or an unresolved sub-definition."""

    code = "PATTERN_COMPILE"

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Pattern {name}: {reason}")


class PatternFileError(MolSetError):
    """Raised for a malformed line in a SMARTS definition file."""

    code = "PATTERN_FILE"

    def __init__(self, path: str, line_number: int, line: str):
        self.path = path
        self.line_number = line_number
        self.line = line
        super().__init__(f"{path} line {line_number}: can't parse {line!r}")


class LoadSchemaError(MolSetError):
    """Raised when a data row has a different field count from the header."""

    code = "LOAD_SCHEMA"

    def __init__(self, line_number: int, expected: int, found: int):
        self.line_number = line_number
        self.expected = expected
        self.found = found
        super().__init__(
            f"Line {line_number} has different number of columns from rest. "
            f"First line had {expected} columns, this has {found}."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(line_number=self.line_number, expected=self.expected, found=self.found)
        return data


class MissingColumnError(MolSetError):
    """Raised when an aggregate output column is absent from the table."""

    code = "MISSING_COLUMN"

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"No column named {column} for R Group counts, so skipping.")
