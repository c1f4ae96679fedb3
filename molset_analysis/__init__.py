"""
Molecule Set Analysis Package

Substructure filtering of molecule collections and core/R-group
analysis, with a sortable data table for the results.
"""

from .main import MolSetAnalyzer
from .matching import MatchOrchestrator, MatchResult
from .decomposition import CoreDecomposer, DecompositionAggregator, AggregateRecord
from .molecule import MoleculeRecord, MoleculeRepository, SearchMode
from .patterns import Pattern, PatternKind, PatternLibrary, compile_pattern
from .result_table import ResultTable, SortOrder, LoadPolicy, LoadReport
from .errors import (MolSetError, PatternCompileError, PatternFileError, LoadSchemaError,
                     MissingColumnError, StructureParseError)

__version__ = "1.0.0"
__author__ = "nglinhbao"
__updated__ = "2025-06-10"

__all__ = [
    'MolSetAnalyzer',
    'MatchOrchestrator',
    'MatchResult',
    'CoreDecomposer',
    'DecompositionAggregator',
    'AggregateRecord',
    'MoleculeRecord',
    'MoleculeRepository',
    'SearchMode',
    'Pattern',
    'PatternKind',
    'PatternLibrary',
    'compile_pattern',
    'ResultTable',
    'SortOrder',
    'LoadPolicy',
    'LoadReport',
    'MolSetError',
    'PatternCompileError',
    'PatternFileError',
    'LoadSchemaError',
    'MissingColumnError',
    'StructureParseError'
]
