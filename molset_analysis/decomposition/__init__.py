"""
Core/R-group decomposition
--------------------------

* First match of each core per molecule, symmetry duplicates ignored
* Substituents cut off by a breadth-first walk that stops at the core
* Severed bonds tagged: Xe back to the substituent root, Y everywhere else
* Substituents deduplicated by canonical SMILES of the tagged fragment
"""

from .fragment_extraction import (collect_fragment_atoms, generate_rgroup_smiles,
                                  in_core_flags, tag_and_strip)
from .core import AggregateRecord, CoreDecomposer, DecompositionAggregator

__all__ = [
    'CoreDecomposer',
    'DecompositionAggregator',
    'AggregateRecord',
    'generate_rgroup_smiles',
    'collect_fragment_atoms',
    'tag_and_strip',
    'in_core_flags'
]
