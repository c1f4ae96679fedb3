"""
Defaults and command-line settings for molecule-set analysis.
"""

import argparse
from enum import Enum
from typing import Optional, Sequence


# Names starting with this are treated as cores, both for patterns and molecules
CORE_PREFIX = "core"

# Atomic numbers of the placeholder atoms put on severed bonds
ROOT_TAG_ELEMENT = 54   # Xe, on the bond back to the substituent's own root atom
OTHER_TAG_ELEMENT = 39  # Y, on every other severed bond

# Table columns read and written by the R-group analysis
CORE_SMILES_COLUMN = "CoreSmiles"
CORE_SMARTS_COLUMN = "CoreSmarts"
RGROUP_POSITIONS_COLUMN = "RgroupPositions"
UNIQUE_RGROUPS_COLUMN = "NumberOfUniqueRgroups"
CORE_CONTAINED_IN_COLUMN = "CoreContainedIn"
OUTPUT_COLUMNS = (RGROUP_POSITIONS_COLUMN, UNIQUE_RGROUPS_COLUMN, CORE_CONTAINED_IN_COLUMN)


class MatchPolicy(Enum):
    """How many substructure matches per molecule are used."""
    FIRST_ONLY = "first_only"


MATCH_POLICY = MatchPolicy.FIRST_ONLY


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Substructure filtering and core/R-group analysis of a molecule set"
    )
    parser.add_argument("-M", "--molecule-file", type=str, default=None,
                        help="Input molecule filename (.smi, .smi.gz or .sdf)")
    parser.add_argument("-Q", "--mdl-query-file", type=str, default=None,
                        help="Input MDL substructure query file")
    parser.add_argument("-S", "--smarts-file", type=str, default=None,
                        help="Input SMARTS filename")
    parser.add_argument("-D", "--data-file", type=str, default=None,
                        help="Arbitrary data filename")
    parser.add_argument("--output-dir", type=str, default="results",
                        help="Output directory")
    parser.add_argument("--n-workers", type=int, default=1,
                        help="Number of processes for the R-group analysis")
    parser.add_argument("--skip-bad-rows", action="store_true",
                        help="Skip data rows with the wrong number of fields instead of stopping")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
