import os
import sys

from .decomposition import CoreDecomposer, DecompositionAggregator
from .errors import MissingColumnError, MolSetError
from .matching import MatchOrchestrator, MatchResult
from .molecule import MoleculeRepository, write_smiles_file
from .patterns import PatternLibrary
from .result_table import LoadPolicy, ResultTable
from .settings import CORE_PREFIX, parse_args
from .utils import plot_rgroup_counts, visualize_matches


class MolSetAnalyzer:
    """
    Main class tying the molecule collection, the pattern library and the
    data table together.
    """
    def __init__(self, core_prefix=CORE_PREFIX, n_workers=1, load_policy=LoadPolicy.RAISE):
        """
        Initialize the analyzer.

        Args:
            core_prefix: Name prefix marking core molecules
            n_workers: Processes used by the R-group analysis
            load_policy: What to do with data rows of the wrong length
        """
        self.molecules = MoleculeRepository()
        self.patterns = PatternLibrary()
        self.table = ResultTable()
        self.matcher = MatchOrchestrator()
        self.aggregator = DecompositionAggregator(CoreDecomposer(), core_prefix=core_prefix,
                                                  n_workers=n_workers)
        self.load_policy = load_policy
        self.last_match = None

    def status(self):
        return (f"Now have {len(self.molecules)} active molecules, "
                f"{len(self.patterns)} SMARTS definitions, "
                f"{len(self.patterns.mdl_queries)} MDL queries.")

    # ---------------- reading ---------------------------------------------
    def read_molecule_file(self, path):
        n = self.molecules.read_file(path)
        print(f"[INFO] {self.status()}")
        return n

    def read_smarts_file(self, path):
        n = self.patterns.read_smarts_file(path)
        print(f"[INFO] {self.status()}")
        return n

    def read_mdl_query_file(self, path):
        n = self.patterns.read_mdl_query_file(path)
        print(f"[INFO] {self.status()}")
        return n

    def read_data_file(self, path, policy=None):
        """
        Load the data table. CoreSmiles and CoreSmarts columns, if there,
        become a molecule list and SMARTS definitions.
        """
        report = self.table.read_data_file(path, policy or self.load_policy)
        self.molecules.build_core_smiles_list(self.table)
        self.patterns.build_core_smarts_definitions(self.table)
        return report

    # ---------------- matching --------------------------------------------
    def do_smarts_matching(self, chosen=None, list_name=None):
        """
        Split the collection by the chosen SMARTS (all of them if None).
        With `list_name`, only the molecules of that stored list are
        matched, so an earlier result can be narrowed further.
        Matches and non-matches are kept as named lists.
        """
        result = self.matcher.run(self._source_records(list_name),
                                  self.patterns.smarts_patterns(),
                                  self.patterns.sub_definitions, chosen)
        self._store_match(result)
        return result

    def do_mdl_query_matching(self, chosen=None, list_name=None):
        result = self.matcher.run(self._source_records(list_name),
                                  self.patterns.mdl_patterns(), None, chosen)
        self._store_match(result)
        return result

    def search_with_core_smarts(self, row):
        """
        Match the whole collection against the pattern named in column 0 of
        the given table row, keeping the hits as a list of that name.
        """
        name = str(self.table.get(row, 0))
        if self.patterns.get(name) is None:
            raise KeyError(f"No SMARTS named {name}")
        result = self.matcher.run(self.molecules.records, self.patterns.smarts_patterns(),
                                  self.patterns.sub_definitions, [name])
        self.molecules.add_list(name, result.matched, overwrite=True)
        self.last_match = result
        return result

    # ---------------- R-group analysis ------------------------------------
    def rgroup_analysis(self, write_back=True):
        """
        R-group statistics for every core SMARTS over the whole collection,
        written into the data table unless write_back is False.
        """
        records = self.aggregator.aggregate(self.molecules.records,
                                            self.patterns.smarts_patterns(),
                                            self.patterns.sub_definitions)
        if write_back:
            try:
                updated = self.aggregator.write_back(self.table, records)
                print(f"[INFO] Updated {updated} rows of data table")
            except MissingColumnError as e:
                print(f"[WARN] {e}")
        return records

    def draw_matches(self, result=None, filename=None):
        """Grid image of the matched molecules with the matched atoms highlighted."""
        result = result or self.last_match
        if result is None or not result.matched:
            return None
        return visualize_matches(result.matched, self.match_memberships(result), filename)

    def match_memberships(self, result):
        """Per matched molecule, {pattern name: atoms of its first match}."""
        selected = self.matcher.select(
            self.patterns.smarts_patterns() + self.patterns.mdl_patterns(), result.pattern_names)
        matchers = self.matcher.build(selected, self.patterns.sub_definitions)
        return [self.matcher.atom_membership(rec.to_mol(), matchers) for rec in result.matched]

    # ---------------- saving ----------------------------------------------
    def save_results(self, records=None, output_dir='results'):
        """
        Save the molecule lists, the SMARTS and the data table to disk.

        Returns:
            Path to saved results
        """
        os.makedirs(output_dir, exist_ok=True)

        write_smiles_file(self.molecules.records, os.path.join(output_dir, 'all_molecules.smi'))
        for list_name in self.molecules.list_names():
            safe_name = list_name.replace('|', '_').replace(os.sep, '_')
            write_smiles_file(self.molecules.get_list(list_name),
                              os.path.join(output_dir, f'{safe_name}.smi'))

        if len(self.patterns):
            self.patterns.write_smarts_file(os.path.join(output_dir, 'patterns.smt'))
        if self.table.column_count:
            self.table.write_csv(os.path.join(output_dir, 'data_table.csv'))
        if records:
            plot_rgroup_counts(records, os.path.join(output_dir, 'rgroup_counts.png'))
        if self.last_match is not None and self.last_match.matched:
            self.draw_matches(self.last_match, os.path.join(output_dir, 'matches.png'))

        return output_dir

    def _source_records(self, list_name=None):
        # KeyError for a list that was never stored
        if list_name is None:
            return self.molecules.records
        return self.molecules.get_list(list_name)

    def _store_match(self, result: MatchResult):
        self.last_match = result
        self.molecules.add_list(result.matched_title, result.matched, overwrite=True)
        self.molecules.add_list(result.unmatched_title, result.unmatched, overwrite=True)


def main(argv=None):
    args = parse_args(argv)
    policy = LoadPolicy.SKIP if args.skip_bad_rows else LoadPolicy.ABORT
    analyzer = MolSetAnalyzer(n_workers=args.n_workers, load_policy=policy)

    try:
        if args.molecule_file:
            analyzer.read_molecule_file(args.molecule_file)
        if args.smarts_file:
            analyzer.read_smarts_file(args.smarts_file)
        if args.mdl_query_file:
            analyzer.read_mdl_query_file(args.mdl_query_file)
        if args.data_file:
            analyzer.read_data_file(args.data_file)
    except (OSError, MolSetError) as e:
        print(f"Error: {e}")
        return 1

    records = None
    if len(analyzer.patterns):
        result = analyzer.do_smarts_matching()
        print(result.matched_title, len(result.matched))
        print(result.unmatched_title, len(result.unmatched))
        records = analyzer.rgroup_analysis()
        for name, record in records.items():
            print(f"{name}: {record.to_dict()}")
    if analyzer.patterns.mdl_queries:
        result = analyzer.do_mdl_query_matching()
        print(result.matched_title, len(result.matched))

    output_path = analyzer.save_results(records, args.output_dir)
    print(f"\nResults saved to: {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
