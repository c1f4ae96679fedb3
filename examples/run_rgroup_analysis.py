import os
import sys
import argparse

from rdkit.Chem import Descriptors

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from molset_analysis.main import MolSetAnalyzer
from molset_analysis.molecule import MoleculeRecord
from molset_analysis.result_table import LoadPolicy


def parse_args():
    parser = argparse.ArgumentParser(description='Core/R-group analysis of an example series')
    parser.add_argument('--example', type=str, default='anilines',
                        help='Predefined series (anilines, pyridines)')
    parser.add_argument('--output_dir', type=str, default='results',
                        help='Output directory')
    parser.add_argument('--n_workers', type=int, default=1,
                        help='Number of processes for the R-group analysis')

    return parser.parse_args()


def get_example_series(example_name):
    examples = {
        'anilines': (
            [("Nc1ccccc1C", "ani_1"), ("Nc1ccccc1CC", "ani_2"), ("Nc1ccc(Cl)cc1", "ani_3"),
             ("Nc1ccc(O)cc1C", "ani_4"), ("CC(=O)Nc1ccccc1", "ani_5"), ("Nc1ccccc1", "core_aniline")],
            {"core_aniline": "Nc1ccccc1", "core_phenyl": "c1ccccc1"},
        ),
        'pyridines': (
            [("c1ccncc1C", "pyr_1"), ("c1ccncc1OC", "pyr_2"), ("Clc1ccncc1", "pyr_3"),
             ("c1ccncc1", "core_pyridine")],
            {"core_pyridine": "c1ccncc1"},
        ),
    }
    return examples.get(example_name.lower(), examples['anilines'])


def write_example_table(cores, filename):
    """Data table naming each core, with empty result columns."""
    with open(filename, 'w') as f:
        f.write("Name,CoreSmarts,RgroupPositions,NumberOfUniqueRgroups,CoreContainedIn\n")
        for name, smarts in cores.items():
            f.write(f"{name},{smarts},,,\n")


def main():
    args = parse_args()
    os.makedirs(args.output_dir, exist_ok=True)

    molecules, cores = get_example_series(args.example)
    analyzer = MolSetAnalyzer(n_workers=args.n_workers, load_policy=LoadPolicy.SKIP)
    analyzer.molecules.add_records(MoleculeRecord(smi, name) for smi, name in molecules)

    table_file = os.path.join(args.output_dir, 'cores.csv')
    write_example_table(cores, table_file)
    analyzer.read_data_file(table_file)
    print(analyzer.status())

    print("\nMolecules:")
    for rec in analyzer.molecules:
        mol = rec.to_mol()
        print(f"  {rec.name:14s} {rec.canonical_smiles:20s} MW={Descriptors.MolWt(mol):.2f}")

    result = analyzer.do_smarts_matching()
    print(f"\n{result.matched_title}: {[r.name for r in result.matched]}")
    print(f"{result.unmatched_title}: {[r.name for r in result.unmatched]}")

    records = analyzer.rgroup_analysis()
    print("\nR-group analysis:")
    for name, record in records.items():
        print(f"  {name}: {record.to_dict()}")
        for smi in sorted(record.rgroups):
            print(f"    {smi}")

    print("\nData table:")
    print(analyzer.table.to_dataframe().to_string(index=False))

    output_path = analyzer.save_results(records, args.output_dir)
    print(f"\nResults saved to: {output_path}")


if __name__ == '__main__':
    main()
