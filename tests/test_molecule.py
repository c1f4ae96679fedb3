"""
Tests for molecule records, named lists and molecule files
"""

import gzip
import os
import tempfile
import unittest

from rdkit import Chem

from molset_analysis.errors import StructureParseError
from molset_analysis.molecule import (MoleculeRecord, MoleculeRepository, SearchMode,
                                      copy_molecule, parse_smiles_lines, read_molecule_file,
                                      write_smiles_file)
from molset_analysis.result_table import ResultTable


class TestMoleculeRecord(unittest.TestCase):

    def test_to_mol(self):
        mol = MoleculeRecord("c1ccccc1O", "phenol").to_mol()
        self.assertEqual(mol.GetNumAtoms(), 7)

    def test_each_parse_is_a_new_graph(self):
        rec = MoleculeRecord("CCO", "ethanol")
        self.assertIsNot(rec.to_mol(), rec.to_mol())

    def test_bad_smiles(self):
        with self.assertRaises(StructureParseError) as ctx:
            MoleculeRecord("C1CC", "broken").to_mol()
        self.assertEqual(ctx.exception.name, "broken")
        self.assertEqual(ctx.exception.to_dict()["code"], "STRUCTURE_PARSE")

    def test_canonical_smiles(self):
        rec = MoleculeRecord("OCC", "ethanol")
        self.assertEqual(rec.canonical_smiles, Chem.MolToSmiles(Chem.MolFromSmiles("CCO")))

    def test_is_core(self):
        self.assertTrue(MoleculeRecord("c1ccccc1", "core_benzene").is_core())
        self.assertFalse(MoleculeRecord("c1ccccc1", "Core_benzene").is_core())
        self.assertTrue(MoleculeRecord("c1ccccc1", "scaf1").is_core("scaf"))

    def test_copy_molecule(self):
        mol = Chem.MolFromSmiles("CCO")
        rw_mol = copy_molecule(mol)
        rw_mol.RemoveAtom(2)
        self.assertEqual(mol.GetNumAtoms(), 3)
        self.assertEqual(rw_mol.GetNumAtoms(), 2)


class TestSmilesFiles(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def test_parse_lines(self):
        records = parse_smiles_lines(["CCO ethanol", "", "c1ccccc1", "CC,ethane",
                                      "CCC\tpropane gas  "])
        self.assertEqual([r.name for r in records], ["ethanol", "Mol2", "ethane", "propane gas"])
        self.assertEqual(records[1].smiles, "c1ccccc1")

    def test_default_names_continue_numbering(self):
        records = parse_smiles_lines(["C", "CC"], first_number=5)
        self.assertEqual([r.name for r in records], ["Mol5", "Mol6"])

    def test_read_gzip(self):
        path = os.path.join(self.tmp.name, "mols.smi.gz")
        with gzip.open(path, "wt") as f:
            f.write("CCO ethanol\nCCN ethylamine\n")
        records = read_molecule_file(path)
        self.assertEqual([r.name for r in records], ["ethanol", "ethylamine"])

    def test_write_and_read(self):
        path = os.path.join(self.tmp.name, "out.smi")
        write_smiles_file([MoleculeRecord("CCO", "ethanol"), MoleculeRecord("CN", "methyl amine")],
                          path)
        records = read_molecule_file(path)
        self.assertEqual([(r.smiles, r.name) for r in records],
                         [("CCO", "ethanol"), ("CN", "methyl amine")])

    def test_read_sdf(self):
        path = os.path.join(self.tmp.name, "mols.sdf")
        writer = Chem.SDWriter(path)
        for smi, name in [("CCO", "ethanol"), ("c1ccccc1", "benzene")]:
            mol = Chem.MolFromSmiles(smi)
            mol.SetProp("_Name", name)
            writer.write(mol)
        writer.close()
        records = read_molecule_file(path)
        self.assertEqual([r.name for r in records], ["ethanol", "benzene"])
        self.assertEqual(records[1].canonical_smiles,
                         Chem.MolToSmiles(Chem.MolFromSmiles("c1ccccc1")))


class TestMoleculeRepository(unittest.TestCase):

    def setUp(self):
        self.repo = MoleculeRepository([MoleculeRecord("CCO", "ethanol"),
                                        MoleculeRecord("CCN", "ethylamine"),
                                        MoleculeRecord("CCC", "propane")])

    def test_find_modes(self):
        self.assertEqual(self.repo.find("ethylamine"), 1)
        self.assertIsNone(self.repo.find("ethyl"))
        self.assertEqual(self.repo.find("ethyl", SearchMode.STARTS_WITH), 1)
        self.assertEqual(self.repo.find("an", SearchMode.CONTAINS), 0)
        self.assertEqual(self.repo.find("an", SearchMode.CONTAINS, start=1), 2)
        self.assertIsNone(self.repo.find("an", SearchMode.CONTAINS, start=3))

    def test_exact_ignores_start(self):
        self.assertEqual(self.repo.find("ethanol", SearchMode.EXACT, start=2), 0)

    def test_find_in_list(self):
        subset = [self.repo.records[2]]
        self.assertEqual(self.repo.find("propane", records=subset), 0)

    def test_named_lists(self):
        self.assertTrue(self.repo.add_list("alcohols", self.repo.records[:1]))
        self.assertFalse(self.repo.add_list("alcohols", self.repo.records))
        self.assertEqual(len(self.repo.get_list("alcohols")), 1)
        self.assertTrue(self.repo.add_list("alcohols", self.repo.records, overwrite=True))
        self.assertEqual(len(self.repo.get_list("alcohols")), 3)
        self.assertEqual(self.repo.list_names(), ["alcohols"])

    def test_update_record(self):
        self.repo.update_record("CCCO", "ethanol")
        self.assertEqual(self.repo.records[0].smiles, "CCCO")
        self.repo.update_record("C", "methane")
        self.assertEqual(len(self.repo), 4)

    def test_read_file_numbers_from_collection(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "more.smi")
            with open(path, "w") as f:
                f.write("CCCC\n")
            self.assertEqual(self.repo.read_file(path), 1)
        self.assertEqual(self.repo.records[-1].name, "Mol4")

    def test_core_smiles_list(self):
        table = ResultTable()
        table.load(["Name", "CoreSmiles"], [["core_a", "c1ccccc1"], ["core_b", "c1ccncc1"]])
        core_recs = self.repo.build_core_smiles_list(table)
        self.assertEqual([r.name for r in core_recs], ["core_a", "core_b"])
        self.assertEqual(len(self.repo), 5)
        self.assertEqual(self.repo.get_list("CoreSmiles"), core_recs)

    def test_core_smiles_list_without_column(self):
        table = ResultTable()
        table.load(["Name"], [["core_a"]])
        self.assertEqual(self.repo.build_core_smiles_list(table), [])
        self.assertEqual(len(self.repo), 3)

    def test_clear(self):
        self.repo.add_list("x", self.repo.records)
        self.repo.clear()
        self.assertEqual(len(self.repo), 0)
        self.assertEqual(self.repo.list_names(), [])


if __name__ == '__main__':
    unittest.main()
