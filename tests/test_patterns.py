"""
Tests for pattern definitions, sub-definitions and pattern files
"""

import os
import tempfile
import unittest

from rdkit import Chem

from molset_analysis.errors import PatternCompileError, PatternFileError
from molset_analysis.patterns import (Pattern, PatternKind, PatternLibrary, compile_pattern,
                                      expand_sub_definitions, kind_from_name)
from molset_analysis.result_table import ResultTable


class TestPatternKind(unittest.TestCase):

    def test_core_prefix(self):
        self.assertEqual(kind_from_name("core_phenyl"), PatternKind.CORE)
        self.assertEqual(kind_from_name("coreX"), PatternKind.CORE)

    def test_prefix_is_case_sensitive(self):
        self.assertEqual(kind_from_name("Core_phenyl"), PatternKind.GENERIC)
        self.assertEqual(kind_from_name("amine"), PatternKind.GENERIC)

    def test_explicit_kind_wins(self):
        pattern = Pattern("scaffold", "c1ccccc1", kind=PatternKind.CORE)
        self.assertTrue(pattern.is_core)
        pattern = Pattern("core_not_really", "C", kind=PatternKind.GENERIC)
        self.assertFalse(pattern.is_core)


class TestCompile(unittest.TestCase):

    def test_valid_smarts(self):
        query = compile_pattern(Pattern("phenyl", "c1ccccc1"))
        self.assertTrue(Chem.MolFromSmiles("Cc1ccccc1").HasSubstructMatch(query))

    def test_bad_smarts(self):
        with self.assertRaises(PatternCompileError) as ctx:
            compile_pattern(Pattern("broken", "[C"))
        self.assertEqual(ctx.exception.name, "broken")

    def test_sub_definition(self):
        subs = {"amine": "[NX3;H2]"}
        query = compile_pattern(Pattern("aryl_amine", "c[$amine]"), subs)
        self.assertTrue(Chem.MolFromSmiles("Nc1ccccc1").HasSubstructMatch(query))
        self.assertFalse(Chem.MolFromSmiles("CN(C)c1ccccc1").HasSubstructMatch(query))

    def test_nested_sub_definition(self):
        subs = {"halogen": "[F,Cl,Br,I]", "aryl_halide": "c[$halogen]"}
        smarts = expand_sub_definitions("x", "[$aryl_halide]", subs)
        self.assertEqual(smarts, "[$(c[$([F,Cl,Br,I])])]")

    def test_unresolved_sub_definition(self):
        with self.assertRaises(PatternCompileError) as ctx:
            compile_pattern(Pattern("p", "c[$nothing]"), {})
        self.assertIn("nothing", ctx.exception.reason)

    def test_recursive_smarts_left_alone(self):
        query = compile_pattern(Pattern("p", "[$(NC=O)]"), {})
        self.assertTrue(Chem.MolFromSmiles("CC(=O)N").HasSubstructMatch(query))

    def test_cyclic_sub_definition(self):
        subs = {"a": "[$b]", "b": "[$a]"}
        with self.assertRaises(PatternCompileError):
            compile_pattern(Pattern("p", "[$a]"), subs)


class TestLibrary(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_add_definition(self):
        lib = PatternLibrary()
        self.assertTrue(lib.add_definition("phenyl", "c1ccccc1"))
        self.assertIn("phenyl", lib.sub_definitions)
        self.assertFalse(lib.add_definition("phenyl", "c1ccncc1"))
        self.assertEqual(lib.get("phenyl").definition, "c1ccccc1")
        self.assertTrue(lib.add_definition("phenyl", "c1ccncc1", overwrite=True))
        self.assertEqual(lib.sub_definitions["phenyl"], "c1ccncc1")
        lib.clear()
        self.assertEqual((len(lib), lib.sub_definitions), (0, {}))

    def test_existing_sub_definition_not_overwritten(self):
        lib = PatternLibrary()
        lib.add_sub_definition("amine", "[NX3]")
        self.assertFalse(lib.add_definition("amine", "N"))
        self.assertEqual(len(lib), 0)

    def test_read_smarts_file(self):
        path = self._write("p.smt", "# comment\n\n"
                                    "core_phenyl\tc1ccccc1\t1\t1\n"
                                    "amine\t[NX3;H2]\t1\t0\n"
                                    "aryl_amine c[$amine]\n")
        lib = PatternLibrary()
        self.assertEqual(lib.read_smarts_file(path), 2)
        self.assertEqual([p.name for p in lib.smarts_patterns()], ["core_phenyl", "aryl_amine"])
        self.assertNotIn("amine", lib.definitions)
        self.assertEqual(lib.sub_definitions["amine"], "[NX3;H2]")
        self.assertTrue(lib.get("core_phenyl").is_core)

    def test_bad_smarts_file_line(self):
        path = self._write("bad.smt", "good\tC\nlonely\n")
        lib = PatternLibrary()
        with self.assertRaises(PatternFileError) as ctx:
            lib.read_smarts_file(path)
        self.assertEqual(ctx.exception.line_number, 2)
        self.assertEqual(len(lib), 0)

    def test_write_smarts_file(self):
        lib = PatternLibrary()
        lib.add_definition("core_phenyl", "c1ccccc1")
        lib.add_sub_definition("amine", "[NX3;H2]")
        path = os.path.join(self.tmp.name, "out.smt")
        lib.write_smarts_file(path)
        with open(path) as f:
            text = f.read()
        self.assertIn("core_phenyl\tc1ccccc1\t1\t1\n", text)
        self.assertIn("amine\t[NX3;H2]\t1\t0\n", text)

        again = PatternLibrary()
        again.read_smarts_file(path)
        self.assertEqual(list(again.definitions), ["core_phenyl"])
        self.assertEqual(again.sub_definitions, lib.sub_definitions)

    def test_read_mdl_query_file(self):
        block = Chem.MolToMolBlock(Chem.MolFromSmiles("c1ccccc1"))
        pyridine = Chem.MolToMolBlock(Chem.MolFromSmiles("c1ccncc1"))
        text = (block + "$$$$\n"
                + pyridine + "> <note>\nnot part of the query\n\n$$$$\n")
        path = self._write("queries.sdf", text)
        lib = PatternLibrary()
        self.assertEqual(lib.read_mdl_query_file(path), 2)
        self.assertEqual(list(lib.mdl_queries), ["queries.sdf_1", "queries.sdf_2"])

        second = lib.mdl_queries["queries.sdf_2"]
        self.assertNotIn("not part of the query", second.definition)
        self.assertEqual(second.source, Pattern.MDL)

        query = compile_pattern(lib.mdl_queries["queries.sdf_1"])
        self.assertTrue(Chem.MolFromSmiles("Cc1ccccc1").HasSubstructMatch(query))
        self.assertFalse(Chem.MolFromSmiles("C1CCCCC1").HasSubstructMatch(query))

    def test_bad_mdl_query(self):
        with self.assertRaises(PatternCompileError):
            compile_pattern(Pattern("q", "not a molblock\n", source=Pattern.MDL))

    def test_core_smarts_from_table(self):
        table = ResultTable()
        table.load(["Name", "CoreSmarts"], [["core_a", "c1ccccc1"], ["core_b", "c1ccncc1"]])
        lib = PatternLibrary()
        self.assertEqual(lib.build_core_smarts_definitions(table), 2)
        self.assertEqual(lib.get("core_b").definition, "c1ccncc1")

    def test_core_smarts_without_column(self):
        table = ResultTable()
        table.load(["Name"], [["core_a"]])
        lib = PatternLibrary()
        self.assertEqual(lib.build_core_smarts_definitions(table), 0)


if __name__ == '__main__':
    unittest.main()
