"""
Functions for cutting substituent fragments off a matched core.
"""

from collections import deque
from typing import List, Sequence, Set

from rdkit import Chem

from ..molecule import copy_molecule
from ..settings import OTHER_TAG_ELEMENT, ROOT_TAG_ELEMENT


def in_core_flags(mol: Chem.Mol, core_match: Sequence[int]) -> List[bool]:
    """One flag per atom of `mol`, set for the atoms of the core match."""
    flags = [False] * mol.GetNumAtoms()
    for idx in core_match:
        flags[idx] = True
    return flags


def collect_fragment_atoms(mol: Chem.Mol, root_idx: int, in_core: Sequence[bool]) -> Set[int]:
    """
    Breadth-first walk from `root_idx` that never enters the core.

    Args:
        mol: Molecule the core was matched on
        root_idx: First non-core atom of the substituent
        in_core: Per-atom core flags for the same molecule

    Returns:
        Indices of every atom of the substituent
    """
    done = list(in_core)
    done[root_idx] = True
    keep = set()
    to_do = deque([root_idx])
    while to_do:
        atom = mol.GetAtomWithIdx(to_do.popleft())
        keep.add(atom.GetIdx())
        for nbr in atom.GetNeighbors():
            nbr_idx = nbr.GetIdx()
            if not done[nbr_idx]:
                done[nbr_idx] = True
                to_do.append(nbr_idx)
    return keep


def tag_and_strip(mol: Chem.Mol, keep: Set[int], root_idx: int,
                  root_tag: int = ROOT_TAG_ELEMENT,
                  other_tag: int = OTHER_TAG_ELEMENT) -> Chem.RWMol:
    """
    Copy `mol` and delete every atom not in `keep`.

    Each bond from a deleted atom to a kept atom is replaced by a bond of the
    same type to a new placeholder atom: `root_tag` when the kept atom is the
    root, `other_tag` otherwise. `mol` itself is left alone.
    """
    rw_mol = copy_molecule(mol)
    doomed = []
    for atom in mol.GetAtoms():
        idx = atom.GetIdx()
        if idx in keep:
            continue
        for nbr in atom.GetNeighbors():
            nbr_idx = nbr.GetIdx()
            if nbr_idx not in keep:
                continue
            tag = Chem.Atom(root_tag if nbr_idx == root_idx else other_tag)
            tag.SetNoImplicit(True)
            tag_idx = rw_mol.AddAtom(tag)
            bond = mol.GetBondBetweenAtoms(idx, nbr_idx)
            rw_mol.AddBond(nbr_idx, tag_idx, bond.GetBondType())
        doomed.append(idx)

    # highest first, so the indices still to go stay valid
    for idx in sorted(doomed, reverse=True):
        rw_mol.RemoveAtom(idx)
    return rw_mol


def fragment_smiles(fragment: Chem.Mol) -> str:
    """Canonical SMILES of a tagged fragment. Ring membership is recomputed."""
    fragment.UpdatePropertyCache(strict=False)
    Chem.GetSymmSSSR(fragment)
    return Chem.MolToSmiles(fragment)


def generate_rgroup_smiles(mol: Chem.Mol, root_idx: int, in_core: Sequence[bool],
                           root_tag: int = ROOT_TAG_ELEMENT,
                           other_tag: int = OTHER_TAG_ELEMENT) -> str:
    """Canonical SMILES of the tagged substituent rooted at `root_idx`."""
    keep = collect_fragment_atoms(mol, root_idx, in_core)
    return fragment_smiles(tag_and_strip(mol, keep, root_idx, root_tag, other_tag))
