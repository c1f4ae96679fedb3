from rdkit.Chem import Draw
import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def visualize_matches(records, memberships=None, filename=None, mols_per_row=3):
    """
    Grid of molecule records, with matched atoms highlighted.

    memberships is one {pattern name: atom indices} dict per record, as
    returned by MatchOrchestrator.atom_membership.
    """
    mols = [rec.to_mol() for rec in records]
    labels = [rec.name for rec in records]
    highlights = None
    if memberships is not None:
        highlights = [sorted(set().union(*m.values())) if m else [] for m in memberships]

    img = Draw.MolsToGridImage(mols, molsPerRow=mols_per_row, subImgSize=(300, 300),
                               legends=labels, highlightAtomLists=highlights)
    if filename:
        img.save(filename)

    return img


def plot_rgroup_counts(records, filename=None):
    """Bar chart of the R-group statistics for each core."""
    labels = list(records.keys())
    positions = [records[k].rgroup_positions for k in labels]
    unique = [records[k].unique_rgroups for k in labels]
    contained = [records[k].core_contained_in for k in labels]

    x = np.arange(len(labels))
    width = 0.25

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.bar(x - width, positions, width, label='R-group positions')
    ax.bar(x, unique, width, label='Unique R-groups')
    ax.bar(x + width, contained, width, label='Core contained in')

    ax.set_ylabel('Count')
    ax.set_title('R-group Analysis')
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.legend()

    if filename:
        plt.savefig(filename)

    return fig
