"""lcmsnr ions module: ion species tables and ion mass enumeration.

Candidate chemicals (InChI or SMILES) are turned into monoisotopic masses
with rdkit, then into one m/z per requested ion species.
"""

from .adducts import IonSpecies, ION_SPECIES, DEFAULT_ION, POSITIVE, NEGATIVE, get_ion_species
from .enumeration import (
    ChemicalAndIon,
    IonMassEnumerator,
    IonSearchSpace,
    monoisotopic_mass,
    read_prediction_corpus,
    structure_to_mol,
)

__all__ = [
    'IonSpecies',
    'ION_SPECIES',
    'DEFAULT_ION',
    'POSITIVE',
    'NEGATIVE',
    'get_ion_species',
    'ChemicalAndIon',
    'IonMassEnumerator',
    'IonSearchSpace',
    'monoisotopic_mass',
    'read_prediction_corpus',
    'structure_to_mol',
]
