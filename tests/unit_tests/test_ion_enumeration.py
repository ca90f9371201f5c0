"""Tests for ion species tables and ion mass enumeration."""

import pytest

from lcmsnr.config import IonDetectionConfig
from lcmsnr.errors import InputValidationError, MalformedStructureError, MissingInputError
from lcmsnr.ions import (
    ChemicalAndIon,
    IonMassEnumerator,
    IonSearchSpace,
    get_ion_species,
    monoisotopic_mass,
    read_prediction_corpus,
    structure_to_mol,
)

ETHANOL_SMILES = 'CCO'
ETHANOL_INCHI = 'InChI=1S/C2H6O/c1-2-3/h3H,2H2,1H3'
GLUCOSE = 'OCC1OC(O)C(O)C(O)C1O'
INOSITOL = 'OC1C(O)C(O)C(O)C(O)C1O'

GLUCOSE_MASS = 180.063388


# =============================================================================
# Ion species
# =============================================================================


def test_ion_species_formula():
    species = get_ion_species('positive')
    assert species['M+H'].mass_charge(100.0) == pytest.approx(101.007276)
    assert species['M+2H'].mass_charge(100.0) == pytest.approx(51.007276)
    assert species['2M+Na'].mass_charge(100.0) == pytest.approx(222.989218)
    assert get_ion_species('negative')['M-H'].mass_charge(100.0) == pytest.approx(98.992724)


def test_unknown_polarity():
    with pytest.raises(InputValidationError):
        get_ion_species('neutral')


# =============================================================================
# Structures and masses
# =============================================================================


def test_monoisotopic_mass_from_smiles_and_inchi():
    assert monoisotopic_mass(ETHANOL_SMILES) == pytest.approx(46.041865, abs=1e-5)
    assert monoisotopic_mass(ETHANOL_INCHI) == pytest.approx(46.041865, abs=1e-5)


@pytest.mark.parametrize("structure", ['', '   ', 'C1CC(', 'InChI=1S/garbage'])
def test_malformed_structures(structure):
    with pytest.raises(MalformedStructureError):
        structure_to_mol(structure)


def test_enumerate_default_ion():
    masses = IonMassEnumerator().enumerate(ETHANOL_SMILES)
    assert list(masses) == ['M+H']
    assert masses['M+H'] == pytest.approx(47.049141, abs=1e-5)


def test_enumerate_selected_ions():
    masses = IonMassEnumerator().enumerate(GLUCOSE, 'positive', ['M+H', 'M+Na'])
    assert masses['M+H'] == pytest.approx(GLUCOSE_MASS + 1.007276, abs=1e-5)
    assert masses['M+Na'] == pytest.approx(GLUCOSE_MASS + 22.989218, abs=1e-5)


def test_enumerate_negative_polarity():
    masses = IonMassEnumerator().enumerate(GLUCOSE, 'negative', ['M-H'])
    assert masses['M-H'] == pytest.approx(GLUCOSE_MASS - 1.007276, abs=1e-5)


def test_enumerate_unknown_ion():
    with pytest.raises(InputValidationError):
        IonMassEnumerator().enumerate(GLUCOSE, 'positive', ['M+Xx'])
    # Valid name, wrong polarity
    with pytest.raises(InputValidationError):
        IonMassEnumerator().enumerate(GLUCOSE, 'negative', ['M+H'])


def test_filter_masses():
    masses = {'M+H': 1.0, 'M+Na': 2.0, 'M+K': 3.0}
    assert IonMassEnumerator.filter_masses(masses) == masses
    assert IonMassEnumerator.filter_masses(masses, ['M+H', 'M+K']) == {'M+H': 1.0, 'M+K': 3.0}
    assert IonMassEnumerator.filter_masses(masses, exclude_ions=['M+Na']) == {'M+H': 1.0, 'M+K': 3.0}


# =============================================================================
# Search space
# =============================================================================


def test_search_space_labels_in_mass_order():
    config = IonDetectionConfig(include_ions=['M+Na', 'M+H'])
    space = IonSearchSpace.build([GLUCOSE], config)

    assert len(space) == 2
    labels = space.search_mzs
    assert [label for label, _ in labels] == ['CHEM_0', 'CHEM_1']
    assert labels[0][1] < labels[1][1]
    assert space.chemicals_for(labels[0][1]) == [ChemicalAndIon(GLUCOSE, 'M+H')]
    assert space.chemicals_for(labels[1][1]) == [ChemicalAndIon(GLUCOSE, 'M+Na')]


def test_isomers_share_one_mass_charge():
    space = IonSearchSpace.build([GLUCOSE, INOSITOL], IonDetectionConfig())
    assert len(space) == 1
    (_, mz), = space.search_mzs
    assert space.chemicals_for(mz) == sorted([ChemicalAndIon(GLUCOSE, 'M+H'), ChemicalAndIon(INOSITOL, 'M+H')])


def test_malformed_structures_are_skipped():
    space = IonSearchSpace.build([GLUCOSE, 'C1CC(', ''], IonDetectionConfig())
    assert len(space) == 1
    assert list(space.skipped) == ['C1CC(']


def test_out_of_range_masses_are_excluded():
    space = IonSearchSpace.build([ETHANOL_SMILES, GLUCOSE], IonDetectionConfig())
    assert len(space) == 1
    assert len(space.out_of_range) == 1
    (out_mz, pairs), = space.out_of_range.items()
    assert out_mz == pytest.approx(47.049141, abs=1e-5)
    assert pairs == {ChemicalAndIon(ETHANOL_SMILES, 'M+H')}


def test_search_space_rejects_unknown_ion_up_front():
    with pytest.raises(InputValidationError):
        IonSearchSpace.build([GLUCOSE], IonDetectionConfig(include_ions=['M+Xx']))


def test_chemicals_for_unknown_mass():
    assert IonSearchSpace.build([GLUCOSE], IonDetectionConfig()).chemicals_for(123.0) == []


def test_read_prediction_corpus(tmp_path):
    corpus = tmp_path / 'products.txt'
    corpus.write_text(f"{GLUCOSE}\n\n  {ETHANOL_INCHI}  \n")
    assert read_prediction_corpus(str(corpus)) == [GLUCOSE, ETHANOL_INCHI]


def test_read_prediction_corpus_missing(tmp_path):
    with pytest.raises(MissingInputError):
        read_prediction_corpus(str(tmp_path / 'missing.txt'))
