"""Ion species (adduct) tables for positive and negative ionization.

Each species maps a neutral monoisotopic mass M to an m/z value:

    mz = (multiplier * M) / charge + offset

Offsets follow the METLIN adduct calculator.
"""

from dataclasses import dataclass
from typing import Dict

from ..errors import InputValidationError

POSITIVE = 'positive'
NEGATIVE = 'negative'

DEFAULT_ION = 'M+H'


@dataclass(frozen=True)
class IonSpecies:
    """A named charged form of a molecule."""
    name: str
    multiplier: int
    charge: int
    offset: float
    polarity: str

    def mass_charge(self, neutral_mass: float) -> float:
        return (self.multiplier * neutral_mass) / self.charge + self.offset


_POSITIVE_SPECIES = [
    # name, multiplier, charge, offset
    ('M+3H', 1, 3, 1.007276),
    ('M+2H+Na', 1, 3, 8.334590),
    ('M+H+2Na', 1, 3, 15.7661904),
    ('M+3Na', 1, 3, 22.989218),
    ('M+2H', 1, 2, 1.007276),
    ('M+H+NH4', 1, 2, 9.520550),
    ('M+H+Na', 1, 2, 11.998247),
    ('M+H+K', 1, 2, 19.985217),
    ('M+ACN+2H', 1, 2, 21.520550),
    ('M+2Na', 1, 2, 22.989218),
    ('M+2ACN+2H', 1, 2, 42.033823),
    ('M+3ACN+2H', 1, 2, 62.547097),
    ('M+H', 1, 1, 1.007276),
    ('M+H-H2O', 1, 1, -17.003289),
    ('M+NH4', 1, 1, 18.033823),
    ('M+Na', 1, 1, 22.989218),
    ('M+CH3OH+H', 1, 1, 33.033489),
    ('M+K', 1, 1, 38.963158),
    ('M+ACN+H', 1, 1, 42.033823),
    ('M+2Na-H', 1, 1, 44.971160),
    ('M+IsoProp+H', 1, 1, 61.06534),
    ('M+ACN+Na', 1, 1, 64.015765),
    ('M+2K-H', 1, 1, 76.919040),
    ('M+DMSO+H', 1, 1, 79.02122),
    ('M+2ACN+H', 1, 1, 83.060370),
    ('M+IsoProp+Na+H', 1, 1, 84.05511),
    ('2M+H', 2, 1, 1.007276),
    ('2M+NH4', 2, 1, 18.033823),
    ('2M+Na', 2, 1, 22.989218),
    ('2M+K', 2, 1, 38.963158),
    ('2M+ACN+H', 2, 1, 42.033823),
    ('2M+ACN+Na', 2, 1, 64.015765),
]

_NEGATIVE_SPECIES = [
    ('M-3H', 1, 3, -1.007276),
    ('M-2H', 1, 2, -1.007276),
    ('M-H2O-H', 1, 1, -19.01839),
    ('M-H', 1, 1, -1.007276),
    ('M+Na-2H', 1, 1, 20.974666),
    ('M+Cl', 1, 1, 34.969402),
    ('M+K-2H', 1, 1, 36.948606),
    ('M+FA-H', 1, 1, 44.998201),
    ('M+Hac-H', 1, 1, 59.013851),
    ('M+Br', 1, 1, 78.918885),
    ('M+TFA-H', 1, 1, 112.985586),
    ('2M-H', 2, 1, -1.007276),
    ('2M+FA-H', 2, 1, 44.998201),
    ('2M+Hac-H', 2, 1, 59.013851),
    ('3M-H', 3, 1, -1.007276),
]

ION_SPECIES: Dict[str, Dict[str, IonSpecies]] = {
    POSITIVE: {name: IonSpecies(name, m, z, off, POSITIVE) for name, m, z, off in _POSITIVE_SPECIES},
    NEGATIVE: {name: IonSpecies(name, m, z, off, NEGATIVE) for name, m, z, off in _NEGATIVE_SPECIES},
}


def get_ion_species(polarity: str) -> Dict[str, IonSpecies]:
    """All ion species known for a polarity, keyed by name."""
    try:
        return ION_SPECIES[polarity]
    except KeyError:
        raise InputValidationError(f"Unknown ion polarity mode: {polarity}") from None
