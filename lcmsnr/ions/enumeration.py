"""Enumeration of ionized masses for candidate chemical structures.

Usage Examples:

from lcmsnr.config import IonDetectionConfig
from lcmsnr.ions import IonMassEnumerator, IonSearchSpace, read_prediction_corpus

enumerator = IonMassEnumerator()
enumerator.enumerate('InChI=1S/C6H12O6/...', 'positive', ['M+H', 'M+Na'])
# {'M+H': 181.0707..., 'M+Na': 203.0526...}

config = IonDetectionConfig(include_ions=['M+H', 'M+Na'])
search_space = IonSearchSpace.build(read_prediction_corpus('products.txt'), config)
for label, mass_charge in search_space.search_mzs:
    print(label, mass_charge, search_space.chemicals_for(mass_charge))

"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging
import os

from rdkit.Chem import MolFromInchi, MolFromSmiles
from rdkit.Chem.Descriptors import ExactMolWt

from .adducts import DEFAULT_ION, get_ion_species
from ..config.detection_config import IonDetectionConfig
from ..errors import InputValidationError, MalformedStructureError, MissingInputError
from ..scans.windows import is_searchable_mz

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ChemicalAndIon:
    """A chemical identifier paired with one of its ion species."""
    chemical: str
    ion: str


def structure_to_mol(structure: str):
    """Parse an InChI (``InChI=`` prefix) or SMILES string into an rdkit molecule."""
    structure = structure.strip()
    if not structure:
        raise MalformedStructureError(structure, "Empty chemical structure")
    if structure.startswith('InChI='):
        mol = MolFromInchi(structure)
    else:
        mol = MolFromSmiles(structure)
    if mol is None:
        raise MalformedStructureError(structure, "Could not parse chemical structure")
    return mol


def monoisotopic_mass(structure: str) -> float:
    """Neutral monoisotopic mass of an InChI or SMILES structure."""
    return ExactMolWt(structure_to_mol(structure))


class IonMassEnumerator:
    """Computes ion m/z values of a structure for a polarity's ion species."""

    def __init__(self, config: Optional[IonDetectionConfig] = None):
        self.config = config or IonDetectionConfig()

    def get_ion_masses(self, neutral_mass: float, polarity: str) -> Dict[str, float]:
        """m/z of every known ion species of ``polarity`` for a neutral mass."""
        return {name: species.mass_charge(neutral_mass)
                for name, species in get_ion_species(polarity).items()}

    @staticmethod
    def filter_masses(masses: Dict[str, float],
                      include_ions: Optional[Iterable[str]] = None,
                      exclude_ions: Optional[Iterable[str]] = None) -> Dict[str, float]:
        """Keep only included ion species (all when None) and drop excluded ones."""
        include = set(include_ions) if include_ions is not None else None
        exclude = set(exclude_ions or [])
        return {name: mz for name, mz in masses.items()
                if (include is None or name in include) and name not in exclude}

    def validate_ion_names(self, include_ions: Iterable[str], polarity: str) -> List[str]:
        names = sorted(set(include_ions))
        known = get_ion_species(polarity)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise InputValidationError(
                f"Unknown {polarity} ion species: {', '.join(unknown)}")
        return names

    def enumerate(self,
                  structure: str,
                  polarity: Optional[str] = None,
                  include_ions: Optional[Iterable[str]] = None) -> Dict[str, float]:
        """Map each requested ion species of a structure to its m/z.

        Args:
            structure: InChI or SMILES string
            polarity: 'positive' or 'negative' (defaults to the config polarity)
            include_ions: Ion species names to keep (defaults to M+H)

        Returns:
            Dictionary of ion species name -> mass charge

        Raises:
            MalformedStructureError: If the structure cannot be parsed
            InputValidationError: If an ion name is unknown for the polarity
        """
        polarity = polarity or self.config.polarity
        include_ions = list(include_ions) if include_ions else [DEFAULT_ION]
        self.validate_ion_names(include_ions, polarity)

        all_masses = self.get_ion_masses(monoisotopic_mass(structure), polarity)
        return self.filter_masses(all_masses, include_ions)


class IonSearchSpace:
    """Searched mass charges and the (chemical, ion) pairs sharing each of them.

    Many chemicals can land on the same mass charge; every pair is kept.
    Each mass charge gets a stable ``CHEM_<n>`` label in ascending mass order.
    """

    def __init__(self,
                 mass_charge_to_chemicals: Dict[float, Set[ChemicalAndIon]],
                 skipped: Optional[Dict[str, str]] = None,
                 out_of_range: Optional[Dict[float, Set[ChemicalAndIon]]] = None):
        self.mass_charge_to_chemicals = dict(mass_charge_to_chemicals)
        self.skipped = skipped or {}
        self.out_of_range = out_of_range or {}
        self.labels: Dict[str, float] = {
            f"CHEM_{i}": mz for i, mz in enumerate(sorted(self.mass_charge_to_chemicals))
        }

    @classmethod
    def build(cls,
              structures: Iterable[str],
              config: Optional[IonDetectionConfig] = None,
              enumerator: Optional[IonMassEnumerator] = None) -> 'IonSearchSpace':
        """Enumerate ion masses for every structure, skipping malformed ones.

        Args:
            structures: InChI or SMILES strings
            config: Detection config (polarity, include_ions, mass_charge_precision)
            enumerator: Optional enumerator to use instead of a default one

        Returns:
            IonSearchSpace over every searchable mass charge
        """
        config = config or IonDetectionConfig()
        enumerator = enumerator or IonMassEnumerator(config)
        enumerator.validate_ion_names(config.include_ions, config.polarity)

        collisions: Dict[float, Set[ChemicalAndIon]] = defaultdict(set)
        skipped: Dict[str, str] = {}
        for structure in structures:
            structure = structure.strip()
            if not structure:
                continue
            try:
                masses = enumerator.enumerate(structure, config.polarity, config.include_ions)
            except MalformedStructureError as e:
                skipped[structure] = e.message
                logger.warning("Skipping chemical: %s", e)
                continue
            for ion, mz in masses.items():
                collisions[round(mz, config.mass_charge_precision)].add(ChemicalAndIon(structure, ion))

        searchable = {mz: pairs for mz, pairs in collisions.items() if is_searchable_mz(mz)}
        out_of_range = {mz: pairs for mz, pairs in collisions.items() if not is_searchable_mz(mz)}
        if skipped:
            logger.warning("Skipped %d malformed chemical structures.", len(skipped))
        if out_of_range:
            logger.warning("Excluded %d mass charges outside the searchable m/z range.", len(out_of_range))
        logger.info("The number of mass charges are: %d", len(searchable))

        return cls(searchable, skipped, out_of_range)

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def search_mzs(self) -> List[Tuple[str, float]]:
        return list(self.labels.items())

    def chemicals_for(self, mass_charge: float) -> List[ChemicalAndIon]:
        return sorted(self.mass_charge_to_chemicals.get(mass_charge, set()))


def read_prediction_corpus(file_path: str) -> List[str]:
    """Read one chemical structure (InChI or SMILES) per line, ignoring blank lines."""
    if not os.path.isfile(file_path):
        raise MissingInputError(f"Prediction corpus not found: {file_path}")
    with open(file_path, 'r') as f:
        return [line.strip() for line in f if line.strip()]
