"""Per-mass hit/miss records and their JSON interchange format.

A report file looks like:

    {"results": [
        {"mz": 181.070665, "isValid": true,
         "molecules": [{"inchi": "...", "ion": "M+H", "snr": 2150.3,
                        "time": 32.1, "intensity": 51000.0, "plotPath": "..."}]}
    ]}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import json
import math
import os
import tempfile

import pandas as pd


def _json_number(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class HitOrMiss:
    """Outcome of one (chemical, ion) pair at one searched mass."""
    inchi: str
    ion: str
    snr: Optional[float]
    time: Optional[float]
    intensity: Optional[float]
    plot: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'inchi': self.inchi,
            'ion': self.ion,
            'snr': _json_number(self.snr),
            'time': _json_number(self.time),
            'intensity': _json_number(self.intensity),
            'plotPath': self.plot,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'HitOrMiss':
        return cls(
            inchi=data['inchi'],
            ion=data['ion'],
            snr=data.get('snr'),
            time=data.get('time'),
            intensity=data.get('intensity'),
            plot=data.get('plotPath'),
        )


@dataclass
class ResultForMZ:
    """Validity of one searched mass and the molecules that map to it."""
    mz: float
    is_valid: bool = False
    molecules: List[HitOrMiss] = field(default_factory=list)

    def add_molecule(self, molecule: HitOrMiss):
        if molecule not in self.molecules:
            self.molecules.append(molecule)

    def add_molecules(self, molecules: Iterable[HitOrMiss]):
        for molecule in molecules:
            self.add_molecule(molecule)

    def to_dict(self) -> Dict:
        return {
            'mz': self.mz,
            'isValid': bool(self.is_valid),
            'molecules': [m.to_dict() for m in self.molecules],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ResultForMZ':
        return cls(
            mz=data['mz'],
            is_valid=data['isValid'],
            molecules=[HitOrMiss.from_dict(m) for m in data.get('molecules', [])],
        )


def write_results_json(results: List[ResultForMZ], file_path: str) -> str:
    """Write a report file atomically.

    Args:
        results: Records to serialize, in order
        file_path: Output JSON path

    Returns:
        The path written
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = {'results': [r.to_dict() for r in results]}
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return str(path)


def read_results_json(file_path: str) -> List[ResultForMZ]:
    with open(file_path, 'r') as f:
        payload = json.load(f)
    return [ResultForMZ.from_dict(r) for r in payload['results']]


def results_to_dataframe(results: List[ResultForMZ]):
    """Flatten records to one row per molecule, for inspection in pandas."""
    rows = []
    for r in results:
        for m in r.molecules:
            rows.append({'mz': r.mz, 'is_valid': r.is_valid, **m.to_dict()})
    return pd.DataFrame(rows, columns=['mz', 'is_valid', 'inchi', 'ion', 'snr', 'time', 'intensity', 'plotPath'])
