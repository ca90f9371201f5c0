from dataclasses import dataclass, fields
from typing import Optional
import math
import yaml

from ..errors import InputValidationError

POLARITIES = ('positive', 'negative')

@dataclass
class BaseConfig:
    """Base configuration with common parameters."""
    # Raw LCMS scan files and their parsed cache
    lcms_data_dir: str = 'MNT_DATA_LEVEL1/lcms-ms1'
    scan_cache_dir: Optional[str] = 'MNT_DATA_LEVEL1/lcms-ms1-cache'

    # Instrument parameters
    polarity: str = 'positive'

    # RT parameters (seconds)
    min_rt: float = 0.0
    max_rt: float = 3600.0

    # Half width of the m/z band around a target mass
    mz_band_halfwidth: float = 0.01

    @classmethod
    def from_file(cls, file_path: str):
        """
        Creates a config instance by loading parameters from a YAML file.
        Any parameters in the YAML file will override the class defaults.
        """
        # If no file is provided, return a default config instance
        if not file_path:
            return cls()

        with open(file_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        # Unknown keys in the file are ignored
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in config_data.items() if k in valid_fields}

        return cls(**filtered_data)

    def __post_init__(self):
        """Validate shared parameters after object creation."""
        if self.polarity not in POLARITIES:
            raise InputValidationError(
                f"polarity must be one of {POLARITIES}, got '{self.polarity}'")
        if not (math.isfinite(self.min_rt) and math.isfinite(self.max_rt)) or self.min_rt >= self.max_rt:
            raise InputValidationError(
                f"Invalid retention time range [{self.min_rt}, {self.max_rt}]")

    @property
    def retention_time_range(self):
        return (self.min_rt, self.max_rt)
