from dataclasses import dataclass
from .base_config import BaseConfig

@dataclass
class PeakExplorationConfig(BaseConfig):
    """Configuration parameters for interactive peak exploration of raw scans."""

    # Overrides from BaseConfig
    min_rt: float = 0.0
    max_rt: float = 300.0

    # Clustering-based peak detection
    intensity_threshold: float = 10000.0
    ss_ratio_threshold: float = 20.0   # between / total within sum of squares
    random_seed: int = 2016
    n_init: int = 10
