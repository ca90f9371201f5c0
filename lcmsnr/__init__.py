"""
lcmsnr: LC-MS signal-to-noise ion detection for predicted pathway metabolites
"""

__version__ = "0.1.0"

from . import config
from . import scans
from . import peaks
from . import ions
from . import analysis

# Configuration imports
from .config import BaseConfig, IonDetectionConfig, PeakExplorationConfig
from .analysis import IonDetectionAnalysis

__all__ = [
    'BaseConfig',
    'IonDetectionConfig',
    'PeakExplorationConfig',
    'IonDetectionAnalysis',
    "config", "scans", "peaks", "ions", "analysis",
]
