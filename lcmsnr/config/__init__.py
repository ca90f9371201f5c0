"""Configuration dataclasses for lcmsnr workflows."""

from .base_config import BaseConfig
from .detection_config import IonDetectionConfig, MZ_TOLERANCE_FINE, MZ_TOLERANCE_COARSE
from .exploration_config import PeakExplorationConfig

__all__ = [
    'BaseConfig',
    'IonDetectionConfig',
    'PeakExplorationConfig',
    'MZ_TOLERANCE_FINE',
    'MZ_TOLERANCE_COARSE',
]
