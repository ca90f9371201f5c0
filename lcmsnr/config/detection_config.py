from dataclasses import dataclass, field
from typing import List, Optional

from .base_config import BaseConfig
from ..errors import InputValidationError

MZ_TOLERANCE_FINE = 0.001
MZ_TOLERANCE_COARSE = 0.01

NOISE_STATISTICS = ('max', 'mean', 'median', 'percentile')

@dataclass
class IonDetectionConfig(BaseConfig):
    """Configuration parameters for the batch ion detection workflow."""

    # Validity thresholds; all comparisons are strict
    min_intensity_threshold: float = 10000.0
    min_snr_threshold: float = 1000.0
    min_time_threshold: float = 15.0

    # m/z band selection
    use_fine_grained_tolerance: bool = False

    # Ion species searched for every chemical
    include_ions: List[str] = field(default_factory=lambda: ['M+H'])

    # Noise baseline pooled over negative control wells
    noise_statistic: str = 'max'
    noise_percentile: float = 99.0
    noise_epsilon: float = 1e-9

    # Decimal places used when grouping chemicals that share a mass charge
    mass_charge_precision: int = 6

    # Execution and output
    n_jobs: int = 1
    plotting_dir: Optional[str] = None
    scan_file_pattern: str = '{plate_barcode}_{well_label}[._]*mzML'

    def __post_init__(self):
        super().__post_init__()
        if self.noise_statistic not in NOISE_STATISTICS:
            raise InputValidationError(
                f"noise_statistic must be one of {NOISE_STATISTICS}, got '{self.noise_statistic}'")
        if not self.include_ions:
            self.include_ions = ['M+H']
        # The tolerance switch wins over an explicit halfwidth only when it is set
        if self.use_fine_grained_tolerance:
            self.mz_band_halfwidth = MZ_TOLERANCE_FINE
