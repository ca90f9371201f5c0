"""Signal-to-noise scoring of a positive well against negative control wells.

The signal is the most intense point of the positive trace. The noise
baseline is a statistic of the intensities pooled over every negative
control trace for the same target mass.

Usage Examples:

from lcmsnr.config import IonDetectionConfig
from lcmsnr.peaks.snr import SNRComputer

computer = SNRComputer(IonDetectionConfig(noise_statistic='max'))
result = computer.compute(positive_trace, [negative_trace_1, negative_trace_2], mass_charge=181.0707)
print(result.snr, result.best_peak.retention_time)

"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np

from .detection import DetectedPeak, PeakDetector
from ..config.detection_config import IonDetectionConfig
from ..errors import DegenerateNoiseBaselineError, InputValidationError, NoNegativeControlsError
from ..scans.extraction import PeakTrace


@dataclass(frozen=True)
class SNRResult:
    """Best peak and signal-to-noise ratio for one searched mass in one well."""
    mass_charge: Optional[float]
    best_peak: DetectedPeak
    snr: float
    noise_baseline: float
    plot_path: Optional[str] = None

    def with_plot(self, plot_path: Optional[str]) -> 'SNRResult':
        return replace(self, plot_path=plot_path)


def noise_baseline(intensities: np.ndarray, statistic: str = 'max', percentile: float = 99.0) -> float:
    """Summarize pooled negative control intensities into one baseline value.

    Args:
        intensities: Pooled intensities (may be empty)
        statistic: One of 'max', 'mean', 'median', 'percentile'
        percentile: Percentile used when statistic is 'percentile'

    Returns:
        Baseline intensity; 0.0 when there are no intensities
    """
    intensities = np.asarray(intensities, dtype=np.float64)
    if intensities.size == 0:
        return 0.0
    if statistic == 'max':
        return float(intensities.max())
    if statistic == 'mean':
        return float(intensities.mean())
    if statistic == 'median':
        return float(np.median(intensities))
    if statistic == 'percentile':
        return float(np.percentile(intensities, percentile))
    raise InputValidationError(f"Unknown noise statistic: {statistic}")


class SNRComputer:
    """Computes the best peak and SNR of a positive trace against negative controls."""

    def __init__(self, config: Optional[IonDetectionConfig] = None):
        self.config = config or IonDetectionConfig()
        self.detector = PeakDetector.for_batch()

    def pooled_negative_intensities(self, negative_traces: Sequence[PeakTrace]) -> np.ndarray:
        arrays = [t.intensities for t in negative_traces if t is not None and not t.is_empty]
        if not arrays:
            return np.empty(0, dtype=np.float64)
        return np.concatenate(arrays)

    def compute(self,
                positive_trace: PeakTrace,
                negative_traces: Sequence[PeakTrace],
                mass_charge: Optional[float] = None) -> SNRResult:
        """Score the positive trace.

        Args:
            positive_trace: Trace of the positive well for the target mass
            negative_traces: Traces of every negative control well for the same mass
            mass_charge: Target mass recorded in the result

        Returns:
            SNRResult with snr = best peak intensity / noise baseline

        Raises:
            NoNegativeControlsError: If no negative control trace is supplied
            NoPeaksInWindowError: If the positive trace is empty
            DegenerateNoiseBaselineError: If the baseline is at or below the epsilon
        """
        if len(negative_traces) == 0:
            raise NoNegativeControlsError(
                "SNR is undefined without negative controls"
                + (f" (mass charge {mass_charge})" if mass_charge is not None else ""))

        best_peak = self.detector.detect(positive_trace)[0]

        baseline = noise_baseline(self.pooled_negative_intensities(negative_traces),
                                  self.config.noise_statistic, self.config.noise_percentile)
        if baseline <= self.config.noise_epsilon:
            raise DegenerateNoiseBaselineError(
                f"Degenerate noise baseline ({baseline:g}) across {len(negative_traces)} negative controls"
                + (f" for mass charge {mass_charge}" if mass_charge is not None else ""))

        return SNRResult(
            mass_charge=mass_charge,
            best_peak=best_peak,
            snr=best_peak.intensity / baseline,
            noise_baseline=baseline,
        )
