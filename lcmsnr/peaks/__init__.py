"""lcmsnr peaks module: representative peak detection and SNR scoring.

Peak detection is a single capability with two strategies, clustering-based
for interactive exploration of raw chromatograms and single maximum for
automated batch scoring. SNR scoring compares the batch peak of a positive
well with the pooled intensities of negative control wells.
"""

from .detection import (
    DetectedPeak,
    PeakDetectionStrategy,
    MaxIntensityPeakStrategy,
    ClusteredPeakStrategy,
    PeakDetector,
    cluster_separation_ratio,
    kmeans_class_breaks,
    detect_peaks,
)
from .snr import SNRComputer, SNRResult, noise_baseline

__all__ = [
    'DetectedPeak',
    'PeakDetectionStrategy',
    'MaxIntensityPeakStrategy',
    'ClusteredPeakStrategy',
    'PeakDetector',
    'cluster_separation_ratio',
    'kmeans_class_breaks',
    'detect_peaks',
    'SNRComputer',
    'SNRResult',
    'noise_baseline',
]
