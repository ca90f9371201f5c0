"""Representative peak detection over extracted traces.

Two strategies share one interface:

- ``ClusteredPeakStrategy`` (interactive exploration): keeps points above an
  intensity threshold, splits their m/z values in two with k-means and, when
  the two clusters are well separated, returns the most intense point on each
  side of the class break. Near-isobaric species can elute as two resolvable
  peaks inside one narrow m/z band; the split tells them apart from a single
  peak with a noisy shoulder.
- ``MaxIntensityPeakStrategy`` (batch scoring): one peak per target mass, the
  most intense point of the trace.

Usage Examples:

from lcmsnr.config import PeakExplorationConfig
from lcmsnr.peaks import PeakDetector

detector = PeakDetector.for_exploration(PeakExplorationConfig())
peaks = detector.detect(trace)

batch_detector = PeakDetector.for_batch()
best_peak = batch_detector.detect(trace)[0]

"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

import numpy as np
from sklearn.cluster import KMeans

from ..config.exploration_config import PeakExplorationConfig
from ..errors import NoPeakAboveThresholdError, NoPeaksInWindowError
from ..scans.extraction import PeakTrace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectedPeak:
    """A single (retention time, intensity) point picked from a trace, with its m/z."""
    retention_time: float
    intensity: float
    mz: float

    def to_dict(self):
        return {'retention_time': self.retention_time, 'intensity': self.intensity, 'mz': self.mz}


def _peak_at(trace_rt: np.ndarray, trace_mz: np.ndarray, trace_i: np.ndarray, idx: int) -> DetectedPeak:
    return DetectedPeak(retention_time=float(trace_rt[idx]), intensity=float(trace_i[idx]), mz=float(trace_mz[idx]))


def fit_kmeans_1d(values: np.ndarray, n_clusters: int, random_seed: int, n_init: int = 10) -> KMeans:
    """Fit k-means on a 1-D array of values."""
    model = KMeans(n_clusters=n_clusters, random_state=random_seed, n_init=n_init)
    model.fit(np.asarray(values, dtype=np.float64).reshape(-1, 1))
    return model


def cluster_separation_ratio(values: np.ndarray, labels: np.ndarray) -> float:
    """Between-cluster sum of squares divided by total within-cluster sum of squares.

    Returns inf when every cluster is a single repeated value but the clusters differ.
    """
    values = np.asarray(values, dtype=np.float64)
    total_ss = float(((values - values.mean()) ** 2).sum())
    within_ss = 0.0
    for label in np.unique(labels):
        members = values[labels == label]
        within_ss += float(((members - members.mean()) ** 2).sum())
    between_ss = total_ss - within_ss
    if within_ss <= 0.0:
        return float('inf') if between_ss > 0.0 else 0.0
    return between_ss / within_ss


def kmeans_class_breaks(values: np.ndarray, n_classes: int = 2, random_seed: int = 2016,
                        n_init: int = 10) -> np.ndarray:
    """Class interval breaks from a 1-D k-means partition.

    Clusters are ordered by center; each inner break is the midpoint between
    the largest value of one class and the smallest value of the next.

    Returns:
        Array of n_classes + 1 breaks: [min, inner breaks..., max]
    """
    values = np.asarray(values, dtype=np.float64)
    model = fit_kmeans_1d(values, n_classes, random_seed, n_init)
    rank = np.argsort(np.argsort(model.cluster_centers_.ravel()))
    classes = rank[model.labels_]

    ranges = [(values[classes == c].min(), values[classes == c].max()) for c in range(n_classes)]
    breaks = [ranges[0][0]]
    for (_, upper), (lower, _) in zip(ranges[:-1], ranges[1:]):
        breaks.append(upper + (lower - upper) / 2)
    breaks.append(ranges[-1][1])
    return np.asarray(breaks)


class PeakDetectionStrategy(ABC):
    """Picks representative peak(s) from a trace."""

    @abstractmethod
    def detect(self, trace: PeakTrace) -> List[DetectedPeak]:
        """Return the representative peaks of ``trace``."""


class MaxIntensityPeakStrategy(PeakDetectionStrategy):
    """Single most intense point of the trace."""

    def detect(self, trace: PeakTrace) -> List[DetectedPeak]:
        if trace.is_empty:
            raise NoPeaksInWindowError(f"No data points in trace for scan file {trace.filename}")
        idx = int(np.argmax(trace.intensities))
        return [_peak_at(trace.retention_times, trace.mzs, trace.intensities, idx)]


class ClusteredPeakStrategy(PeakDetectionStrategy):
    """Up to two peaks separated by k-means clustering on m/z."""

    def __init__(self,
                 intensity_threshold: float = 10000.0,
                 ss_ratio_threshold: float = 20.0,
                 random_seed: int = 2016,
                 n_init: int = 10):
        self.intensity_threshold = intensity_threshold
        self.ss_ratio_threshold = ss_ratio_threshold
        self.random_seed = random_seed
        self.n_init = n_init

    def select_above_threshold(self, trace: PeakTrace) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        keep = trace.intensities > self.intensity_threshold
        if not keep.any():
            raise NoPeakAboveThresholdError(
                f"No peak found above the clustering threshold: {self.intensity_threshold:g}")
        return trace.retention_times[keep], trace.mzs[keep], trace.intensities[keep]

    def separation(self, mzs: np.ndarray) -> Optional[float]:
        """Separation ratio of a 2-means split of ``mzs``, None if it cannot be split."""
        if len(np.unique(mzs)) < 2:
            return None
        model = fit_kmeans_1d(mzs, 2, self.random_seed, self.n_init)
        return cluster_separation_ratio(mzs, model.labels_)

    def detect(self, trace: PeakTrace) -> List[DetectedPeak]:
        rts, mzs, intensities = self.select_above_threshold(trace)

        ratio = self.separation(mzs)
        if ratio is not None and ratio > self.ss_ratio_threshold:
            mz_break = kmeans_class_breaks(mzs, 2, self.random_seed, self.n_init)[1]
            below = np.flatnonzero(mzs < mz_break)
            above = np.flatnonzero(mzs >= mz_break)
            logger.info("Clusters separated (ratio %.2f), m/z break at %.5f.", ratio, mz_break)
            peaks = []
            for side in (below, above):
                if len(side) > 0:
                    idx = side[int(np.argmax(intensities[side]))]
                    peaks.append(_peak_at(rts, mzs, intensities, idx))
            return peaks

        idx = int(np.argmax(intensities))
        return [_peak_at(rts, mzs, intensities, idx)]


class PeakDetector:
    """Finds representative peak(s) in a trace with a caller-selected strategy."""

    def __init__(self, strategy: Optional[PeakDetectionStrategy] = None):
        self.strategy = strategy or MaxIntensityPeakStrategy()

    @classmethod
    def for_exploration(cls, config: Optional[PeakExplorationConfig] = None) -> 'PeakDetector':
        config = config or PeakExplorationConfig()
        return cls(ClusteredPeakStrategy(
            intensity_threshold=config.intensity_threshold,
            ss_ratio_threshold=config.ss_ratio_threshold,
            random_seed=config.random_seed,
            n_init=config.n_init,
        ))

    @classmethod
    def for_batch(cls) -> 'PeakDetector':
        return cls(MaxIntensityPeakStrategy())

    def detect(self, trace: PeakTrace) -> List[DetectedPeak]:
        return self.strategy.detect(trace)


def detect_peaks(trace: PeakTrace, config: Optional[PeakExplorationConfig] = None) -> List[DetectedPeak]:
    """Convenience function running clustering-based detection on a trace."""
    return PeakDetector.for_exploration(config).detect(trace)
