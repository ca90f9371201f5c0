"""Extraction of (retention time, m/z, intensity) samples inside scan windows.

A trace is the set of MS1 data points whose scan lies inside a retention time
window and whose m/z lies inside an m/z band. Every data point of a scan
shares that scan's single retention time.

Usage Examples:

from lcmsnr.scans import ScanWindowExtractor, MzWindow, TimeWindow

extractor = ScanWindowExtractor()
trace = extractor.extract(scan_file, MzWindow(431.98, 0.01), TimeWindow(0, 250))
print(trace.to_dataframe().head())

# Batch mode: many masses against one parsed file
traces = extractor.extract_traces(scan_file, {'CHEM_0': MzWindow(181.07, 0.01)}, TimeWindow(0, 250))

"""

from dataclasses import dataclass
from typing import Dict, Optional
import logging

import numpy as np
import pandas as pd

from .dataloading import ScanFile
from .windows import MzWindow, TimeWindow
from ..errors import EmptyScanFileError, NoPeaksInWindowError, NoScansInRangeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ScansInTimeRange:
    """MS1 scans selected by retention time, flattened to one row per data point."""
    filename: str
    n_scans: int
    retention_times: np.ndarray
    mzs: np.ndarray
    intensities: np.ndarray
    time_window: TimeWindow


@dataclass(frozen=True, eq=False)
class PeakTrace:
    """Samples of one scan file restricted to one m/z band and retention time window."""
    filename: str
    retention_times: np.ndarray
    mzs: np.ndarray
    intensities: np.ndarray
    mz_window: Optional[MzWindow] = None
    time_window: Optional[TimeWindow] = None

    def __len__(self) -> int:
        return len(self.intensities)

    @property
    def is_empty(self) -> bool:
        return len(self.intensities) == 0

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'mz': self.mzs,
            'retention_time': self.retention_times,
            'intensity': self.intensities,
        })

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, filename: str = '') -> 'PeakTrace':
        return cls(
            filename=filename,
            retention_times=df['retention_time'].to_numpy(dtype=np.float64),
            mzs=df['mz'].to_numpy(dtype=np.float64),
            intensities=df['intensity'].to_numpy(dtype=np.float64),
        )


class ScanWindowExtractor:
    """Selects scan data points inside retention time and m/z windows."""

    def get_scans(self, scan_file: ScanFile, time_window: TimeWindow) -> ScansInTimeRange:
        """Select MS1 scans strictly inside the time window and flatten them.

        Args:
            scan_file: Parsed scan file
            time_window: Retention time window (seconds)

        Returns:
            ScansInTimeRange with the scan retention time replicated once per data point

        Raises:
            EmptyScanFileError: If the file holds no MS1 scans at all
            NoScansInRangeError: If no MS1 scan lies inside the window
        """
        ms1 = scan_file.ms1_indices
        if len(ms1) == 0:
            raise EmptyScanFileError(
                f"Found 0 scans in loaded scan file {scan_file.filename}. "
                "Please check the input file or the cached data!")

        selected = ms1[time_window.contains(scan_file.retention_times[ms1])]
        logger.info("Found %d scans with retention time in range [%.1f, %.1f] for scan file %s.",
                    len(selected), time_window.min_rt, time_window.max_rt, scan_file.filename)
        if len(selected) == 0:
            raise NoScansInRangeError(
                f"Found 0 scans in input time range [{time_window.min_rt}, {time_window.max_rt}] "
                f"for scan file {scan_file.filename}")

        scans = [scan_file.scans[i] for i in selected]
        lengths = np.array([len(s) for s in scans], dtype=np.int64)
        retention_times = np.repeat(scan_file.retention_times[selected], lengths)
        peaks = np.concatenate(scans, axis=0) if lengths.sum() > 0 else np.empty((0, 2))

        return ScansInTimeRange(
            filename=scan_file.filename,
            n_scans=len(selected),
            retention_times=retention_times,
            mzs=peaks[:, 0],
            intensities=peaks[:, 1],
            time_window=time_window,
        )

    def get_peaks_in_scope(self, scans: ScansInTimeRange, mz_window: MzWindow) -> PeakTrace:
        """Keep the data points whose m/z lies strictly inside the band.

        Raises:
            NoPeaksInWindowError: If no data point falls in the band
        """
        keep = mz_window.contains(scans.mzs)
        n_found = int(keep.sum())
        logger.info("Found %d peaks in mz window [%.4f, %.4f] for scan file %s.",
                    n_found, mz_window.min_mz, mz_window.max_mz, scans.filename)
        if n_found == 0:
            raise NoPeaksInWindowError(
                f"Found 0 peaks in mz window [{mz_window.min_mz:.4f}, {mz_window.max_mz:.4f}] "
                f"for scan file {scans.filename}")

        return PeakTrace(
            filename=scans.filename,
            retention_times=scans.retention_times[keep],
            mzs=scans.mzs[keep],
            intensities=scans.intensities[keep],
            mz_window=mz_window,
            time_window=scans.time_window,
        )

    def extract(self, scan_file: ScanFile, mz_window: MzWindow, time_window: TimeWindow) -> PeakTrace:
        """Extract the trace of one scan file for one m/z band and time window."""
        scans = self.get_scans(scan_file, time_window)
        return self.get_peaks_in_scope(scans, mz_window)

    def extract_traces(self,
                       scan_file: ScanFile,
                       mz_windows: Dict[str, MzWindow],
                       time_window: TimeWindow) -> Dict[str, PeakTrace]:
        """Extract one trace per labelled m/z band from a single parsed file.

        The file is flattened once and sorted by m/z, then each band is located
        with a binary search. Unlike ``extract``, bands without any data point
        yield an empty trace rather than raising, so that callers scoring many
        masses can report per-mass failures themselves.

        Args:
            scan_file: Parsed scan file
            mz_windows: Mapping of label -> MzWindow
            time_window: Retention time window shared by all bands

        Returns:
            Mapping of label -> PeakTrace (points ordered by retention time)
        """
        scans = self.get_scans(scan_file, time_window)

        order = np.argsort(scans.mzs, kind='stable')
        sorted_mzs = scans.mzs[order]

        traces = {}
        for label, window in mz_windows.items():
            # Strict bounds: skip values equal to min_mz, stop before values equal to max_mz
            start = np.searchsorted(sorted_mzs, window.min_mz, side='right')
            end = np.searchsorted(sorted_mzs, window.max_mz, side='left')
            idx = np.sort(order[start:end]) if end > start else np.empty(0, dtype=np.int64)
            traces[label] = PeakTrace(
                filename=scans.filename,
                retention_times=scans.retention_times[idx],
                mzs=scans.mzs[idx],
                intensities=scans.intensities[idx],
                mz_window=window,
                time_window=time_window,
            )
        n_empty = sum(1 for t in traces.values() if t.is_empty)
        logger.debug("Extracted %d traces (%d empty) from scan file %s.",
                     len(traces), n_empty, scans.filename)
        return traces


def extract_trace(scan_file: ScanFile, target_mz: float, mz_band_halfwidth: float,
                  retention_time_range) -> PeakTrace:
    """Convenience function validating raw parameters before extraction.

    Args:
        scan_file: Parsed scan file
        target_mz: Center of the m/z band
        mz_band_halfwidth: Half width of the m/z band
        retention_time_range: (min, max) retention time pair in seconds

    Returns:
        PeakTrace inside both windows
    """
    time_window = TimeWindow.from_range(retention_time_range)
    mz_window = MzWindow(target_mz, mz_band_halfwidth)
    return ScanWindowExtractor().extract(scan_file, mz_window, time_window)
