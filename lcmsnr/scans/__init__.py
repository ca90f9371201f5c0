"""lcmsnr scans module: raw scan files, windows and trace extraction.

This module loads LCMS scan files (with a read-through cache of parsed
files) and extracts the data points falling inside a retention time window
and an m/z band around a target mass.
"""

from .dataloading import ScanFile, ScanFileCache, read_mzml_scan_file
from .windows import MzWindow, TimeWindow
from .extraction import PeakTrace, ScansInTimeRange, ScanWindowExtractor, extract_trace

__all__ = [
    'ScanFile',
    'ScanFileCache',
    'read_mzml_scan_file',
    'MzWindow',
    'TimeWindow',
    'PeakTrace',
    'ScansInTimeRange',
    'ScanWindowExtractor',
    'extract_trace',
]
