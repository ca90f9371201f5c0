"""Loading and caching of raw LCMS scan files.

Raw instrument files are slow to parse, so every parsed file is written to a
cache directory the first time it is read and served from there afterwards.

Usage Examples:

from lcmsnr.config import IonDetectionConfig
from lcmsnr.scans.dataloading import ScanFileCache

config = IonDetectionConfig(lcms_data_dir='/data/lcms', scan_cache_dir='/data/lcms-cache')
cache = ScanFileCache.from_config(config)

# Parsed on first access, served from the cache afterwards
scan_file = cache.get('Plate_12389_A1.mzML')
print(scan_file.headers.head())

"""

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging
import os
import pickle
import tempfile
import threading

import numpy as np
import pandas as pd
from pyteomics import mzml

from ..config.base_config import BaseConfig
from ..errors import MissingInputError, ScanCacheMismatchError, StaleScanCacheError

logger = logging.getLogger(__name__)

CACHE_EXTENSION = '.pkl'
CACHE_FORMAT_VERSION = 1


@dataclass(frozen=True, eq=False)
class ScanFile:
    """Parsed scan file: one header (retention time, MS level) and one peak list per scan.

    Each entry of ``scans`` is an (n, 2) float array with m/z in column 0 and
    intensity in column 1. Arrays are made read-only on construction.
    """
    filename: str
    retention_times: np.ndarray
    ms_levels: np.ndarray
    scans: List[np.ndarray] = field(default_factory=list)

    def __post_init__(self):
        if not (len(self.retention_times) == len(self.ms_levels) == len(self.scans)):
            raise ValueError(
                f"Scan file {self.filename} has {len(self.retention_times)} retention times, "
                f"{len(self.ms_levels)} MS levels and {len(self.scans)} scans")
        object.__setattr__(self, 'retention_times', _read_only(np.asarray(self.retention_times, dtype=np.float64)))
        object.__setattr__(self, 'ms_levels', _read_only(np.asarray(self.ms_levels, dtype=np.int64)))
        object.__setattr__(self, 'scans', [_read_only(_as_peak_array(s)) for s in self.scans])

    def __len__(self) -> int:
        return len(self.scans)

    @property
    def headers(self) -> pd.DataFrame:
        return pd.DataFrame({'retention_time': self.retention_times, 'ms_level': self.ms_levels})

    @cached_property
    def ms1_indices(self) -> np.ndarray:
        return np.flatnonzero(self.ms_levels == 1)

    def to_dict(self) -> Dict:
        return {
            'version': CACHE_FORMAT_VERSION,
            'filename': self.filename,
            'retention_times': self.retention_times,
            'ms_levels': self.ms_levels,
            'scans': self.scans,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ScanFile':
        return cls(
            filename=data['filename'],
            retention_times=data['retention_times'],
            ms_levels=data['ms_levels'],
            scans=list(data['scans']),
        )


def _as_peak_array(scan) -> np.ndarray:
    arr = np.asarray(scan, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Scan peak arrays must have shape (n, 2), got {arr.shape}")
    return arr


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _retention_time_seconds(spectrum: Dict) -> float:
    """Pull the scan start time out of a pyteomics spectrum and convert it to seconds."""
    scan = spectrum['scanList']['scan'][0]
    rt = scan['scan start time']
    unit = getattr(rt, 'unit_info', None)
    if unit in ('minute', 'min', 'UO:0000031'):
        return float(rt) * 60.0
    return float(rt)


def read_mzml_scan_file(file_path: str, filename: Optional[str] = None) -> ScanFile:
    """Parse an mzML file into a ScanFile.

    Args:
        file_path: Path to the mzML file on disk
        filename: Name recorded in the ScanFile (defaults to the basename)

    Returns:
        ScanFile with every scan of the run, in acquisition order
    """
    retention_times = []
    ms_levels = []
    scans = []
    with mzml.MzML(str(file_path)) as reader:
        for spectrum in reader:
            retention_times.append(_retention_time_seconds(spectrum))
            ms_levels.append(int(spectrum.get('ms level', 1)))
            scans.append(np.column_stack([spectrum['m/z array'], spectrum['intensity array']]))

    return ScanFile(
        filename=filename or os.path.basename(file_path),
        retention_times=np.asarray(retention_times),
        ms_levels=np.asarray(ms_levels),
        scans=scans,
    )


class ScanFileCache:
    """Read-through cache of parsed scan files, keyed by filename.

    Lookups go memory -> on-disk cache -> raw file. Disk entries are written
    to a temporary file and renamed into place, so concurrent readers only
    ever see complete entries. When two writers race, the last rename wins.
    """

    def __init__(self,
                 data_dir: str,
                 cache_dir: Optional[str] = None,
                 reader: Optional[Callable[[str, str], ScanFile]] = None):
        """Initialize the cache.

        Args:
            data_dir: Directory holding raw scan files
            cache_dir: Directory for parsed entries (None disables the disk layer)
            reader: Callable (path, filename) -> ScanFile used for raw files
        """
        self.data_dir = Path(data_dir)
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.reader = reader or read_mzml_scan_file
        self._memory: Dict[str, ScanFile] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: BaseConfig) -> 'ScanFileCache':
        return cls(config.lcms_data_dir, config.scan_cache_dir)

    def cache_path(self, scan_file_name: str) -> Optional[Path]:
        """Cache location for a scan file: same relative name, cache extension."""
        if self.cache_dir is None:
            return None
        return self.cache_dir / Path(scan_file_name).with_suffix(CACHE_EXTENSION)

    def __len__(self) -> int:
        """Number of parsed scan files currently held in memory."""
        with self._lock:
            return len(self._memory)

    def get(self, scan_file_name: str, keep_in_memory: bool = True) -> ScanFile:
        """Return the parsed scan file, parsing and caching it on first access.

        Args:
            scan_file_name: Scan file name, relative to the data directory
            keep_in_memory: Hold the parsed file in memory for later calls.
                Callers reading a file only once pass False; the disk cache
                is written either way.

        Raises:
            MissingInputError: If the file is neither cached nor on disk
            ScanCacheMismatchError: If the cache entry belongs to another file
        """
        if not scan_file_name:
            raise MissingInputError("Please choose an input scan file")

        with self._lock:
            cached = self._memory.get(scan_file_name)
        if cached is not None:
            return cached

        scan_file = None
        cache_path = self.cache_path(scan_file_name)
        if cache_path is not None and cache_path.exists():
            logger.info("Reading scan file (%s) from cache at %s.", scan_file_name, cache_path)
            try:
                scan_file = self.read_cached(cache_path, scan_file_name)
            except StaleScanCacheError as e:
                logger.warning("%s. Parsing the raw file again.", e)

        if scan_file is None:
            scan_file = self._read_raw(scan_file_name)
            if cache_path is not None:
                logger.info("Saving scan file (%s) in the cache at %s.", scan_file_name, cache_path)
                self.write_cached(scan_file, cache_path)

        if not keep_in_memory:
            return scan_file
        with self._lock:
            # Another thread may have won the race; keep the first stored copy
            return self._memory.setdefault(scan_file_name, scan_file)

    def _read_raw(self, scan_file_name: str) -> ScanFile:
        file_path = self.data_dir / scan_file_name
        if not file_path.exists():
            raise MissingInputError(
                f"Input scan file {scan_file_name} was not found in the cache "
                f"or in the data directory ({self.data_dir})")
        logger.info("Reading scan file (%s) from disk at %s.", scan_file_name, file_path)
        return self.reader(str(file_path), scan_file_name)

    @staticmethod
    def read_cached(cache_path: Path, expected_name: str) -> ScanFile:
        """Load a cache entry and check it was saved for ``expected_name``."""
        with open(cache_path, 'rb') as f:
            data = pickle.load(f)
        if data.get('version') != CACHE_FORMAT_VERSION:
            raise StaleScanCacheError(str(cache_path), data.get('version'))
        found = data.get('filename')
        if found != expected_name:
            raise ScanCacheMismatchError(str(cache_path), expected_name, str(found))
        return ScanFile.from_dict(data)

    @staticmethod
    def write_cached(scan_file: ScanFile, cache_path: Path) -> Path:
        """Atomically write a cache entry."""
        cache_path = Path(cache_path)
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=cache_path.parent, prefix=cache_path.name, suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                pickle.dump(scan_file.to_dict(), f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(tmp_path, cache_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return cache_path

    def clear_memory(self):
        with self._lock:
            self._memory.clear()
