"""Shared fixtures: small synthetic scan files and plate layouts."""

import numpy as np
import pytest

from lcmsnr.analysis import PlateWell
from lcmsnr.config import IonDetectionConfig
from lcmsnr.scans import ScanFile


def make_scan_file(filename, scans, ms_levels=None):
    """Build a ScanFile from a list of (retention_time, [(mz, intensity), ...])."""
    retention_times = [rt for rt, _ in scans]
    peaks = [np.array(points, dtype=np.float64).reshape(-1, 2) for _, points in scans]
    if ms_levels is None:
        ms_levels = [1] * len(scans)
    return ScanFile(filename=filename, retention_times=np.array(retention_times),
                    ms_levels=np.array(ms_levels), scans=peaks)


@pytest.fixture
def simple_scan_file():
    """Four MS1 scans and one MS2 scan around m/z 200."""
    return make_scan_file('Plate_1_A1.mzML', [
        (10.0, [(199.995, 100.0), (200.000, 5000.0), (300.0, 1.0)]),
        (20.0, [(200.001, 20000.0), (200.02, 7.0)]),
        (30.0, [(200.002, 50000.0)]),
        (40.0, [(199.999, 8000.0), (200.010, 3.0)]),
        (25.0, [(200.000, 9e9)]),
    ], ms_levels=[1, 1, 1, 1, 2])


@pytest.fixture
def detection_config(tmp_path):
    return IonDetectionConfig(
        lcms_data_dir=str(tmp_path / 'lcms'),
        scan_cache_dir=None,
        min_rt=0.0,
        max_rt=100.0,
        min_intensity_threshold=10000.0,
    )


@pytest.fixture
def wells():
    """One plate: two positive replicates and two negative controls."""
    positives = [PlateWell('P1', 0, 0, 'POS'), PlateWell('P1', 0, 1, 'POS')]
    negatives = [PlateWell('P1', 1, 0, 'NEG'), PlateWell('P1', 1, 1, 'NEG')]
    return positives, negatives


@pytest.fixture
def scan_file_factory():
    return make_scan_file
