"""Tests for the parsed scan file cache."""

import pickle
import threading
import time

import numpy as np
import pytest

from lcmsnr.errors import MissingInputError, ScanCacheMismatchError, StaleScanCacheError
from lcmsnr.scans import ScanFile, ScanFileCache, dataloading


def _touch_raw(data_dir, name):
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / name).write_text('raw')


class CountingReader:
    """Reader returning a fixed ScanFile and counting raw parses."""

    def __init__(self, scan_file):
        self.scan_file = scan_file
        self.calls = 0

    def __call__(self, path, filename):
        self.calls += 1
        return ScanFile(filename, self.scan_file.retention_times, self.scan_file.ms_levels,
                        list(self.scan_file.scans))


def test_scan_file_arrays_are_read_only(simple_scan_file):
    with pytest.raises(ValueError):
        simple_scan_file.retention_times[0] = 1.0
    with pytest.raises(ValueError):
        simple_scan_file.scans[0][0, 1] = 1.0


def test_scan_file_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        ScanFile('bad.mzML', np.array([1.0, 2.0]), np.array([1]), [np.zeros((1, 2))])


def test_headers(simple_scan_file):
    headers = simple_scan_file.headers
    assert list(headers.columns) == ['retention_time', 'ms_level']
    assert len(headers) == 5
    assert simple_scan_file.ms1_indices.tolist() == [0, 1, 2, 3]


def test_cache_path_uses_cache_extension(tmp_path):
    cache = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache')
    assert cache.cache_path('Plate_1_A1.mzML') == tmp_path / 'cache' / 'Plate_1_A1.pkl'
    assert ScanFileCache(tmp_path / 'lcms').cache_path('Plate_1_A1.mzML') is None


def test_write_then_read_cached(tmp_path, simple_scan_file):
    path = ScanFileCache.write_cached(simple_scan_file, tmp_path / 'cache' / 'Plate_1_A1.pkl')
    loaded = ScanFileCache.read_cached(path, 'Plate_1_A1.mzML')

    assert loaded.filename == simple_scan_file.filename
    np.testing.assert_array_equal(loaded.retention_times, simple_scan_file.retention_times)
    np.testing.assert_array_equal(loaded.ms_levels, simple_scan_file.ms_levels)
    assert len(loaded.scans) == len(simple_scan_file.scans)
    for a, b in zip(loaded.scans, simple_scan_file.scans):
        np.testing.assert_array_equal(a, b)
    # No temporary files left behind
    assert [p.name for p in (tmp_path / 'cache').iterdir()] == ['Plate_1_A1.pkl']


def test_read_cached_filename_mismatch(tmp_path, simple_scan_file):
    path = ScanFileCache.write_cached(simple_scan_file, tmp_path / 'Plate_1_B2.pkl')
    with pytest.raises(ScanCacheMismatchError) as excinfo:
        ScanFileCache.read_cached(path, 'Plate_1_B2.mzML')
    assert excinfo.value.found == 'Plate_1_A1.mzML'
    assert excinfo.value.expected == 'Plate_1_B2.mzML'


def test_get_parses_once_and_writes_cache(tmp_path, simple_scan_file):
    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')
    reader = CountingReader(simple_scan_file)
    cache = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=reader)

    first = cache.get('Plate_1_A1.mzML')
    second = cache.get('Plate_1_A1.mzML')
    assert first is second
    assert reader.calls == 1
    assert (tmp_path / 'cache' / 'Plate_1_A1.pkl').exists()


def test_get_reads_disk_cache_without_parsing(tmp_path, simple_scan_file):
    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')
    ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=CountingReader(simple_scan_file)).get(
        'Plate_1_A1.mzML')

    reader = CountingReader(simple_scan_file)
    loaded = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=reader).get('Plate_1_A1.mzML')
    assert reader.calls == 0
    np.testing.assert_array_equal(loaded.retention_times, simple_scan_file.retention_times)


def test_clear_memory_falls_back_to_raw_without_disk_layer(tmp_path, simple_scan_file):
    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')
    reader = CountingReader(simple_scan_file)
    cache = ScanFileCache(tmp_path / 'lcms', reader=reader)
    cache.get('Plate_1_A1.mzML')
    cache.clear_memory()
    cache.get('Plate_1_A1.mzML')
    assert reader.calls == 2


def test_missing_raw_file(tmp_path):
    cache = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache')
    with pytest.raises(MissingInputError):
        cache.get('Plate_9_Z9.mzML')
    with pytest.raises(MissingInputError):
        cache.get('')


def test_get_without_keeping_in_memory(tmp_path, simple_scan_file):
    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')
    reader = CountingReader(simple_scan_file)
    cache = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=reader)

    cache.get('Plate_1_A1.mzML', keep_in_memory=False)
    assert len(cache) == 0
    assert (tmp_path / 'cache' / 'Plate_1_A1.pkl').exists()

    # A copy already held in memory is still returned
    kept = cache.get('Plate_1_A1.mzML')
    assert cache.get('Plate_1_A1.mzML', keep_in_memory=False) is kept
    assert len(cache) == 1


def test_failed_write_leaves_no_partial_entry(tmp_path, simple_scan_file, monkeypatch):
    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(dataloading.pickle, 'dump', broken_dump)
    cache_dir = tmp_path / 'cache'
    with pytest.raises(OSError):
        ScanFileCache.write_cached(simple_scan_file, cache_dir / 'Plate_1_A1.pkl')
    assert list(cache_dir.iterdir()) == []


def test_concurrent_cold_get(tmp_path, simple_scan_file):
    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')

    class SlowReader(CountingReader):
        def __call__(self, path, filename):
            time.sleep(0.05)
            return super().__call__(path, filename)

    cache = ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=SlowReader(simple_scan_file))
    results = []

    def worker():
        results.append(cache.get('Plate_1_A1.mzML'))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert [p.name for p in (tmp_path / 'cache').iterdir()] == ['Plate_1_A1.pkl']
    loaded = ScanFileCache.read_cached(tmp_path / 'cache' / 'Plate_1_A1.pkl', 'Plate_1_A1.mzML')
    np.testing.assert_array_equal(loaded.retention_times, simple_scan_file.retention_times)


def test_stale_cache_version(tmp_path, simple_scan_file):
    cache_path = tmp_path / 'cache' / 'Plate_1_A1.pkl'
    cache_path.parent.mkdir()
    data = simple_scan_file.to_dict()
    data['version'] = 0
    with open(cache_path, 'wb') as f:
        pickle.dump(data, f)

    with pytest.raises(StaleScanCacheError):
        ScanFileCache.read_cached(cache_path, 'Plate_1_A1.mzML')

    _touch_raw(tmp_path / 'lcms', 'Plate_1_A1.mzML')
    reader = CountingReader(simple_scan_file)
    ScanFileCache(tmp_path / 'lcms', tmp_path / 'cache', reader=reader).get('Plate_1_A1.mzML')
    assert reader.calls == 1
    # The entry is rewritten with the current format
    assert ScanFileCache.read_cached(cache_path, 'Plate_1_A1.mzML').filename == 'Plate_1_A1.mzML'
