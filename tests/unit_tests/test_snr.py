"""Tests for signal-to-noise scoring against negative controls."""

import numpy as np
import pytest

from lcmsnr.config import IonDetectionConfig
from lcmsnr.errors import DegenerateNoiseBaselineError, NoNegativeControlsError, NoPeaksInWindowError
from lcmsnr.peaks import SNRComputer, noise_baseline
from lcmsnr.scans import PeakTrace


def _trace(rts, intensities, mz=200.0):
    rts = np.asarray(rts, dtype=np.float64)
    return PeakTrace('trace.mzML', rts, np.full(len(rts), mz), np.asarray(intensities, dtype=np.float64))


def test_snr_against_max_baseline():
    positive = _trace([10.0, 20.0, 30.0], [1000.0, 50000.0, 2000.0])
    negatives = [_trace([10.0, 20.0], [100.0, 500.0]), _trace([15.0], [200.0])]

    result = SNRComputer().compute(positive, negatives, mass_charge=200.0)
    assert result.snr == pytest.approx(100.0)
    assert result.noise_baseline == 500.0
    assert result.best_peak.retention_time == 20.0
    assert result.best_peak.intensity == 50000.0
    assert result.mass_charge == 200.0


def test_snr_against_mean_baseline():
    positive = _trace([10.0], [3000.0])
    negatives = [_trace([10.0, 20.0], [100.0, 200.0]), _trace([15.0], [300.0])]
    result = SNRComputer(IonDetectionConfig(noise_statistic='mean')).compute(positive, negatives)
    assert result.snr == pytest.approx(15.0)


def test_empty_negative_traces_are_skipped_when_pooling():
    positive = _trace([10.0], [3000.0])
    negatives = [_trace([], []), _trace([15.0], [300.0])]
    assert SNRComputer().compute(positive, negatives).snr == pytest.approx(10.0)


def test_no_negative_controls():
    with pytest.raises(NoNegativeControlsError):
        SNRComputer().compute(_trace([10.0], [3000.0]), [])


def test_degenerate_baseline():
    positive = _trace([10.0], [3000.0])
    with pytest.raises(DegenerateNoiseBaselineError):
        SNRComputer().compute(positive, [_trace([], [])])
    with pytest.raises(DegenerateNoiseBaselineError):
        SNRComputer().compute(positive, [_trace([10.0], [0.0])])


def test_empty_positive_trace():
    with pytest.raises(NoPeaksInWindowError):
        SNRComputer().compute(_trace([], []), [_trace([10.0], [100.0])])


def test_with_plot_keeps_score():
    result = SNRComputer().compute(_trace([10.0], [3000.0]), [_trace([10.0], [100.0])])
    plotted = result.with_plot('plots/a.png')
    assert plotted.plot_path == 'plots/a.png'
    assert plotted.snr == result.snr


@pytest.mark.parametrize("statistic,expected", [
    ('max', 40.0),
    ('mean', 25.0),
    ('median', 25.0),
])
def test_noise_baseline_statistics(statistic, expected):
    assert noise_baseline(np.array([10.0, 20.0, 30.0, 40.0]), statistic) == pytest.approx(expected)


def test_noise_baseline_percentile():
    values = np.arange(101, dtype=np.float64)
    assert noise_baseline(values, 'percentile', 90.0) == pytest.approx(90.0)


def test_noise_baseline_empty():
    assert noise_baseline(np.array([]), 'max') == 0.0


def test_unknown_noise_statistic_rejected_by_config():
    with pytest.raises(ValueError):
        IonDetectionConfig(noise_statistic='mode')
