"""lcmsnr analysis module: batch ion detection over plate experiments.

Positive wells are scored mass by mass against pooled negative control
wells, classified with fixed thresholds, written as JSON reports and,
for replicate positive wells, reduced into a consensus report.
"""

from .core import IonDetectionAnalysis, IonDetectionRun, WellAnalysis
from .classification import ValidityClassifier, build_consensus, classify
from .plates import PlateWell, ScanFileResolver, load_control_wells
from .results import HitOrMiss, ResultForMZ, read_results_json, write_results_json, results_to_dataframe
from .visualization import TracePlotter

__all__ = [
    'IonDetectionAnalysis',
    'IonDetectionRun',
    'WellAnalysis',
    'ValidityClassifier',
    'build_consensus',
    'classify',
    'PlateWell',
    'ScanFileResolver',
    'load_control_wells',
    'HitOrMiss',
    'ResultForMZ',
    'read_results_json',
    'write_results_json',
    'results_to_dataframe',
    'TracePlotter',
]
