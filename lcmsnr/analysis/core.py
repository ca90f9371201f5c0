"""
Core ion detection analysis: score every searched mass in every positive well
against the pooled negative control wells.

Usage Examples:
from lcmsnr.config import IonDetectionConfig
from lcmsnr.analysis import IonDetectionAnalysis, load_control_wells
from lcmsnr.ions import IonSearchSpace, read_prediction_corpus

config = IonDetectionConfig(lcms_data_dir='/data/lcms', min_intensity_threshold=10000)
positives, negatives = load_control_wells('wells.tsv')
search_space = IonSearchSpace.build(read_prediction_corpus('products.txt'), config)

analysis = IonDetectionAnalysis(config)
run = analysis.run(positives, negatives, search_space)
analysis.write_results(run, 'output/experiment')

"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging
import threading

from joblib import Parallel, delayed

from .classification import ValidityClassifier, build_consensus
from .plates import PlateWell, ScanFileResolver
from .results import HitOrMiss, ResultForMZ, write_results_json
from .visualization import TracePlotter
from ..config.detection_config import IonDetectionConfig
from ..errors import MissingDataError, NoNegativeControlsError
from ..ions.enumeration import IonSearchSpace
from ..peaks.snr import SNRComputer, SNRResult
from ..scans.dataloading import ScanFileCache
from ..scans.extraction import PeakTrace, ScanWindowExtractor
from ..scans.windows import MzWindow, TimeWindow

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class WellAnalysis:
    """Per-mass records of one positive well plus the masses that could not be scored."""
    well: PlateWell
    results: List[ResultForMZ]
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def n_valid(self) -> int:
        return sum(1 for r in self.results if r.is_valid)


@dataclass
class IonDetectionRun:
    """All positive well analyses of an experiment and, for replicates, their consensus."""
    wells: List[WellAnalysis]
    consensus: Optional[List[ResultForMZ]] = None

    @property
    def n_failures(self) -> int:
        return sum(len(w.failures) for w in self.wells)


class IonDetectionAnalysis:
    """Orchestrates trace extraction, SNR scoring, classification and reporting.

    Owns the read-through caches used while processing an experiment: parsed
    scan files (by filename), well scan file lookups (by plate barcode) and the
    negative control traces, which are extracted once and reused for every
    positive well.
    """

    def __init__(self,
                 config: Optional[IonDetectionConfig] = None,
                 scan_cache: Optional[ScanFileCache] = None,
                 resolver: Optional[ScanFileResolver] = None,
                 plotter: Optional[TracePlotter] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.config = config or IonDetectionConfig()
        self.scan_cache = scan_cache if scan_cache is not None else ScanFileCache.from_config(self.config)
        self.resolver = resolver or ScanFileResolver(self.config.lcms_data_dir, self.config.scan_file_pattern)
        if plotter is None and self.config.plotting_dir:
            plotter = TracePlotter(self.config.plotting_dir)
        self.plotter = plotter
        self.progress_callback = progress_callback

        self.extractor = ScanWindowExtractor()
        self.snr_computer = SNRComputer(self.config)
        self.classifier = ValidityClassifier.from_config(self.config)

        self._trace_cache: Dict[str, Dict[str, PeakTrace]] = {}
        self._cache_lock = threading.Lock()
        self._progress_lock = threading.Lock()
        self._completed = 0
        self._total = 0

    def _report_progress(self, message: str):
        with self._progress_lock:
            self._completed += 1
            completed, total = self._completed, self._total
            # Called under the lock so callbacks see counts in increasing order
            if self.progress_callback is not None:
                self.progress_callback(completed, total, message)
            else:
                logger.debug("Progress: %d/%d %s", completed, total, message)

    def time_window(self) -> TimeWindow:
        return TimeWindow(self.config.min_rt, self.config.max_rt)

    def mz_windows(self, search_space: IonSearchSpace) -> Dict[str, MzWindow]:
        return {label: MzWindow(mz, self.config.mz_band_halfwidth) for label, mz in search_space.search_mzs}

    def read_well_traces(self, well: PlateWell, mz_windows: Dict[str, MzWindow],
                         use_cache: bool = False) -> Dict[str, PeakTrace]:
        """Extract the trace of every searched mass for one well.

        Raises:
            MissingInputError: If the well's scan file cannot be found
            MissingDataError: If the scan file has no MS1 scans in the time window
        """
        scan_file_name = self.resolver.resolve(well)
        if use_cache:
            with self._cache_lock:
                cached = self._trace_cache.get(scan_file_name)
            if cached is not None:
                return cached

        scan_file = self.scan_cache.get(scan_file_name, keep_in_memory=False)
        traces = self.extractor.extract_traces(scan_file, mz_windows, self.time_window())
        if use_cache:
            with self._cache_lock:
                traces = self._trace_cache.setdefault(scan_file_name, traces)
        return traces

    def _negative_traces(self, negative_wells: Sequence[PlateWell],
                         mz_windows: Dict[str, MzWindow]) -> List[Tuple[PlateWell, Optional[Dict[str, PeakTrace]]]]:
        negatives = []
        for well in negative_wells:
            try:
                traces = self.read_well_traces(well, mz_windows, use_cache=True)
            except MissingDataError as e:
                logger.warning("Negative control well %s has no usable data: %s", well.well_id, e)
                traces = None
            negatives.append((well, traces))
            self._report_progress(f"negative well {well.well_id}")
        return negatives

    def score_well(self,
                   positive_well: PlateWell,
                   negative_wells: Sequence[PlateWell],
                   search_space: IonSearchSpace) -> WellAnalysis:
        """Score every searched mass of one positive well.

        Masses that cannot be scored (no data in the positive window, degenerate
        noise baseline...) are logged, listed in ``failures`` and reported as
        invalid records, so that every well reports the same set of masses.

        Args:
            positive_well: Positive well to score
            negative_wells: Negative control wells pooled into the noise baseline
            search_space: Searched masses and their chemicals

        Returns:
            WellAnalysis with one ResultForMZ per searched mass
        """
        logger.info("Reading scan data for positive well %s", positive_well.well_id)
        mz_windows = self.mz_windows(search_space)

        well_failure = None
        try:
            positive_traces = self.read_well_traces(positive_well, mz_windows)
        except MissingDataError as e:
            logger.warning("Positive well %s has no usable data: %s", positive_well.well_id, e)
            positive_traces, well_failure = None, str(e)
        self._report_progress(f"positive well {positive_well.well_id}")

        negatives = self._negative_traces(negative_wells, mz_windows)
        logger.info("The number of usable negative controls is %d",
                    sum(1 for _, t in negatives if t is not None))

        results, failures = [], {}
        for label, mass_charge in search_space.search_mzs:
            snr_result: Optional[SNRResult] = None
            plot_path = None
            if positive_traces is None:
                failures[label] = well_failure
            else:
                positive_trace = positive_traces[label]
                negative_traces = [traces[label] for _, traces in negatives if traces is not None]
                try:
                    snr_result = self.snr_computer.compute(positive_trace, negative_traces, mass_charge)
                except MissingDataError as e:
                    failures[label] = str(e)
                    logger.debug("Could not score %s (%.5f) in well %s: %s",
                                 label, mass_charge, positive_well.well_id, e)
                if self.plotter is not None:
                    plot_path = self.plotter.plot_positive_and_negative_controls(
                        label, mass_charge, (positive_well, positive_trace),
                        [(well, traces[label] if traces is not None else None) for well, traces in negatives])
                    if snr_result is not None:
                        snr_result = snr_result.with_plot(plot_path)

            results.append(self.build_result(mass_charge, snr_result, search_space, plot_path))

        if failures:
            logger.warning("%d of %d masses could not be scored for well %s.",
                           len(failures), len(search_space), positive_well.well_id)
        return WellAnalysis(well=positive_well, results=results, failures=failures)

    def build_result(self, mass_charge: float, snr_result: Optional[SNRResult],
                     search_space: IonSearchSpace, plot_path: Optional[str] = None) -> ResultForMZ:
        """Classify one scored mass and attach every (chemical, ion) pair mapping to it."""
        result = ResultForMZ(mass_charge, is_valid=self.classifier.classify(snr_result))
        snr = time = intensity = None
        if snr_result is not None:
            snr = snr_result.snr
            time = snr_result.best_peak.retention_time
            intensity = snr_result.best_peak.intensity
        for pair in search_space.chemicals_for(mass_charge):
            result.add_molecule(HitOrMiss(pair.chemical, pair.ion, snr, time, intensity, plot_path))
        return result

    def run(self,
            positive_wells: Sequence[PlateWell],
            negative_wells: Sequence[PlateWell],
            search_space: IonSearchSpace) -> IonDetectionRun:
        """Score every positive well, then build the consensus across replicates.

        Positive wells are processed in parallel when ``config.n_jobs`` > 1; the
        consensus is computed only once every well has finished.

        Raises:
            NoNegativeControlsError: If no negative control well is given
        """
        if not negative_wells:
            raise NoNegativeControlsError("At least one negative control well is required to compute SNR")

        with self._progress_lock:
            self._completed = 0
            self._total = len(positive_wells) * (1 + len(negative_wells))
        with self._cache_lock:
            self._trace_cache.clear()

        if self.config.n_jobs == 1 or len(positive_wells) <= 1:
            wells = [self.score_well(w, negative_wells, search_space) for w in positive_wells]
        else:
            wells = Parallel(n_jobs=self.config.n_jobs, prefer='threads')(
                delayed(self.score_well)(w, negative_wells, search_space) for w in positive_wells)

        consensus = None
        if len(wells) > 1:
            consensus = build_consensus([w.results for w in wells])
        return IonDetectionRun(wells=list(wells), consensus=consensus)

    def write_results(self, run: IonDetectionRun, output_prefix: str) -> List[str]:
        """Write one JSON report per positive well and the consensus report, if any."""
        paths = []
        for well_analysis in run.wells:
            out_file = f"{output_prefix}_{well_analysis.well.well_id}.json"
            paths.append(write_results_json(well_analysis.results, out_file))
        if run.consensus is not None:
            paths.append(write_results_json(run.consensus, f"{output_prefix}_post_process.json"))
        return paths
