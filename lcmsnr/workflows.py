#!/usr/bin/env python3
"""
Command line interface for lcmsnr.

Usage examples:
    # Score predicted products in positive wells against negative controls
    lcmsnr ion-detection \\
        --data-dir /data/lcms \\
        --prediction-corpus products.txt \\
        --input-positive-negative-control-wells wells.tsv \\
        --output-prefix results/experiment \\
        --plotting-dir results/plots \\
        --include-ions M+H,M+Na \\
        --min-threshold 10000

    # Explore the peaks of one raw scan file around a target mass
    lcmsnr detect-peaks --data-dir /data/lcms --scan-file Plate_12389_A1.mzML \\
        --mz 181.0707 --halfwidth 0.01 --rt-min 0 --rt-max 250

    # With custom config
    lcmsnr --config my_config.yaml ion-detection ...
"""

from dataclasses import replace
from pathlib import Path
import argparse
import logging
import os
import sys
import time

from tqdm import tqdm

from .analysis import IonDetectionAnalysis, load_control_wells
from .config import IonDetectionConfig, PeakExplorationConfig
from .errors import InputValidationError, LCMSAnalysisError, MissingDataError
from .ions import IonSearchSpace, read_prediction_corpus
from .peaks import PeakDetector
from .scans import MzWindow, ScanFileCache, ScanWindowExtractor, TimeWindow

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = True):
    """Set up basic logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def parse_ion_list(value: str):
    """Split a comma separated ion list, dropping empty names."""
    return [ion.strip() for ion in value.split(',') if ion.strip()]


class TqdmProgress:
    """Progress callback drawing a tqdm bar."""

    def __init__(self, desc: str = 'Scoring wells'):
        self.desc = desc
        self.bar = None

    def __call__(self, completed: int, total: int, message: str):
        if self.bar is None:
            self.bar = tqdm(total=total, desc=self.desc, unit='file')
        self.bar.set_postfix_str(message)
        self.bar.update(max(0, completed - self.bar.n))

    def close(self):
        if self.bar is not None:
            self.bar.close()


def _override(config, **kwargs):
    """Copy a config, replacing only the values actually given on the command line."""
    return replace(config, **{k: v for k, v in kwargs.items() if v is not None})


def ion_detection_command(args) -> bool:
    """Run the batch ion detection analysis."""
    print("=" * 60)
    print("LCMS Ion Detection Analysis")
    print("=" * 60)

    start_time = time.time()
    if not os.path.isdir(args.data_dir):
        print(f"ERROR: File at {os.path.abspath(args.data_dir)} is not a directory")
        return False

    progress = TqdmProgress()
    try:
        config = IonDetectionConfig.from_file(args.config) if args.config else IonDetectionConfig()
        config = _override(
            config,
            lcms_data_dir=args.data_dir,
            scan_cache_dir=args.cache_dir,
            plotting_dir=args.plotting_dir,
            include_ions=parse_ion_list(args.include_ions) if args.include_ions else None,
            min_intensity_threshold=args.min_threshold,
            polarity=args.polarity,
            n_jobs=args.n_jobs,
        )
        print(f"Including ions in search: {', '.join(config.include_ions)}")

        search_space = IonSearchSpace.build(read_prediction_corpus(args.prediction_corpus), config)
        print(f"The number of mass charges are: {len(search_space)}")
        if search_space.skipped:
            print(f"Skipped {len(search_space.skipped)} malformed chemical structures")

        positives, negatives = load_control_wells(args.input_positive_negative_control_wells)
        print(f"Number of positive wells is: {len(positives)}")
        print(f"Number of negative wells is: {len(negatives)}")

        analysis = IonDetectionAnalysis(config, progress_callback=progress)
        run = analysis.run(positives, negatives, search_space)
        progress.close()

        out_dir = os.path.dirname(args.output_prefix)
        if out_dir:
            Path(out_dir).mkdir(parents=True, exist_ok=True)
        paths = analysis.write_results(run, args.output_prefix)

    except LCMSAnalysisError as e:
        progress.close()
        print(f"\nERROR in ion detection: {e}")
        if args.verbose:
            logger.exception("Ion detection failed")
        return False

    elapsed = time.time() - start_time
    print("\n" + "=" * 60)
    print("ION DETECTION COMPLETE")
    print("=" * 60)
    print(f"Time elapsed: {elapsed:.1f} seconds")
    for well_analysis in run.wells:
        print(f"Well {well_analysis.well.well_id}: {well_analysis.n_valid} valid of "
              f"{len(well_analysis.results)} masses ({len(well_analysis.failures)} not scored)")
    if run.consensus is not None:
        print(f"Consensus: {sum(1 for r in run.consensus if r.is_valid)} masses valid in every replicate")
    for path in paths:
        print(f"Wrote {path}")
    return True


def detect_peaks_command(args) -> bool:
    """Detect up to two peaks in one scan file around a target mass."""
    try:
        config = PeakExplorationConfig.from_file(args.config) if args.config else PeakExplorationConfig()
        config = _override(
            config,
            lcms_data_dir=args.data_dir,
            scan_cache_dir=args.cache_dir,
            intensity_threshold=args.threshold,
            ss_ratio_threshold=args.ss_ratio,
        )
        time_window = TimeWindow.from_range((
            args.rt_min if args.rt_min is not None else config.min_rt,
            args.rt_max if args.rt_max is not None else config.max_rt,
        ))
        mz_window = MzWindow(args.mz, args.halfwidth if args.halfwidth is not None else config.mz_band_halfwidth)

        scan_file = ScanFileCache.from_config(config).get(args.scan_file)
        trace = ScanWindowExtractor().extract(scan_file, mz_window, time_window)
        peaks = PeakDetector.for_exploration(config).detect(trace)
    except (InputValidationError, MissingDataError) as e:
        # Shown inline: these are expected when exploring parameters
        print(f"Cannot detect peaks: {e}")
        return False
    except LCMSAnalysisError as e:
        print(f"ERROR: {e}")
        return False

    print(f"{len(trace)} points in window, {len(peaks)} peak(s) detected:")
    for peak in peaks:
        print(f"  m/z {peak.mz:.5f} - rt {peak.retention_time:.2f} s - intensity {peak.intensity:.0f}")
    return True


def arg_parser(parser=None):
    if parser is None:
        parser = argparse.ArgumentParser(
            description="LCMS signal-to-noise ion detection",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=__doc__
        )

    # Global arguments
    parser.add_argument('--config', '-c', help='YAML configuration file path')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    detection = subparsers.add_parser('ion-detection', help='Score predicted products against control wells')
    detection.add_argument('-d', '--data-dir', required=True, help='The directory where LCMS scan files live')
    detection.add_argument('-sc', '--prediction-corpus', required=True,
                           help='File with one InChI or SMILES per line')
    detection.add_argument('-o', '--output-prefix', required=True, help='A prefix for the output JSON files')
    detection.add_argument('-p', '--plotting-dir', help='Directory for diagnostic plots')
    detection.add_argument('-i', '--include-ions',
                           help='A comma-separated list of ions to include in the search (default: M+H)')
    detection.add_argument('-f', '--min-threshold', type=float, required=True, help='The min intensity threshold')
    detection.add_argument('-t', '--input-positive-negative-control-wells', required=True,
                           help='A tsv file containing positive and negative wells')
    detection.add_argument('--cache-dir', help='Directory for parsed scan file cache')
    detection.add_argument('--polarity', choices=['positive', 'negative'], help='Ion polarity mode')
    detection.add_argument('--n-jobs', type=int, help='Positive wells processed in parallel')

    peaks = subparsers.add_parser('detect-peaks', help='Explore peaks of one scan file around a target mass')
    peaks.add_argument('--data-dir', help='The directory where LCMS scan files live')
    peaks.add_argument('--cache-dir', help='Directory for parsed scan file cache')
    peaks.add_argument('--scan-file', required=True, help='Scan file name, relative to the data directory')
    peaks.add_argument('--mz', type=float, required=True, help='Target m/z value')
    peaks.add_argument('--halfwidth', type=float, help='m/z band halfwidth')
    peaks.add_argument('--rt-min', type=float, help='Minimum retention time (sec)')
    peaks.add_argument('--rt-max', type=float, help='Maximum retention time (sec)')
    peaks.add_argument('--threshold', type=float, help='Clustering intensity threshold')
    peaks.add_argument('--ss-ratio', type=float, help='Cluster separation ratio threshold')

    return parser


def main(argv=None) -> int:
    """Main command line interface."""
    parser = arg_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command == 'ion-detection':
        success = ion_detection_command(args)
    elif args.command == 'detect-peaks':
        success = detect_peaks_command(args)
    else:
        parser.print_help()
        return 1

    return 0 if success else 1


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
