"""Accept/reject decisions for detected peaks and cross-replicate consensus."""

from typing import Dict, List, Optional, Sequence

from .results import ResultForMZ
from ..config.detection_config import IonDetectionConfig
from ..errors import ConsensusMismatchError
from ..peaks.snr import SNRResult


class ValidityClassifier:
    """Applies strict intensity, retention time and SNR thresholds.

    A peak sitting exactly on a threshold is invalid.
    """

    def __init__(self,
                 intensity_threshold: float,
                 time_threshold: float = 15.0,
                 snr_threshold: float = 1000.0):
        self.intensity_threshold = intensity_threshold
        self.time_threshold = time_threshold
        self.snr_threshold = snr_threshold

    @classmethod
    def from_config(cls, config: IonDetectionConfig) -> 'ValidityClassifier':
        return cls(config.min_intensity_threshold, config.min_time_threshold, config.min_snr_threshold)

    def is_valid(self, intensity: Optional[float], time: Optional[float], snr: Optional[float]) -> bool:
        if intensity is None or time is None or snr is None:
            return False
        return (intensity > self.intensity_threshold
                and time > self.time_threshold
                and snr > self.snr_threshold)

    def classify(self, snr_result: Optional[SNRResult]) -> bool:
        if snr_result is None:
            return False
        peak = snr_result.best_peak
        return self.is_valid(peak.intensity, peak.retention_time, snr_result.snr)


def classify(snr_result: Optional[SNRResult],
             intensity_threshold: float,
             time_threshold: float = 15.0,
             snr_threshold: float = 1000.0) -> bool:
    """Convenience function for a one-off validity decision."""
    return ValidityClassifier(intensity_threshold, time_threshold, snr_threshold).classify(snr_result)


def build_consensus(replicate_results: Sequence[List[ResultForMZ]]) -> List[ResultForMZ]:
    """Combine replicate wells into one record per mass.

    A mass is valid only if it is valid in every replicate; its molecule list
    is the union (without duplicates) of every replicate's molecules.
    Records are matched by mass value, not by list position.

    Args:
        replicate_results: One list of records per positive well

    Returns:
        Consensus records, ordered like the first replicate

    Raises:
        ConsensusMismatchError: If replicates disagree on the set of masses
            or a replicate reports the same mass twice
    """
    if not replicate_results:
        return []

    keyed: List[Dict[float, ResultForMZ]] = []
    for i, results in enumerate(replicate_results):
        by_mz = {r.mz: r for r in results}
        if len(by_mz) != len(results):
            raise ConsensusMismatchError(f"Replicate {i} reports the same mass more than once")
        keyed.append(by_mz)

    reference = set(keyed[0])
    for i, by_mz in enumerate(keyed[1:], start=1):
        if set(by_mz) != reference:
            missing = sorted(reference - set(by_mz))
            extra = sorted(set(by_mz) - reference)
            raise ConsensusMismatchError(
                f"Replicate {i} does not match replicate 0: missing masses {missing}, extra masses {extra}")

    consensus = []
    for rep in replicate_results[0]:
        combined = ResultForMZ(rep.mz)
        are_all_valid = True
        for by_mz in keyed:
            result = by_mz[rep.mz]
            if not result.is_valid:
                are_all_valid = False
            combined.add_molecules(result.molecules)
        combined.is_valid = are_all_valid
        consensus.append(combined)
    return consensus
