"""Retention time and m/z windows used to scope scan data.

Both windows are closed intervals for validation purposes, but membership
tests are strict: a point sitting exactly on a bound is outside the window.
"""

from dataclasses import dataclass
from numbers import Real
from typing import Sequence
import math

import numpy as np

from ..errors import InputValidationError

MIN_TARGET_MZ = 50.0
MAX_TARGET_MZ = 950.0
MIN_MZ_HALFWIDTH = 0.00001
# Wider bands pull in too many points per query
MAX_MZ_HALFWIDTH = 1.0


@dataclass(frozen=True)
class TimeWindow:
    """Retention time interval [min_rt, max_rt] in seconds."""
    min_rt: float
    max_rt: float

    def __post_init__(self):
        if not (math.isfinite(self.min_rt) and math.isfinite(self.max_rt)):
            raise InputValidationError(
                f"Retention time range must be finite, got [{self.min_rt}, {self.max_rt}]")
        if self.min_rt >= self.max_rt:
            raise InputValidationError(
                f"Retention time range minimum must be below its maximum, got [{self.min_rt}, {self.max_rt}]")

    @classmethod
    def from_range(cls, retention_time_range: Sequence[float]) -> 'TimeWindow':
        """Build a window from a (min, max) pair, validating its shape first."""
        try:
            size = len(retention_time_range)
        except TypeError:
            raise InputValidationError("Retention time range is not a tuple. Please fix!") from None
        if size != 2:
            raise InputValidationError("Retention time range is not a tuple. Please fix!")
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in retention_time_range):
            raise InputValidationError("Retention time range was not numeric. Please fix!")
        return cls(float(retention_time_range[0]), float(retention_time_range[1]))

    def contains(self, retention_times: np.ndarray) -> np.ndarray:
        return (retention_times > self.min_rt) & (retention_times < self.max_rt)

    def as_tuple(self):
        return (self.min_rt, self.max_rt)


@dataclass(frozen=True)
class MzWindow:
    """m/z band [target - halfwidth, target + halfwidth] around a target mass."""
    target_mz: float
    halfwidth: float

    def __post_init__(self):
        if not math.isfinite(self.target_mz) or not (MIN_TARGET_MZ <= self.target_mz <= MAX_TARGET_MZ):
            raise InputValidationError(
                f"Target mz value should be between {MIN_TARGET_MZ:g} and {MAX_TARGET_MZ:g}, got {self.target_mz}")
        if not math.isfinite(self.halfwidth) or self.halfwidth < MIN_MZ_HALFWIDTH:
            raise InputValidationError(
                f"M/Z band halfwidth should be >= {MIN_MZ_HALFWIDTH}, got {self.halfwidth}")
        if self.halfwidth > MAX_MZ_HALFWIDTH:
            raise InputValidationError(
                f"M/Z band halfwidth should be <= {MAX_MZ_HALFWIDTH:g}, got {self.halfwidth}")

    @property
    def min_mz(self) -> float:
        return self.target_mz - self.halfwidth

    @property
    def max_mz(self) -> float:
        return self.target_mz + self.halfwidth

    def contains(self, mzs: np.ndarray) -> np.ndarray:
        return (mzs > self.min_mz) & (mzs < self.max_mz)

    def as_tuple(self):
        return (self.min_mz, self.max_mz)


def is_searchable_mz(mz: float) -> bool:
    """Whether a target mass can be used to build an MzWindow."""
    return MIN_TARGET_MZ <= mz <= MAX_TARGET_MZ
