"""Exception hierarchy for lcmsnr.

Each pipeline stage raises a distinct class so batch drivers can decide
whether to skip the affected item or abort the run.
"""


class LCMSAnalysisError(Exception):
    """Base exception for all lcmsnr failures."""


class InputValidationError(LCMSAnalysisError, ValueError):
    """Raised for malformed parameters (m/z range, window width, headers...)."""


class MissingDataError(LCMSAnalysisError):
    """Raised when a pipeline stage has nothing to work on."""


class EmptyScanFileError(MissingDataError):
    """Raised when a loaded scan file holds no MS1 scans."""


class NoScansInRangeError(MissingDataError):
    """Raised when no MS1 scan falls inside the requested retention time range."""


class NoPeaksInWindowError(MissingDataError):
    """Raised when no data point falls inside the requested m/z window."""


class NoPeakAboveThresholdError(MissingDataError):
    """Raised when no data point exceeds the clustering intensity threshold."""


class NoNegativeControlsError(MissingDataError):
    """Raised when an SNR is requested without any negative control trace."""


class DegenerateNoiseBaselineError(MissingDataError):
    """Raised when the pooled negative control baseline is too small to divide by."""


class MalformedStructureError(LCMSAnalysisError, ValueError):
    """Raised when a chemical structure cannot be turned into a mass.

    Attributes:
        structure: The offending InChI or SMILES string.
    """

    def __init__(self, structure: str, message: str):
        self.structure = structure
        self.message = message
        super().__init__(f"{message}: {structure}")


class ScanCacheMismatchError(LCMSAnalysisError):
    """Raised when a cached scan file was saved under a different filename.

    Attributes:
        cache_path: Path of the cache entry that was read.
        expected: Filename that was requested.
        found: Filename stored in the cache entry.
    """

    def __init__(self, cache_path: str, expected: str, found: str):
        self.cache_path = cache_path
        self.expected = expected
        self.found = found
        super().__init__(
            f"The cached scan file ({cache_path}) was found with an incorrect "
            f"filename ({found}), expected {expected}")


class MissingInputError(LCMSAnalysisError, FileNotFoundError):
    """Raised when a required directory or file does not exist."""


class ConsensusMismatchError(LCMSAnalysisError, ValueError):
    """Raised when replicate wells report different sets of masses."""


class StaleScanCacheError(LCMSAnalysisError):
    """Raised when a cache entry was written with another cache format version."""

    def __init__(self, cache_path: str, version):
        self.cache_path = cache_path
        self.version = version
        super().__init__(f"The cached scan file ({cache_path}) has format version {version}")
