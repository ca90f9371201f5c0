"""Control well tables and scan file lookup for plate wells.

The control well table is a tab separated file with exactly these headers:

    WELL_TYPE  PLATE_BARCODE  WELL_ROW  WELL_COLUMN
    POS        12389          0         1

Rows with WELL_TYPE == 'POS' are positive wells; every other type is treated
as a negative control.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple
import fnmatch
import logging
import os
import threading

import pandas as pd

from ..errors import InputValidationError, MissingInputError

logger = logging.getLogger(__name__)

HEADER_WELL_TYPE = 'WELL_TYPE'
HEADER_WELL_ROW = 'WELL_ROW'
HEADER_WELL_COLUMN = 'WELL_COLUMN'
HEADER_PLATE_BARCODE = 'PLATE_BARCODE'
ALL_HEADERS = {HEADER_WELL_TYPE, HEADER_WELL_ROW, HEADER_WELL_COLUMN, HEADER_PLATE_BARCODE}

POSITIVE_WELL_TYPE = 'POS'


@dataclass(frozen=True)
class PlateWell:
    """A well on a plate, addressed by 0-based row and column."""
    plate_barcode: str
    row: int
    column: int
    well_type: str = POSITIVE_WELL_TYPE

    @property
    def is_positive(self) -> bool:
        return self.well_type == POSITIVE_WELL_TYPE

    @property
    def well_label(self) -> str:
        """Plate-style label: row 0, column 0 -> 'A1'."""
        return f"{_row_letters(self.row)}{self.column + 1}"

    @property
    def well_id(self) -> str:
        return f"{self.plate_barcode}_{self.well_label}"


def _row_letters(row: int) -> str:
    letters = ''
    row += 1
    while row > 0:
        row, rem = divmod(row - 1, 26)
        letters = chr(ord('A') + rem) + letters
    return letters


def load_control_wells(file_path: str) -> Tuple[List[PlateWell], List[PlateWell]]:
    """Read the control well table.

    Args:
        file_path: Path to the tab separated control well file

    Returns:
        (positive_wells, negative_wells) in file order

    Raises:
        MissingInputError: If the file does not exist
        InputValidationError: If the header set is not exactly the expected one
            or a coordinate is not an integer
    """
    if not os.path.isfile(file_path):
        raise MissingInputError(f"Control well file not found: {file_path}")

    try:
        df = pd.read_csv(file_path, sep='\t', dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise InputValidationError(f"Could not parse control well file {file_path}: {e}") from None
    df.columns = [c.strip() for c in df.columns]
    if set(df.columns) != ALL_HEADERS or len(df.columns) != len(ALL_HEADERS):
        raise InputValidationError(
            f"Invalid header type in {file_path}: expected {sorted(ALL_HEADERS)}, got {list(df.columns)}")

    positives, negatives = [], []
    for i, row in df.iterrows():
        try:
            well = PlateWell(
                plate_barcode=row[HEADER_PLATE_BARCODE].strip(),
                row=int(row[HEADER_WELL_ROW]),
                column=int(row[HEADER_WELL_COLUMN]),
                well_type=row[HEADER_WELL_TYPE].strip(),
            )
        except ValueError:
            raise InputValidationError(
                f"Non-integer well coordinates on line {i + 2} of {file_path}") from None
        if well.row < 0 or well.column < 0:
            raise InputValidationError(f"Negative well coordinates on line {i + 2} of {file_path}")
        (positives if well.is_positive else negatives).append(well)

    logger.info("Number of positive wells is: %d", len(positives))
    logger.info("Number of negative wells is: %d", len(negatives))
    return positives, negatives


class ScanFileResolver:
    """Finds the scan file of a well inside the LCMS data directory.

    File names are matched against ``pattern`` formatted with the well's
    ``plate_barcode``, ``well_label``, ``row`` and ``column``. Directory
    listings are cached per plate barcode.
    """

    def __init__(self, data_dir: str, pattern: str = '{plate_barcode}_{well_label}[._]*mzML'):
        self.data_dir = Path(data_dir)
        self.pattern = pattern
        self._plate_cache: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def _plate_files(self, plate_barcode: str) -> List[str]:
        with self._lock:
            files = self._plate_cache.get(plate_barcode)
            if files is None:
                if not self.data_dir.is_dir():
                    raise MissingInputError(f"LCMS data directory not found: {self.data_dir}")
                files = sorted(p.name for p in self.data_dir.iterdir()
                               if p.is_file() and plate_barcode in p.name)
                self._plate_cache[plate_barcode] = files
        return files

    def resolve(self, well: PlateWell) -> str:
        """Scan file name (relative to the data directory) for a well.

        Raises:
            MissingInputError: If no file matches the well
        """
        glob = self.pattern.format(plate_barcode=well.plate_barcode, well_label=well.well_label,
                                   row=well.row, column=well.column)
        matches = fnmatch.filter(self._plate_files(well.plate_barcode), glob)
        if not matches:
            raise MissingInputError(
                f"No scan file matching '{glob}' for well {well.well_id} in {self.data_dir}")
        if len(matches) > 1:
            logger.warning("Found %d scan files for well %s, using %s.", len(matches), well.well_id, matches[0])
        return matches[0]
