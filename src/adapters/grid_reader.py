"""Spreadsheet reader adapter - turns an uploaded roster file into a RawGrid.

Uses pandas (openpyxl engine for workbooks) and reads every sheet cell as-is:
no header inference, no type guessing. Interpretation is the parser's job.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

import pandas as pd

from src.core.grid import Cell, normalize_grid

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
CSV_EXTENSIONS = (".csv",)
SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS + CSV_EXTENSIONS


class GridReadError(Exception):
    """Raised when a roster file cannot be read into a grid."""


def is_supported(filename: str) -> bool:
    return Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS


def _read_excel(path: Path) -> pd.DataFrame:
    # First sheet only; rosters keep one month per sheet
    return pd.read_excel(path, sheet_name=0, header=None, dtype=object, engine="openpyxl")


def _read_csv(path: Path) -> pd.DataFrame:
    # Title rows are narrower than the table, so size the frame to the widest row
    with open(path, newline="", encoding="utf-8-sig") as fh:
        width = max((len(row) for row in csv.reader(fh)), default=0)
    if width == 0:
        return pd.DataFrame()
    return pd.read_csv(
        path,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
        encoding="utf-8-sig",
    )


def read_grid(path: str | Path, display_name: str | None = None) -> list[list[Cell]]:
    """Read a .xlsx/.xlsm/.csv roster into rows of cells.

    display_name is used in messages instead of the path name (uploads are
    read from temp files).

    Raises:
        GridReadError: unsupported extension, or the file could not be read.
    """
    path = Path(path)
    name = display_name or path.name
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise GridReadError(
            f"Unsupported file type '{suffix or name}'. "
            f"Please upload one of: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    try:
        df = _read_excel(path) if suffix in EXCEL_EXTENSIONS else _read_csv(path)
    except Exception as e:
        logger.error("Failed to read roster file %s: %s", name, e)
        raise GridReadError(f"Could not read {name}: {e}") from e

    grid = normalize_grid(df.itertuples(index=False, name=None))
    logger.info("Read %d rows from %s", len(grid), name)
    return grid
