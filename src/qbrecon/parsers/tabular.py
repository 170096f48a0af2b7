"""Reading delimited text and spreadsheet exports into ordered rows."""

import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("date", "amount", "total", "transaction type", "type", "account", "name")
HEADER_SCAN_ROWS = 10
HEADER_MIN_MATCHES = 2

SPREADSHEET_EXTENSIONS = (".xls", ".xlsx")

_SUFFIXED_HEADER = re.compile(r"^(?P<base>.+)_\d+$")


class TableReadError(ValueError):
    """Raw bytes could not be read as a table."""


@dataclass(frozen=True)
class Row:
    """A data row as ordered (header, value) pairs.

    Repeated headers are kept side by side in file order, so a column
    that QuickBooks emits twice can be read as either occurrence.
    """

    cells: tuple[tuple[str, str], ...]
    number: int

    def first(self, names: Iterable[str]) -> Optional[str]:
        """Value of the first matching column name that has a value.

        Names are tried in order; each is compared case-insensitively.
        """
        for name in names:
            wanted = name.lower()
            for header, value in self.cells:
                if header.lower() == wanted and value:
                    return value
        return None

    def last(self, names: Iterable[str]) -> Optional[str]:
        """Value of the right-most matching column that has a value.

        Headers carrying a numeric ``_N`` suffix (as added by tools that
        de-duplicate column names) also match.
        """
        wanted = {name.lower() for name in names}
        found = None
        for header, value in self.cells:
            if not value:
                continue
            lowered = header.lower()
            suffixed = _SUFFIXED_HEADER.match(lowered)
            if lowered in wanted or (suffixed and suffixed.group("base") in wanted):
                found = value
        return found

    def get(self, index: int) -> str:
        """Positional cell value, empty when the row is short."""
        if 0 <= index < len(self.cells):
            return self.cells[index][1]
        return ""

    def is_empty(self) -> bool:
        return not any(value for _, value in self.cells)


def is_spreadsheet(filename: str) -> bool:
    """True for legacy and OOXML spreadsheet filenames."""
    return filename.lower().endswith(SPREADSHEET_EXTENSIONS)


def read_table(
    raw: bytes,
    filename: str,
    binary: Optional[bool] = None,
    skip_empty_lines: bool = True,
) -> list[list[str]]:
    """Read raw file bytes into a list of string rows.

    Args:
        raw: File contents
        filename: Original filename, used to pick the reader
        binary: Force the spreadsheet reader (True) or the CSV reader (False)
        skip_empty_lines: Drop rows without any non-blank cell, so they neither
            count toward the header scan nor shift row numbers

    Returns:
        Rows of stripped cell strings (empty string for blank cells)

    Raises:
        TableReadError: If the bytes cannot be decoded or read
    """
    use_spreadsheet = is_spreadsheet(filename) if binary is None else binary
    table = _read_spreadsheet(raw) if use_spreadsheet else _read_delimited(raw)
    if skip_empty_lines:
        table = [cells for cells in table if any(cells)]
    return table


def _read_delimited(raw: bytes) -> list[list[str]]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise TableReadError(f"File is not valid UTF-8 text: {e}") from e

    try:
        reader = csv.reader(io.StringIO(text, newline=""))
        return [[cell.strip() for cell in record] for record in reader]
    except csv.Error as e:
        raise TableReadError(f"Could not read CSV: {e}") from e


def _read_spreadsheet(raw: bytes) -> list[list[str]]:
    try:
        dataframe = pd.read_excel(io.BytesIO(raw), sheet_name=0, header=None, dtype=str)
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as e:
        raise TableReadError(f"Could not read spreadsheet: {e}") from e

    dataframe = dataframe.fillna("")
    logger.debug("Read spreadsheet with %d rows and %d columns", *dataframe.shape)
    return [[str(cell).strip() for cell in record] for record in dataframe.values.tolist()]


def is_header_row(cells: Sequence[str]) -> bool:
    """True when at least two header keywords occur in the row's cells."""
    lowered = [cell.lower().strip() for cell in cells if cell]
    matches = sum(1 for keyword in HEADER_KEYWORDS if any(keyword in cell for cell in lowered))
    return matches >= HEADER_MIN_MATCHES


def find_header_row(table: Sequence[Sequence[str]]) -> int:
    """Index of the header row among the first rows, defaulting to 0."""
    for index, cells in enumerate(table[:HEADER_SCAN_ROWS]):
        if is_header_row(cells):
            return index
    return 0


def find_row_containing(table: Sequence[Sequence[str]], text: str) -> Optional[int]:
    """Index of the first scanned row with a cell containing ``text``."""
    needle = text.lower()
    for index, cells in enumerate(table[:HEADER_SCAN_ROWS]):
        if any(needle in cell.lower() for cell in cells if cell):
            return index
    return None


def build_rows(table: Sequence[Sequence[str]], header_index: int) -> list[Row]:
    """Pair every row below the header with the header names.

    Row numbers are 1-based file rows, for use in warnings.
    """
    if not table:
        return []

    headers = [cell.strip() for cell in table[header_index]]
    rows = []
    for offset, cells in enumerate(table[header_index + 1:], start=header_index + 2):
        padded = list(cells) + [""] * (len(headers) - len(cells))
        pairs = tuple(
            (headers[i] if i < len(headers) else "", padded[i]) for i in range(len(padded))
        )
        rows.append(Row(cells=pairs, number=offset))
    return rows
