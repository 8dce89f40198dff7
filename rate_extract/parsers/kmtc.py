"""
Parser for KMTC "UPDATED RATE" spreadsheets.

KMTC format has:
- Data from row 6: B country (merged down), C POL, D POD area, E 20', F 40',
  G validity ("1-31 Dec"), J free time
- A "Notice" block under the table whose lines are surcharge notes; the AFS
  note applies to China/Japan, the origin-LSS note to everything else
"""

from __future__ import annotations

from datetime import date
import re

from ..grid import SpreadsheetGrid
from ..models import RawExtraction
from ..remarks import derive_notice
from .common import clean_rate


CARRIER = "KMTC"
FIRST_DATA_ROW = 6
NOTICE_COLUMNS = range(1, 12)  # A..K

COL_COUNTRY = "B"
COL_POL = "C"
COL_POD = "D"
COL_RATE20 = "E"
COL_RATE40 = "F"
COL_VALID = "G"
COL_FREE = "J"


def parse_kmtc(grid: SpreadsheetGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a KMTC rate sheet.

    The validity column wins over the caller's value for the rows that fill
    it; other rows use the caller's value, then the current month.

    Args:
        grid: The UPDATED RATE worksheet
        validity: Caller override

    Returns:
        List of RawExtraction
    """
    notice_row, notice_lines = find_notices(grid)
    notices = classify_notices(notice_lines)
    if notice_row and notice_row > FIRST_DATA_ROW:
        last_row = notice_row - 1
    else:
        last_row = grid.highest_row()

    rows: list[RawExtraction] = []
    country = ""

    for row in range(FIRST_DATA_ROW, last_row + 1):
        # Merged country cells resolve through the grid; fill down any gaps
        country = grid.text(COL_COUNTRY, row) or country
        pod = grid.text(COL_POD, row)
        rate20_raw = grid.text(COL_RATE20, row)
        rate40_raw = grid.text(COL_RATE40, row)

        if not pod and not rate20_raw and not rate40_raw:
            continue

        valid_cell = grid.text(COL_VALID, row)
        row_validity = format_kmtc_validity(valid_cell) if valid_cell else validity

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=grid.text(COL_POL, row),
            pod=pod,
            rate20=clean_rate(rate20_raw),
            rate40=clean_rate(rate40_raw),
            free_time=grid.text(COL_FREE, row),
            validity=row_validity,
            remark=derive_notice(country, notices),
        ))

    return rows


def find_notices(grid: SpreadsheetGrid) -> tuple[int | None, list[str]]:
    """
    Locate the "Notice" heading and collect the distinct cell texts below it.

    Returns:
        (heading row or None, notice lines in reading order)
    """
    heading = None
    for row in range(1, grid.highest_row() + 1):
        if any(re.search(r"notice", grid.text(col, row), re.IGNORECASE) for col in NOTICE_COLUMNS):
            heading = row
            break

    if heading is None:
        return None, []

    lines: list[str] = []
    for row in range(heading + 1, grid.highest_row() + 1):
        for col in NOTICE_COLUMNS:
            text = grid.text(col, row)
            if text and text not in lines:
                lines.append(text)
    return heading, lines


def classify_notices(lines: list[str]) -> dict[str, str]:
    """Pick the AFS and LSS notes out of the notice lines."""
    notices: dict[str, str] = {}
    for line in lines:
        lowered = line.lower()
        if "afs charge" in lowered and "jp&cn" in lowered:
            notices["afs"] = line
        if "subject to origin lss" in lowered:
            notices["lss"] = line
    return notices


def format_kmtc_validity(cell: str, today: date | None = None) -> str:
    """"1-31 Dec" -> "1-31 DEC 2025"; a cell with a year is only uppercased."""
    cell = cell.strip()
    if re.search(r"\d{4}", cell):
        return cell.upper()
    year = (today or date.today()).year
    return f"{cell} {year}".upper()
