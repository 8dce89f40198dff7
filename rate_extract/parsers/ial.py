"""
Parser for IAL (Inter Asia Line) spreadsheets.

IAL format has fixed columns from row 3:
A POL, B POD, C service, D T/T, E Direct / T/S, F 20', G 40'/HC, H remark

Country header rows only fill column A. Notes ("* ...", "Remark") and the
origin local-charge block (THC, CFS, B/L, ...) share column A and are skipped.
"""

from __future__ import annotations

import re

from ..grid import SpreadsheetGrid
from ..models import RawExtraction
from .common import DISALLOWED_RATE, leading_number


CARRIER = "Inter Asia"
FIRST_DATA_ROW = 3

SKIP_ROW = re.compile(r"^\*|^Remark", re.IGNORECASE)
LOCAL_CHARGE_ROW = re.compile(r"Local.?charge|THC|CFS|B/L|Telex|Seal", re.IGNORECASE)
VALIDITY_LINE = re.compile(r"Validity[:\s]*(.+)", re.IGNORECASE)


def parse_ial(grid: SpreadsheetGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse an IAL rate sheet.

    Args:
        grid: The IAL worksheet
        validity: Caller override; when empty the "Validity: ..." line in
            column A is used

    Returns:
        List of RawExtraction
    """
    if not validity:
        validity = find_validity(grid)

    rows: list[RawExtraction] = []

    for row in range(FIRST_DATA_ROW, grid.highest_row() + 1):
        col_a = grid.text("A", row)
        pod = grid.text("B", row)

        if not col_a or not pod:
            continue
        if SKIP_ROW.search(col_a) or LOCAL_CHARGE_ROW.search(col_a):
            continue

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=col_a.upper(),
            pod=pod,
            rate20=ial_rate(grid.text("F", row)),
            rate40=ial_rate(grid.text("G", row)),
            transit_time=grid.text("D", row),
            transshipment=grid.text("E", row),
            validity=validity,
            remark=grid.text("H", row),
        ))

    return rows


def find_validity(grid: SpreadsheetGrid) -> str:
    for row in range(1, grid.highest_row() + 1):
        m = VALIDITY_LINE.search(grid.text("A", row))
        if m:
            return m.group(1).strip().upper()
    return ""


def ial_rate(cell: str) -> str:
    """"$1,200" -> "1200"; "TBA", blanks and text -> ""."""
    cell = cell.strip()
    if not cell or DISALLOWED_RATE.fullmatch(cell):
        return ""
    return leading_number(cell)
