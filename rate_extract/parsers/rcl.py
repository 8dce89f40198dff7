"""
Parser for RCL "FAK RATE OF <month>" spreadsheets.

RCL format has:
- Validity range in B6 ("01/12/2025 - 31/12/2025")
- Column headers around row 9, data from row 10
- Vertically merged country / POL / ETD cells
- ETD cells listing several sailing days, tagged by port ("MON (BKK PAT & LCH)")
- Black-filled POD cells for routes that are currently closed
"""

from __future__ import annotations

from ..grid import SpreadsheetGrid
from ..logging_utils import get_logger
from ..models import RawExtraction
from ..remarks import format_end_date_validity, normalize_validity
from .common import clean_rate, is_highlighted, split_etd, with_days


logger = get_logger(__name__)

CARRIER = "RCL"
FIRST_DATA_ROW = 10
VALIDITY_CELL = ("B", 6)

# Fixed template columns
COL_COUNTRY = "A"
COL_POD = "B"
COL_POL = "D"
COL_ETD = "F"
COL_RATE20 = "G"
COL_RATE40 = "H"
COL_TS = "I"
COL_TT = "J"
COL_FREE = "K"
COL_REMARK = "L"


def parse_rcl(grid: SpreadsheetGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse an RCL rate sheet.

    Args:
        grid: The FAK RATE worksheet
        validity: Caller override; when empty the B6 range is used

    Returns:
        List of RawExtraction, one per priced POD row
    """
    if not validity:
        raw = grid.text(*VALIDITY_CELL)
        validity = normalize_validity(raw) or format_end_date_validity(raw)

    rows: list[RawExtraction] = []

    for row in range(FIRST_DATA_ROW, grid.highest_row() + 1):
        pod = grid.text(COL_POD, row)
        rate20 = clean_rate(grid.cell(COL_RATE20, row))
        rate40 = clean_rate(grid.cell(COL_RATE40, row))

        if not pod or not (rate20 or rate40):
            continue
        if _is_zero(rate20) and _is_zero(rate40):
            continue

        pol = grid.text(COL_POL, row)
        etd_bkk, etd_lch, remark = split_etd(grid.text(COL_ETD, row), grid.text(COL_REMARK, row))
        highlighted = is_highlighted(grid.fill_color(COL_POD, row))
        if highlighted:
            logger.debug("Row %d (%s) is black-filled", row, pod)

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=pol,
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            etd_bkk=etd_bkk,
            etd_lch=etd_lch,
            transit_time=with_days(grid.text(COL_TT, row)),
            transshipment=grid.text(COL_TS, row),
            free_time=grid.text(COL_FREE, row),
            validity=validity,
            remark=remark,
            highlighted=highlighted,
        ))

    return rows


def _is_zero(rate: str) -> bool:
    try:
        return float(rate) == 0
    except (ValueError, TypeError):
        return not rate
