"""
Parser for HEUNG A OCR dumps.

HEUNG A format has:
POL | POD | 20' | 40' | 40HQ | SAILING | DIRECT/T/S | T/T | SURCHARGE

Ports quoted on request print "Check port" across the rate cells, which
OCR collapses into one cell, shifting the rest of the row left by one.
T/T and T/S cells are merged down over port groups.
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..models import RawExtraction
from .common import RowCarryState, cell_at, map_pol_to_etd, strip_parentheses, with_days


CARRIER = "HEUNG A"
CHECK_PORT = "Check port"

HEADER_CELL = re.compile(r"POL|POD|Nov2025|Dec2025|20'|40'", re.IGNORECASE)


def parse_heung_a(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a HEUNG A rate dump.

    Args:
        grid: OCR table dump
        validity: Caller validity

    Returns:
        List of RawExtraction
    """
    rows: list[RawExtraction] = []
    state = RowCarryState()

    for line in grid.lines():
        if line.kind == "table":
            state.reset()
            continue
        if not line.is_row:
            continue
        cells = line.cells
        if len(cells) < 4:
            continue
        if HEADER_CELL.search(cells[0]):
            state.reset()
            continue

        pol = cells[0]
        pod = strip_parentheses(cells[1])
        check_port = "check" in cells[2].lower()

        # "Check port" rows lose one cell: SAILING starts at index 4
        offset = 4 if check_port else 5
        sailing = cell_at(cells, offset)
        direct_ts = cell_at(cells, offset + 1)
        transit = cell_at(cells, offset + 2)
        surcharge = cell_at(cells, offset + 3)

        if check_port:
            rate20 = rate40 = CHECK_PORT
        else:
            rate20 = re.sub(r"[^0-9]", "", cells[2])
            rate40 = re.sub(r"[^0-9]", "", cells[3])

        if not pod or not (rate20 or rate40):
            continue

        etd_bkk, etd_lch = map_pol_to_etd(pol, sailing, fallback="both")
        transit = state.carry("transit_time", transit)
        direct_ts = state.carry("transshipment", direct_ts)

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=pol,
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            etd_bkk=etd_bkk,
            etd_lch=etd_lch,
            transit_time=with_days(transit),
            transshipment=direct_ts,
            validity=validity,
            remark=surcharge,
        ))

    return rows
