"""
Parser for BOXMAN OCR dumps.

BOXMAN format has one table per origin group:
POL | POD | 20'DC | 40'HC | ETD | TRANSIT | REMARKS

Vertically merged cells come through OCR as missing leading cells:
- POL merged: the row starts with the POD ("Haiphong | 350 | ...")
- ETD merged on 20'-only rows: "N/A" in 40' and the transit time in ETD
- REMARKS merged: empty, inherits the previous row (and its T/S)
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..models import RawExtraction
from .common import RowCarryState, cell_at, map_pol_to_etd


CARRIER = "BOXMAN"

HEADER_CELL = re.compile(r"Port of Loading|POL|20'DC|40'HC", re.IGNORECASE)
ORIGIN_TAG = re.compile(r"LKB|LCH|BKK|LKE", re.IGNORECASE)
TITLE_CASE = re.compile(r"^[A-Z][a-z]")


def parse_boxman(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a BOXMAN rate dump.

    Args:
        grid: OCR table dump
        validity: Caller validity

    Returns:
        List of RawExtraction
    """
    rows: list[RawExtraction] = []
    state = RowCarryState()

    for line in grid.rows():
        cells = line.cells
        if len(cells) < 3:
            continue
        if HEADER_CELL.search(cells[0]):
            # New table header: ETD, transit and remarks stop carrying
            pol = state.pol
            state.reset()
            state.pol = pol
            continue

        pol, pod, rate20, rate40, etd, transit, remarks = (cell_at(cells, i) for i in range(7))

        if not pol or TITLE_CASE.match(pol):
            if TITLE_CASE.match(pol) and not ORIGIN_TAG.search(pol):
                # Merged POL: everything sits one cell to the left
                pod, rate20, rate40, etd, transit, remarks = pol, pod, rate20, rate40, etd, transit
            pol = state.pol
        else:
            state.pol = pol

        if rate40.upper() == "N/A" or not rate40:
            if etd and "day" in etd.lower():
                # 20'-only row with the ETD merged away
                remarks, transit, etd = transit, etd, ""
            rate40 = ""

        rate20 = re.sub(r"[^0-9]", "", rate20)
        rate40 = re.sub(r"[^0-9]", "", rate40)
        if not pod or not (rate20 or rate40):
            continue

        if etd and "day" in etd.lower():
            transit = transit or etd
            etd = ""

        etd = state.carry("etd", etd)
        transit = state.carry("transit_time", transit)
        etd_bkk, etd_lch = map_pol_to_etd(pol, etd)

        if remarks:
            ts = boxman_transshipment(remarks)
            state.remark = remarks
            state.transshipment = ts
        else:
            remarks = state.remark
            ts = state.transshipment or "TBA"

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=pol,
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            etd_bkk=etd_bkk,
            etd_lch=etd_lch,
            transit_time=transit,
            transshipment=ts,
            validity=validity,
            remark=remarks,
        ))

    return rows


def boxman_transshipment(remarks: str) -> str:
    """"DIRECT SERVICE" -> "DIRECT", "T/S SINGAPORE" -> "T/S SINGAPORE", else "TBA"."""
    if "DIRECT" in remarks.upper():
        return "DIRECT"
    m = re.search(r"T/S\s+(.+)", remarks, re.IGNORECASE)
    if m:
        return f"T/S {m.group(1).strip()}"
    return "TBA"
