"""
Parser for SM LINE OCR dumps.

SM LINE format has:
COUNTRY | POD | BKK 20' | BKK 40' | LCH 20' | LCH 40' | REMARK | FREE TIME

- "N/A" in the BKK cells means LCH only; OCR collapses the two N/A cells
  into one, shifting the rest left
- "(REEFER)" PODs price reefer containers: rates go to the RF columns
- The same dump also lists local charges (THC, B/L, SEAL...), skipped here
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..models import TBA, RawExtraction
from .common import cell_at


CARRIER = "SM LINE"

SKIP_LINE = re.compile(
    r"COUNTRY|POD.*DESTINATION|OUTBOUND|INBOUND|THC|B/L|SEAL|CFS|D/O|Container|DEPOSIT|CLEANING",
    re.IGNORECASE,
)
NOT_A_POD = re.compile(r"^(N/A|VIETNAM|KOREA|CHINA|JAPAN|TAIWAN|HONG KONG)$", re.IGNORECASE)
REEFER = re.compile(r"\s*\(?\s*REEFER\s*\)?\s*", re.IGNORECASE)


def parse_sm_line(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse an SM LINE rate dump.

    One BKK/LCH record when both origins quote the same price, otherwise
    one record per origin with a price.

    Args:
        grid: OCR table dump
        validity: Caller validity

    Returns:
        List of RawExtraction
    """
    rows: list[RawExtraction] = []

    for line in grid.rows():
        cells = line.cells
        if (line.number or 0) <= 1 or len(cells) < 5 or SKIP_LINE.search(line.raw):
            continue

        pod_index = next(
            (i for i, cell in enumerate(cells[:3]) if cell and re.search(r"[A-Z]", cell, re.IGNORECASE) and not NOT_A_POD.match(cell)),
            None,
        )
        if pod_index is None:
            continue
        pod = cells[pod_index].upper()
        if re.match(r"^(20|40|CHARGE)", pod):
            continue

        bkk, lch, remark, free_time = _split_rates(list(cells[pod_index + 1:]))
        bkk_clean = tuple(re.sub(r"[^0-9]", "", value) for value in bkk)
        lch_clean = tuple(re.sub(r"[^0-9]", "", value) for value in lch)
        has_bkk = "N/A" not in (v.upper() for v in bkk) and any(bkk_clean)
        has_lch = "N/A" not in (v.upper() for v in lch) and any(lch_clean)

        reefer = bool(re.search("REEFER", pod))
        if reefer:
            pod = REEFER.sub(" ", pod).strip()

        def entry(pol: str, rates: tuple[str, str]) -> RawExtraction:
            raw = RawExtraction(
                carrier=CARRIER,
                pol=pol,
                pod=pod,
                free_time=free_time,
                validity=validity,
                remark=remark,
            )
            if reefer:
                raw.rate20, raw.rate40 = TBA, TBA
                raw.rate20_rf, raw.rate40_rf = rates
            else:
                raw.rate20, raw.rate40 = rates
            return raw

        if has_bkk and has_lch and bkk_clean == lch_clean:
            rows.append(entry("BKK/LCH", bkk_clean))
            continue
        if has_bkk:
            rows.append(entry("BKK", bkk_clean))
        if has_lch:
            rows.append(entry("LCH", lch_clean))

    return rows


def _split_rates(cells: list[str]) -> tuple[tuple[str, str], tuple[str, str], str, str]:
    """(BKK 20/40, LCH 20/40, remark, free time) from the cells after the POD."""
    first = cell_at(cells, 0).upper()
    second = cell_at(cells, 1).upper()

    if first == "N/A" and len(cells) >= 4:
        # N/A | LCH 20 | LCH 40 | REMARK | FREE
        return ("N/A", "N/A"), (cell_at(cells, 1), cell_at(cells, 2)), cell_at(cells, 3), cell_at(cells, 4)
    if not first and second == "N/A" and len(cells) >= 5:
        return ("", "N/A"), (cell_at(cells, 2), cell_at(cells, 3)), cell_at(cells, 4), cell_at(cells, 5)
    return (
        (cell_at(cells, 0), cell_at(cells, 1)),
        (cell_at(cells, 2), cell_at(cells, 3)),
        cell_at(cells, 4),
        cell_at(cells, 5),
    )
