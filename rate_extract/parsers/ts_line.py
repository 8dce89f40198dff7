"""
Parser for TS LINE "RATE 1ST HALF" OCR dumps.

TS LINE format has:
COUNTRY | POD | DIRECT/T/S | T/T | BKK 20GP | BKK 40GP | LCB 20GP | LCB 40GP | DLSS | REMARK

- The table title ("*** RATE INCL. NBAF, SUB. TO DLSS ... ***") is the remark
  for every row
- Country cells are merged down, so later rows start with the POD or an
  empty cell
- OCR spills checkbox cells onto their own ":selected: | ..." lines, which
  belong to the row above
- "NIL" means the origin is not served; "BY CASE CHECK" is kept as CHECK
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..models import RawExtraction
from ..remarks import normalize_validity
from .common import cell_at, with_days


CARRIER = "TS LINE"
DEFAULT_REMARK = "RATE INCL. NBAF, SUB. TO DLSS AND OTHER LOCAL CHARGE AT BOTH SIDE"

COUNTRY = re.compile(
    r"^(JAPAN|KOREA|TAIWAN|HONG KONG|CHINA|PHILIPPINES|VIETNAM|MIDDLE EAST|INDIA|Eest INDIA|EAST INDIA)$",
    re.IGNORECASE,
)
HEADER_CELL = re.compile(r"COUNTRY|POD|DIRECT|T/T|20\s*GP|BKK|LCB|OCEAN FREIGHT", re.IGNORECASE)
BY_CASE = re.compile(r"BY\s*CASE|CHECK", re.IGNORECASE)


def parse_ts_line(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a TS LINE rate dump into one BKK and one LCB record per POD.

    Args:
        grid: OCR table dump
        validity: Caller override; when empty the title range is used

    Returns:
        List of RawExtraction
    """
    remark = table_remark(grid.raw_lines())
    if not validity:
        validity = next((v for v in map(normalize_validity, grid.raw_lines()) if v), "")

    rows: list[RawExtraction] = []

    for number, cells in merged_rows(grid):
        if number <= 2 or HEADER_CELL.search(cell_at(cells, 0)):
            continue

        parsed = _split_row(cells)
        if parsed is None:
            continue
        pod, direct_ts, tt, bkk, lcb = parsed
        if not pod:
            continue

        bkk_nil = bkk[0].upper() == "NIL"
        lcb_nil = lcb[0].upper() == "NIL"
        if bkk_nil and lcb_nil:
            continue

        transit = with_days(tt)
        ts = ts_line_transshipment(direct_ts)

        for pol, (rate20, rate40) in (("BKK", _rates(bkk)), ("LCB", _rates(lcb))):
            if not rate20 and not rate40:
                continue
            rows.append(RawExtraction(
                carrier=CARRIER,
                pol=pol,
                pod=pod,
                rate20=rate20,
                rate40=rate40,
                transit_time=transit,
                transshipment=ts,
                validity=validity,
                remark=remark,
            ))

    return rows


def merged_rows(grid: LineTableGrid) -> list[tuple[int, list[str]]]:
    """"Row N:" rows with their spilled ":selected:" / "| ..." lines appended."""
    merged: list[tuple[int, list[str]]] = []
    current: tuple[int, list[str]] | None = None

    for line in grid.lines():
        if line.is_row:
            current = (line.number or 0, [c for c in line.cells if not c.startswith(":selected:")])
            merged.append(current)
            continue
        stripped = line.raw.strip()
        if current is not None and line.kind == "text" and (stripped.startswith(":selected:") or stripped.startswith("|")):
            spill = re.sub(r"^:selected:\s*", "", stripped)
            current[1].extend(c.strip() for c in spill.split("|") if c.strip())
        else:
            current = None

    return merged


def _split_row(cells: list[str]):
    first = cell_at(cells, 0)

    if COUNTRY.match(first) and len(cells) >= 5:
        pod, direct_ts, tt = cell_at(cells, 1), cell_at(cells, 2), cell_at(cells, 3)
        bkk = (cell_at(cells, 4), cell_at(cells, 5))
        lcb = (cell_at(cells, 6), cell_at(cells, 7))
        # OCR sometimes folds every LCB cell into one: "170 300 N/A N/A ..."
        lcb_pair = re.match(r"^(\d+)\s+(\d+)", lcb[0])
        if lcb_pair:
            lcb = lcb_pair.groups()
    elif not first and len(cells) >= 5:
        pod, direct_ts, tt = cell_at(cells, 1), cell_at(cells, 2), cell_at(cells, 3)
        bkk = (cell_at(cells, 4), cell_at(cells, 5))
        lcb = (cell_at(cells, 6), cell_at(cells, 7))
    elif first and not COUNTRY.match(first) and len(cells) >= 7:
        pod, direct_ts, tt = first, cell_at(cells, 1), cell_at(cells, 2)
        bkk = (cell_at(cells, 3), cell_at(cells, 4))
        lcb = (cell_at(cells, 5), cell_at(cells, 6))
    elif first and not COUNTRY.match(first) and len(cells) >= 4:
        pod, direct_ts, tt = first, cell_at(cells, 1), cell_at(cells, 2)
        bkk = (cell_at(cells, 3), cell_at(cells, 4))
        lcb = ("", "")
    else:
        return None

    return pod, direct_ts, tt, bkk, lcb


def _rates(pair: tuple[str, str]) -> tuple[str, str]:
    rate20, rate40 = pair
    if BY_CASE.search(rate20):
        return "CHECK", "CHECK"
    return re.sub(r"[^0-9]", "", rate20), re.sub(r"[^0-9]", "", rate40)


def ts_line_transshipment(cell: str) -> str:
    """"DIRECT" -> "DIRECT"; "T/S via SKU" -> "T/S SKU"; else ""."""
    if "DIRECT" in cell.upper():
        return "DIRECT"
    m = re.search(r"T/S\s*(via\s*)?(\w+)", cell, re.IGNORECASE)
    return f"T/S {m.group(2).upper()}" if m else ""


def table_remark(lines) -> str:
    """The "RATE INCL ..." banner of the rate table, or the usual wording."""
    for line in lines:
        m = re.search(r"\*+\s*(RATE INCL[^*]+)\s*\*+", line, re.IGNORECASE)
        if m:
            return m.group(1).strip()
        m = re.search(r"(RATE INCL\.?.*(?:BOTH SIDE|LOCAL CHARGE)[^|]*)", line, re.IGNORECASE)
        if m:
            return m.group(1).strip()
    return DEFAULT_REMARK
