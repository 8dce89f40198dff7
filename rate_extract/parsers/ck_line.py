"""
Parser for CK LINE OCR dumps.

CK LINE format has:
POD | CODE | COUNTRY | CURRENCY | 20' | 40' | VALIDITY | T/T | T/S | ETD BKK | ETD LCH

- Rates carry their own note: "$1,200 (INC.LSS/DTHC)"
- Validity is a compact cell: "01-30/11/25"
- Checkbox cells spill onto ":unselected: ..." lines that belong to the
  row above, so the ETDs may land at the end of a longer row
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..models import RawExtraction
from ..remarks import MONTHS
from .common import cell_at, strip_parentheses, with_days


CARRIER = "CK LINE"

SKIP_LINE = re.compile(r"Destination port|Currency", re.IGNORECASE)
CHECKBOX = re.compile(r"^:(un)?selected:\s*")


def parse_ck_line(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a CK LINE rate dump.

    Args:
        grid: OCR table dump
        validity: Caller override; when empty the first row's validity cell
            is used for the whole run

    Returns:
        List of RawExtraction
    """
    rows: list[RawExtraction] = []

    for number, cells in merged_rows(grid):
        if number == 0 or len(cells) < 5 or SKIP_LINE.search(" ".join(cells)):
            continue

        usd = next((i for i, cell in enumerate(cells) if cell.upper() == "USD"), None)
        if usd is None:
            continue

        rate20_raw = cell_at(cells, usd + 1)
        rate40_raw = cell_at(cells, usd + 2)
        rate20 = re.sub(r"[^0-9]", "", rate20_raw)
        rate40 = re.sub(r"[^0-9]", "", rate40_raw)
        note = re.search(r"\(([^)]+)\)", rate20_raw) or re.search(r"\(([^)]+)\)", rate40_raw)

        validity_cell = cell_at(cells, usd + 3)
        tt = cell_at(cells, usd + 4)
        ts = cell_at(cells, usd + 5)

        etd_at = usd + 6
        if len(cells) > etd_at + 2 and not cell_at(cells, etd_at):
            # Spilled checkbox cells pushed the ETDs to the end of the row
            etd_bkk, etd_lch = cells[-2].strip(), cells[-1].strip()
        else:
            etd_bkk, etd_lch = cell_at(cells, etd_at), cell_at(cells, etd_at + 1)

        pod = strip_parentheses(cells[0])
        if not pod or not rate20 or re.match(r"^(destination|port|currency)", pod, re.IGNORECASE):
            continue

        if not validity:
            validity = compact_validity(validity_cell)

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol="BKK/LCH",
            pod=pod.upper(),
            rate20=rate20,
            rate40=rate40,
            etd_bkk=etd_bkk,
            etd_lch=etd_lch,
            transit_time="" if tt == "-" else with_days(tt),
            transshipment=ts or "Direct",
            validity=validity,
            remark=note.group(1).strip() if note else "",
        ))

    return rows


def merged_rows(grid: LineTableGrid) -> list[tuple[int, list[str]]]:
    """"Row N:" rows with their ":selected:" / ":unselected:" spill lines appended."""
    merged: list[tuple[int, list[str]]] = []
    for line in grid.lines():
        if line.is_row:
            merged.append((line.number or 0, list(line.cells)))
        elif merged and line.kind == "text" and CHECKBOX.match(line.raw.strip()):
            spill = CHECKBOX.sub("", line.raw.strip())
            if spill:
                merged[-1][1].append(spill)
    return merged


def compact_validity(cell: str) -> str:
    """"01-30/11/25" -> "01-30 NOV 2025"; "" when the cell has another shape."""
    m = re.search(r"(\d{1,2}-\d{1,2})/(\d{1,2})/(\d{2})", cell)
    if not m:
        return ""
    month = int(m.group(2))
    if not 1 <= month <= 12:
        return ""
    return f"{m.group(1)} {MONTHS[month - 1]} 20{m.group(3)}"
