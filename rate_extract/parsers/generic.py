"""
Generic parsers for sheets no carrier rule recognised.

Spreadsheets: find the header row by keyword score, map header cells to
fields, then read every row below it. Without a POD column there is nothing
to anchor a row on, so that case raises ColumnMappingFailed instead of
quietly returning nothing.

OCR dumps: take the first capitalised word cell among the first three cells
as POD and the first two numbers on the row as 20' / 40'.
"""

from __future__ import annotations

import re

from ..errors import ColumnMappingFailed
from ..grid import LineTableGrid, SpreadsheetGrid
from ..models import RawExtraction
from .common import clean_rate, find_header_row, map_columns


def parse_generic_sheet(grid: SpreadsheetGrid, validity: str = "", carrier: str = "") -> list[RawExtraction]:
    """
    Parse a spreadsheet by header detection.

    Args:
        grid: Any worksheet
        validity: Caller validity, applied to every row
        carrier: Carrier name; when empty each row's carrier column is used

    Returns:
        List of RawExtraction

    Raises:
        ColumnMappingFailed: No header row, or no POD column in it
    """
    header_row = find_header_row(grid)
    if header_row is None:
        raise ColumnMappingFailed(1, grid.row_texts(1))

    headers = grid.row_texts(header_row)
    mapping = map_columns(headers)
    if mapping.pod is None:
        raise ColumnMappingFailed(header_row, headers)

    def read(name: str, row: int) -> str:
        col = mapping.get(name)
        return grid.text(col, row) if col else ""

    rows: list[RawExtraction] = []
    for row in range(header_row + 1, grid.highest_row() + 1):
        pod = read("pod", row)
        rate20 = clean_rate(read("rate20", row))
        rate40 = clean_rate(read("rate40", row))
        if not pod or not (rate20 or rate40):
            continue

        rows.append(RawExtraction(
            carrier=carrier or read("carrier", row),
            pol=read("pol", row),
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            transit_time=read("tt", row),
            transshipment=read("ts", row),
            free_time=read("freetime", row),
            validity=validity,
            remark=read("remark", row),
        ))

    return rows


NUMBER = re.compile(r"\$?\s*(\d+[,\d]*)")
PORT_NAME = re.compile(r"^[A-Z][a-z]+")


def parse_generic_lines(grid: LineTableGrid, validity: str = "", carrier: str = "") -> list[RawExtraction]:
    """
    Best-effort parse of an OCR dump with no known layout.

    Args:
        grid: OCR table dump
        validity: Caller validity
        carrier: Carrier name for every row

    Returns:
        List of RawExtraction
    """
    rows: list[RawExtraction] = []

    for line in grid.rows():
        cells = line.cells
        if len(cells) < 3:
            continue

        pod = ""
        rates: list[str] = []
        for index, cell in enumerate(cells):
            if index <= 2 and not pod and len(cell) > 2 and PORT_NAME.match(cell):
                pod = cell
                continue
            m = NUMBER.search(cell)
            if m and len(rates) < 2:
                rates.append(m.group(1).replace(",", ""))

        rate20 = rates[0] if rates else ""
        rate40 = rates[1] if len(rates) > 1 else ""
        if not pod or not (rate20 or rate40):
            continue

        rows.append(RawExtraction(
            carrier=carrier,
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            validity=validity,
        ))

    return rows
