"""
Write RateRecords as the 21-column FCL export sheet.

The sheet is named FCL_EXP, the header row is bold on grey, and highlighted
records keep their black fill (white text) so reviewers still see them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence
import re

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .models import FCL_COLUMNS, ExtractionResult, RateRecord


SHEET_NAME = "FCL_EXP"
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFD9D9D9", end_color="FFD9D9D9")
BLACK_FILL = PatternFill(fill_type="solid", start_color="FF000000", end_color="FF000000")
WHITE_FONT = Font(color="FFFFFFFF")

# Layout id -> name used in download filenames
LAYOUT_NAMES = {
    "rcl": "RCL",
    "kmtc": "KMTC",
    "pil": "PIL",
    "sinokor": "SINOKOR",
    "sinokor_skr": "SINOKOR_SKR",
    "heung_a": "HEUNG_A",
    "boxman": "BOXMAN",
    "sitc": "SITC",
    "wanhai": "WANHAI",
    "ck_line": "CK_LINE",
    "sm_line": "SM_LINE",
    "dongjin": "DONGJIN",
    "ts_line": "TS_LINE",
    "ial": "IAL",
}


def records_to_dataframe(records: Iterable[RateRecord]) -> pd.DataFrame:
    """One row per record, columns in FCL_COLUMNS order."""
    rows = [record.to_row() for record in records]
    return pd.DataFrame(rows, columns=list(FCL_COLUMNS))


def write_records(records: Sequence[RateRecord], path: Path) -> Path:
    """
    Write records to .xlsx or .csv.

    Args:
        records: Records in output order
        path: Target file; the suffix picks the format

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = records_to_dataframe(records)

    if path.suffix.lower() == ".csv":
        df.to_csv(path, index=False)
        return path
    if path.suffix.lower() != ".xlsx":
        raise ValueError(f"Unsupported export type: {path.suffix}")

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        _style_sheet(writer.sheets[SHEET_NAME], records, df)

    return path


def _style_sheet(ws, records: Sequence[RateRecord], df: pd.DataFrame) -> None:
    width = len(FCL_COLUMNS)

    for col in range(1, width + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL

    for offset, record in enumerate(records):
        if not record.highlighted:
            continue
        for col in range(1, width + 1):
            cell = ws.cell(row=offset + 2, column=col)
            cell.fill = BLACK_FILL
            cell.font = WHITE_FONT

    for index, name in enumerate(FCL_COLUMNS, start=1):
        longest = max([len(name), *(len(str(v)) for v in df[name].tolist())])
        ws.column_dimensions[get_column_letter(index)].width = min(longest + 2, 60)


def carrier_summary(records: Iterable[RateRecord]) -> dict[str, int]:
    """Record count per carrier, most common first."""
    counts: dict[str, int] = {}
    for record in records:
        carrier = record.carrier.strip() or "Unknown"
        counts[carrier] = counts.get(carrier, 0) + 1
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))


def download_filename(result: ExtractionResult) -> str:
    """
    Name for the exported sheet: carrier, PIL region, validity.

    Example: "SINOKOR_1-30_NOV_2025.xlsx", "PIL_AFRICA_DEC_2025.xlsx"
    """
    carrier = LAYOUT_NAMES.get(result.layout)
    if carrier is None:
        summary = carrier_summary(result.records)
        carrier = next(iter(summary), "")
    carrier = re.sub(r"[^a-zA-Z0-9\s]", "", carrier).strip().replace(" ", "_") or "RATES"
    if result.region:
        carrier = f"{carrier}_{result.region}"

    validity = result.validity or next((r.validity for r in result.records if r.validity), "")
    validity = re.sub(r"[^a-zA-Z0-9_-]", "", validity.replace(" ", "_"))

    name = f"{carrier}_{validity}" if validity else carrier
    return f"{name.upper()}.xlsx"
