"""
Layout parsers, one per carrier rate-sheet family.

Each layout reads a SpreadsheetGrid, a LineTableGrid, or both. A layout with
no dedicated reader for the grid it is handed falls back to the generic
parser of that grid kind, stamped with the layout's carrier name.

Usage:
    from rate_extract.parsers import get_layout

    rows = get_layout("rcl").parse(grid, validity_hint="1-30 NOV 2025")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..errors import UnknownLayout
from ..grid import LineTableGrid, SpreadsheetGrid
from ..models import RawExtraction
from .boxman import parse_boxman
from .ck_line import parse_ck_line
from .dongjin import parse_dongjin
from .generic import parse_generic_lines, parse_generic_sheet
from .heung_a import parse_heung_a
from .ial import parse_ial
from .kmtc import parse_kmtc
from .pil import detect_pil_region, parse_pil
from .rcl import parse_rcl
from .sinokor import parse_sinokor, parse_sinokor_skr
from .sitc import parse_sitc
from .sm_line import parse_sm_line
from .ts_line import parse_ts_line
from .wanhai import parse_wanhai


SheetParser = Callable[[SpreadsheetGrid, str], list[RawExtraction]]
LinesParser = Callable[[LineTableGrid, str], list[RawExtraction]]


@dataclass(frozen=True)
class LayoutParser:
    """
    A named layout strategy.

    Attributes:
        layout: Layout id returned by PatternDetector
        carrier: Carrier stamped on generic fallback rows ("" leaves it to
            the sheet, then to the assembler default)
        sheet: Reader for native spreadsheets, None to use the generic one
        lines: Reader for OCR dumps, None to use the generic one
    """
    layout: str
    description: str
    carrier: str = ""
    sheet: SheetParser | None = None
    lines: LinesParser | None = None

    def parse(self, grid: SpreadsheetGrid | LineTableGrid, validity_hint: str = "") -> list[RawExtraction]:
        """
        Run the layout over a grid.

        Args:
            grid: Spreadsheet or OCR dump
            validity_hint: Caller validity ("" when unknown)

        Returns:
            List of RawExtraction, possibly empty

        Raises:
            ColumnMappingFailed: Generic spreadsheet fallback found no POD column
        """
        if isinstance(grid, SpreadsheetGrid):
            if self.sheet is not None:
                return self.sheet(grid, validity_hint)
            return parse_generic_sheet(grid, validity_hint, carrier=self.carrier)
        if self.lines is not None:
            return self.lines(grid, validity_hint)
        return parse_generic_lines(grid, validity_hint, carrier=self.carrier)


LAYOUTS: dict[str, LayoutParser] = {
    layout.layout: layout
    for layout in (
        LayoutParser("rcl", "RCL \"FAK RATE OF\" sheet", "RCL", sheet=parse_rcl),
        LayoutParser("kmtc", "KMTC \"UPDATED RATE\" sheet", "KMTC", sheet=parse_kmtc),
        LayoutParser("pil", "PIL quotation (Africa, Intra Asia, Latin America, Oceania, South Asia)", "PIL", lines=parse_pil),
        LayoutParser("sinokor", "SINOKOR guide rate", "SINOKOR", lines=parse_sinokor),
        LayoutParser("sinokor_skr", "SINOKOR SKR Hong Kong feeder table", "SINOKOR", lines=parse_sinokor_skr),
        LayoutParser("heung_a", "HEUNG A rate card", "HEUNG A", lines=parse_heung_a),
        LayoutParser("boxman", "BOXMAN rate card", "BOXMAN", lines=parse_boxman),
        LayoutParser("sitc", "SITC service-route rates", "SITC", lines=parse_sitc),
        LayoutParser("wanhai", "WANHAI Asia, Middle East and India cards", "WANHAI", lines=parse_wanhai),
        LayoutParser("ck_line", "CK LINE rate card", "CK LINE", lines=parse_ck_line),
        LayoutParser("sm_line", "SM LINE rate card", "SM LINE", lines=parse_sm_line),
        LayoutParser("dongjin", "DONGJIN rate card", "DONGJIN", lines=parse_dongjin),
        LayoutParser("ts_line", "TS LINE \"RATE 1ST HALF\"", "TS LINE", lines=parse_ts_line),
        LayoutParser("ial", "INTER ASIA (IAL) sheet", "IAL", sheet=parse_ial),
        LayoutParser("generic", "Header detection for unknown sheets"),
    )
}


def get_layout(layout: str) -> LayoutParser:
    """
    Look up a registered layout.

    Raises:
        UnknownLayout: `layout` is not in LAYOUTS
    """
    try:
        return LAYOUTS[layout]
    except KeyError:
        raise UnknownLayout(layout, sorted(LAYOUTS)) from None


__all__ = ["LAYOUTS", "LayoutParser", "get_layout", "detect_pil_region"]
