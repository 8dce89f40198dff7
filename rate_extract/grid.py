"""
Grid sources the layout parsers walk.

Two shapes reach the parsers:
- SpreadsheetGrid: native cells with merge ranges and fill colors, loaded
  from .xlsx (openpyxl) or .xls/.csv (pandas)
- LineTableGrid: the OCR table dump, one "Row N: a | b | c" line per table
  row, grouped under "TABLE n (Rows: R, Cols: C)" markers

Both are read-only once built. Anything that fails while loading a file is
raised as SourceUnreadable so no parser ever sees a half-built grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence
import json
import re

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils import column_index_from_string, get_column_letter, range_boundaries
from openpyxl.utils.cell import coordinate_from_string

from .errors import SourceUnreadable
from .logging_utils import get_logger


logger = get_logger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xlsm", ".xls", ".csv")
LINE_TABLE_SUFFIXES = (".txt",)

TABLE_MARKER = re.compile(r"^TABLE\s+(\d+)", re.IGNORECASE)
ROW_LINE = re.compile(r"^Row\s+(\d+):(.*)$")
CELL_SPLIT = re.compile(r"\s*\|\s*")


def cell_text(value: Any) -> str:
    """
    Render a raw cell value the way it reads on the sheet.

    Handles:
    - None -> ""
    - 500.0 -> "500"
    - datetime(2025, 11, 30) -> "30/11/2025"
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float):
        if value != value:  # NaN from pandas
            return ""
        if value.is_integer():
            return str(int(value))
        return f"{value:g}"
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    return str(value).strip()


def _column_index(col: str | int) -> int:
    if isinstance(col, int):
        return col
    return column_index_from_string(col.upper())


# ============================================================================
# SPREADSHEET GRID
# ============================================================================

@dataclass(frozen=True)
class SheetImage:
    """A picture placed on a worksheet: top-left anchor cell ("E1") and pixel size."""
    anchor: str
    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0


class SpreadsheetGrid:
    """
    A single worksheet as a sparse cell map.

    Coordinates are 1-based. Columns can be addressed by letter ("B") or index
    (2). Every address inside a merge range reads the value of the range's
    top-left cell, so parsers never special-case merged cells.

    Usage:
        grid = load_spreadsheet(Path("FAK RATE OF DEC.xlsx"))
        pod = grid.text("B", 10)
        flagged = grid.fill_color("B", 10) == "000000"
    """

    def __init__(
        self,
        cells: Mapping[tuple[int, int], Any],
        *,
        merged_ranges: Sequence[str] = (),
        fills: Mapping[tuple[int, int], str] | None = None,
        max_row: int | None = None,
        max_col: int | None = None,
        title: str = "Sheet1",
        images: Sequence[SheetImage] = (),
    ):
        self._cells = {key: value for key, value in cells.items() if value is not None}
        self._fills = {key: color.upper()[-6:] for key, color in (fills or {}).items() if color}
        self.merged_ranges = tuple(merged_ranges)
        self.title = title
        self.images = tuple(images)

        occupied = list(self._cells) + list(self._fills)
        self._max_row = max_row or max((r for r, _ in occupied), default=0)
        self._max_col = max_col or max((c for _, c in occupied), default=0)

        self._merged = self._build_merged_map()

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[Any]],
        *,
        merged: Sequence[str] = (),
        fills: Mapping[str, str] | None = None,
        start_row: int = 1,
        title: str = "Sheet1",
        images: Sequence[SheetImage] = (),
    ) -> "SpreadsheetGrid":
        """
        Build a grid from a list of row values.

        Args:
            rows: Row-major values; rows[0] lands on `start_row`, column A
            merged: Merge ranges like "B10:B12"
            fills: Fill colors keyed by address, e.g. {"B10": "000000"}
            start_row: Sheet row of the first entry in `rows`
            images: Pictures placed on the sheet

        Returns:
            SpreadsheetGrid
        """
        cells: dict[tuple[int, int], Any] = {}
        for r_offset, row in enumerate(rows):
            for c_offset, value in enumerate(row):
                if value is not None and value != "":
                    cells[(start_row + r_offset, c_offset + 1)] = value

        fill_map: dict[tuple[int, int], str] = {}
        for address, color in (fills or {}).items():
            letter, row_num = coordinate_from_string(address)
            fill_map[(row_num, column_index_from_string(letter))] = color

        max_row = start_row + len(rows) - 1 if rows else 0
        max_col = max((len(r) for r in rows), default=0)
        return cls(
            cells,
            merged_ranges=merged,
            fills=fill_map,
            max_row=max_row,
            max_col=max_col,
            title=title,
            images=images,
        )

    def _build_merged_map(self) -> Mapping[tuple[int, int], Any]:
        merged: dict[tuple[int, int], Any] = {}
        for cell_range in self.merged_ranges:
            min_col, min_row, max_col, max_row = range_boundaries(cell_range)
            top_left = self._cells.get((min_row, min_col))
            for r in range(min_row, max_row + 1):
                for c in range(min_col, max_col + 1):
                    merged[(r, c)] = top_left
            self._max_row = max(self._max_row, max_row)
            self._max_col = max(self._max_col, max_col)
        return MappingProxyType(merged)

    @property
    def merged_cell_map(self) -> Mapping[tuple[int, int], Any]:
        """Read-only (row, col) -> top-left value for every merged address."""
        return self._merged

    def cell(self, col: str | int, row: int) -> Any:
        """Raw value at (col, row), resolved through merge ranges."""
        key = (row, _column_index(col))
        if key in self._merged:
            return self._merged[key]
        return self._cells.get(key)

    def text(self, col: str | int, row: int) -> str:
        """Trimmed display text at (col, row)."""
        return cell_text(self.cell(col, row))

    def row_texts(self, row: int, first_col: str | int = 1, last_col: str | int | None = None) -> list[str]:
        first = _column_index(first_col)
        last = _column_index(last_col) if last_col is not None else self._max_col
        return [self.text(c, row) for c in range(first, last + 1)]

    def fill_color(self, col: str | int, row: int) -> str | None:
        """Solid fill as "RRGGBB", or None when the cell is unfilled."""
        return self._fills.get((row, _column_index(col)))

    def highest_row(self) -> int:
        return self._max_row

    def highest_column(self) -> str:
        return get_column_letter(self._max_col) if self._max_col else "A"


def load_spreadsheet(path: Path) -> SpreadsheetGrid:
    """
    Load the active sheet of a spreadsheet file.

    Args:
        path: .xlsx/.xlsm (merges and fills kept), .xls or .csv (values only)

    Returns:
        SpreadsheetGrid

    Raises:
        SourceUnreadable: Missing, unsupported or corrupt file
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnreadable(path, "file not found")

    suffix = path.suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES:
        raise SourceUnreadable(path, f"unsupported spreadsheet type '{suffix}'")

    try:
        if suffix in (".xlsx", ".xlsm"):
            return _load_openpyxl(path)
        if suffix == ".xls":
            df = pd.read_excel(path, header=None, sheet_name=0)
        else:
            df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    except SourceUnreadable:
        raise
    except Exception as e:
        raise SourceUnreadable(path, str(e) or type(e).__name__) from e

    return _grid_from_dataframe(df, title=path.stem)


def _load_openpyxl(path: Path) -> SpreadsheetGrid:
    # data_only gives the cached result of formula cells
    wb = load_workbook(filename=path, data_only=True, read_only=False)
    ws = wb.active
    if ws is None:
        raise SourceUnreadable(path, "workbook has no active sheet")

    cells: dict[tuple[int, int], Any] = {}
    fills: dict[tuple[int, int], str] = {}

    for row in ws.iter_rows():
        for cell in row:
            if cell.value is not None:
                cells[(cell.row, cell.column)] = cell.value
            color = _solid_fill_rgb(cell)
            if color:
                fills[(cell.row, cell.column)] = color

    merged = [str(cr) for cr in ws.merged_cells.ranges]
    # openpyxl keeps pictures on a private list; there is no public accessor
    images = [image for image in map(_sheet_image, getattr(ws, "_images", ())) if image]
    logger.debug(
        "Loaded %s: %d cells, %d merge ranges, %d images", path.name, len(cells), len(merged), len(images)
    )

    return SpreadsheetGrid(
        cells,
        merged_ranges=merged,
        fills=fills,
        max_row=int(ws.max_row or 0),
        max_col=int(ws.max_column or 0),
        title=str(ws.title),
        images=images,
    )


def _sheet_image(image: Any) -> SheetImage | None:
    anchor = image.anchor
    if isinstance(anchor, str):
        address = anchor.upper()
    else:
        marker = getattr(anchor, "_from", None)
        # Absolute anchors are not tied to a cell
        if marker is None:
            return None
        address = f"{get_column_letter(marker.col + 1)}{marker.row + 1}"
    return SheetImage(address, float(image.width or 0), float(image.height or 0))


def _solid_fill_rgb(cell: Any) -> str | None:
    fill = getattr(cell, "fill", None)
    if fill is None or fill.fill_type in (None, "none"):
        return None
    rgb = getattr(fill.start_color, "rgb", None)
    # Theme and indexed colors carry no literal RGB
    if not isinstance(rgb, str) or len(rgb) < 6:
        return None
    return rgb[-6:].upper()


def _grid_from_dataframe(df: pd.DataFrame, *, title: str) -> SpreadsheetGrid:
    rows = df.where(pd.notna(df), None).values.tolist()
    return SpreadsheetGrid.from_rows(rows, title=title)


# ============================================================================
# LINE TABLE GRID
# ============================================================================

@dataclass(frozen=True)
class GridLine:
    """
    One line of an OCR table dump.

    kind is "table" for a TABLE marker, "row" for a "Row N:" line, "rule"
    for a dashed separator and "text" for anything else (raw continuation
    data some layouts consume).
    """
    kind: str
    table: int
    cells: tuple[str, ...] = ()
    number: int | None = None
    raw: str = ""

    @property
    def is_row(self) -> bool:
        return self.kind == "row"


def split_cells(body: str) -> tuple[str, ...]:
    """Split a pipe-delimited line body into trimmed cells."""
    body = body.strip()
    if not body:
        return ()
    return tuple(part.strip() for part in CELL_SPLIT.split(body))


class LineTableGrid:
    """
    OCR table output as ordered lines.

    Attributes:
        content: Full OCR prose of the document (may be empty). Used for
            validity ranges and notes printed outside the tables.
        source: Where the dump came from, for messages only.
    """

    def __init__(self, lines: Iterable[str], *, content: str = "", source: str = ""):
        raw: list[str] = []
        for line in lines:
            # OCR cell text can carry embedded newlines
            raw.extend(part.rstrip("\r") for part in str(line).split("\n"))
        self._raw = tuple(raw)
        self.content = content
        self.source = source
        self._lines = tuple(self._classify())

    @classmethod
    def from_text(cls, text: str, *, content: str = "", source: str = "") -> "LineTableGrid":
        return cls(text.split("\n"), content=content, source=source)

    def _classify(self) -> Iterable[GridLine]:
        table = 0
        for raw in self._raw:
            stripped = raw.strip()
            if not stripped:
                continue

            marker = TABLE_MARKER.match(stripped)
            if marker:
                table = int(marker.group(1))
                yield GridLine(kind="table", table=table, raw=raw)
                continue

            row = ROW_LINE.match(stripped)
            if row:
                yield GridLine(
                    kind="row",
                    table=table,
                    cells=split_cells(row.group(2)),
                    number=int(row.group(1)),
                    raw=raw,
                )
                continue

            if set(stripped) <= set("-=_"):
                yield GridLine(kind="rule", table=table, raw=raw)
                continue

            yield GridLine(kind="text", table=table, cells=split_cells(stripped), raw=raw)

    def lines(self) -> tuple[GridLine, ...]:
        """Every non-blank line, in order."""
        return self._lines

    def rows(self) -> list[GridLine]:
        """Only the "Row N:" lines."""
        return [line for line in self._lines if line.is_row]

    def raw_lines(self) -> tuple[str, ...]:
        return self._raw

    def tables(self) -> list[tuple[int, list[tuple[str, ...]]]]:
        """Row cells grouped by table index, in document order."""
        grouped: dict[int, list[tuple[str, ...]]] = {}
        for line in self._lines:
            if line.kind == "table":
                grouped.setdefault(line.table, [])
            elif line.is_row:
                grouped.setdefault(line.table, []).append(line.cells)
        return list(grouped.items())

    def head_text(self, limit: int = 30) -> str:
        """First `limit` raw lines joined, for signature checks."""
        return "\n".join(self._raw[:limit])

    def prepend(self, line: str) -> "LineTableGrid":
        """Return a copy with `line` inserted before the first line."""
        return LineTableGrid((line, *self._raw), content=self.content, source=self.source)

    def highest_row(self) -> int:
        return len(self.rows())

    def __len__(self) -> int:
        return len(self._lines)


def load_line_table(path: Path, *, content_path: Path | None = None) -> LineTableGrid:
    """
    Load a cached OCR table dump.

    Args:
        path: The "<stem>_tables.txt" dump
        content_path: Optional "<stem>_azure_result.json" holding the full
            document text under analyzeResult.content

    Returns:
        LineTableGrid

    Raises:
        SourceUnreadable: The dump is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnreadable(path, "OCR table dump not found")

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceUnreadable(path, str(e)) from e

    content = ""
    if content_path is not None and Path(content_path).exists():
        content = _read_ocr_content(Path(content_path))

    return LineTableGrid.from_text(text, content=content, source=str(path))


def _read_ocr_content(path: Path) -> str:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        # The prose is optional; the table dump alone is still parseable
        logger.warning("Ignoring unreadable OCR result %s: %s", path.name, e)
        return ""
    analyze = data.get("analyzeResult", {}) if isinstance(data, dict) else {}
    return str(analyze.get("content", "") or "")
