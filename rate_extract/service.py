"""
RateExtractionService - the one call every surface goes through.

Flow for a file:
1. load the grid (spreadsheet cells, or the cached OCR dump of a PDF)
2. pick the layout (explicit id, filename rules, then OCR content rules)
3. resolve the run validity (hint, OCR prose, layout, filename)
4. run the layout parser and assemble the 21-column records

Usage:
    service = RateExtractionService()
    result = service.extract(Path("FAK RATE OF 1-30 NOV.xlsx"))
    for record in result.records:
        print(record.pod, record.rate20)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Mapping
import re

from .assembler import assemble_all
from .config import AppConfig, load_app_config
from .detector import GENERIC, PatternDetector
from .errors import RateExtractionError, SourceUnreadable, UnknownLayout
from .grid import (
    LINE_TABLE_SUFFIXES,
    SPREADSHEET_SUFFIXES,
    LineTableGrid,
    SpreadsheetGrid,
    load_line_table,
    load_spreadsheet,
)
from .logging_utils import get_logger
from .models import ExtractionResult
from .parsers import LAYOUTS, LayoutParser, detect_pil_region
from .remarks import normalize_validity, validity_from_filename


logger = get_logger(__name__)

AUTO = "auto"
TABLES_SUFFIX = "_tables"
OCR_RESULT_SUFFIX = "_azure_result.json"
PIL_TRADES = re.compile(r"(Africa|Intra Asia|Latin America|Oceania|South Asia)", re.IGNORECASE)

Grid = SpreadsheetGrid | LineTableGrid


@dataclass(frozen=True)
class FileOutcome:
    """
    Per-file result of a batch run.

    status is "ok" (records found), "empty" (layout ran, nothing found) or
    "error" (the file could not be extracted; see `error`).
    """
    source: str
    status: str
    layout: str = ""
    result: ExtractionResult | None = None
    error: str = ""

    @property
    def record_count(self) -> int:
        return len(self.result.records) if self.result else 0


class RateExtractionService:
    """
    Detects, parses and assembles rate sheets.

    Holds no per-file state, so one instance can serve many files.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        detector: PatternDetector | None = None,
        layouts: Mapping[str, LayoutParser] = LAYOUTS,
        today: date | None = None,
    ):
        """
        Args:
            config: Loaded config; config.toml next to the package when None
            detector: Layout detector; the default rule set when None
            layouts: Layout registry
            today: Reference date for validity defaults (tests pin it)
        """
        self._config = config or load_app_config()
        self._detector = detector or PatternDetector()
        self._layouts = dict(layouts)
        self._today = today

    @property
    def layouts(self) -> dict[str, LayoutParser]:
        return dict(self._layouts)

    # ========================================================================
    # LOADING
    # ========================================================================

    def load_grid(self, path: Path) -> Grid:
        """
        Build the grid for a source file.

        - .xlsx/.xlsm/.xls/.csv: the active sheet
        - .txt: an OCR table dump; a sibling "<stem>_azure_result.json"
          supplies the OCR prose
        - .pdf: the cached dump "<ocr_results_dir>/<stem>_tables.txt"

        Raises:
            SourceUnreadable: Unsupported type, missing file or missing dump
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix in SPREADSHEET_SUFFIXES:
            return load_spreadsheet(path)

        if suffix in LINE_TABLE_SUFFIXES:
            stem = path.stem[: -len(TABLES_SUFFIX)] if path.stem.endswith(TABLES_SUFFIX) else path.stem
            return load_line_table(path, content_path=path.with_name(stem + OCR_RESULT_SUFFIX))

        if suffix == ".pdf":
            ocr_dir = self._config.extraction.ocr_results_dir
            dump = ocr_dir / f"{path.stem}{TABLES_SUFFIX}.txt"
            if not dump.exists():
                raise SourceUnreadable(path, f"no cached OCR dump at {dump}")
            return load_line_table(dump, content_path=ocr_dir / f"{path.stem}{OCR_RESULT_SUFFIX}")

        raise SourceUnreadable(path, f"unsupported file type '{suffix or path.name}'")

    # ========================================================================
    # EXTRACTION
    # ========================================================================

    def detect(self, source: str | Path, grid: Grid | None = None) -> str:
        """
        Layout id for a file: filename rules, then logo or OCR content rules.

        Logo rules only run for spreadsheets and content rules only for OCR
        grids, in both cases when the filename left the layout at generic.
        """
        layout = self._detector.detect(source)
        if layout == GENERIC and isinstance(grid, SpreadsheetGrid):
            from_logo = self._detector.detect_from_images(grid.images)
            if from_logo:
                logger.info("Layout %s detected from a logo in %s", from_logo, Path(str(source)).name)
                return from_logo
            return layout
        if layout == GENERIC and isinstance(grid, LineTableGrid):
            from_content = self._detector.detect_from_content(grid.raw_lines())
            if from_content != GENERIC:
                logger.info("Layout %s detected from OCR content of %s", from_content, Path(str(source)).name)
            return from_content
        return layout

    def extract(self, path: str | Path, layout: str = AUTO, validity: str = "") -> ExtractionResult:
        """
        Extract one file.

        Args:
            path: Spreadsheet, OCR dump or PDF with a cached dump
            layout: Layout id, or "auto" to detect it
            validity: Validity hint applied to every row without its own

        Returns:
            ExtractionResult; `records` may be empty

        Raises:
            SourceUnreadable: The grid could not be built
            ColumnMappingFailed: Generic spreadsheet without a POD column
            UnknownLayout: `layout` is not registered
        """
        path = Path(path)
        if layout != AUTO:
            self._layout(layout)  # fail before touching the file
        grid = self.load_grid(path)
        return self.extract_grid(grid, source=path.name, layout=layout, validity=validity)

    def extract_grid(self, grid: Grid, *, source: str, layout: str = AUTO, validity: str = "") -> ExtractionResult:
        """
        Extract an already loaded grid.

        Args:
            grid: SpreadsheetGrid or LineTableGrid
            source: Original filename, used for detection and validity
            layout: Layout id, or "auto"
            validity: Validity hint

        Returns:
            ExtractionResult
        """
        layout_id = self.detect(source, grid) if layout == AUTO else layout
        parser = self._layout(layout_id)

        hint = validity.strip()
        if not hint and isinstance(grid, LineTableGrid):
            hint = normalize_validity(grid.content, self._today)

        region = ""
        if layout_id == "pil" and isinstance(grid, LineTableGrid):
            grid = with_trade_line(grid, source)
            region = detect_pil_region(grid)

        raws = parser.parse(grid, hint)

        filename_validity = validity_from_filename(Path(source).stem, self._today)
        if filename_validity:
            for raw in raws:
                if not raw.validity.strip():
                    raw.validity = filename_validity

        records = assemble_all(
            raws,
            pol_default=self._config.extraction.default_pol,
            currency_default=self._config.extraction.currency,
            today=self._today,
        )
        if not records:
            logger.warning("No rates extracted from %s with layout %s", source, layout_id)
        else:
            logger.info("%s: %d records (%s)", source, len(records), layout_id)

        run_validity = hint or (records[0].validity if records else filename_validity)
        return ExtractionResult(
            source=source,
            layout=layout_id,
            validity=run_validity,
            region=region,
            records=tuple(records),
        )

    def extract_many(self, paths: Iterable[str | Path], layout: str = AUTO, validity: str = "") -> list[FileOutcome]:
        """
        Extract files one by one; a failing file never stops the batch.

        Returns:
            One FileOutcome per path, in input order
        """
        outcomes: list[FileOutcome] = []
        for path in paths:
            path = Path(path)
            try:
                result = self.extract(path, layout=layout, validity=validity)
            except RateExtractionError as e:
                logger.warning("Skipping %s: %s", path.name, e)
                outcomes.append(FileOutcome(source=path.name, status="error", layout=layout, error=str(e)))
                continue
            except Exception as e:
                logger.exception("Unexpected failure extracting %s", path.name)
                error = f"{type(e).__name__}: {e}"
                outcomes.append(FileOutcome(source=path.name, status="error", layout=layout, error=error))
                continue
            status = "empty" if result.is_empty else "ok"
            outcomes.append(FileOutcome(source=path.name, status=status, layout=result.layout, result=result))
        return outcomes

    def _layout(self, layout: str) -> LayoutParser:
        try:
            return self._layouts[layout]
        except KeyError:
            raise UnknownLayout(layout, sorted(self._layouts)) from None


def with_trade_line(grid: LineTableGrid, source: str) -> LineTableGrid:
    """
    Put the PIL "Trade: <region>" title in front of the dump.

    The title sits outside the tables, so it comes from the OCR prose or,
    failing that, the filename. Dumps that already carry it are returned as is.
    """
    if re.search(r"Trade\s*:", grid.head_text(5), re.IGNORECASE):
        return grid
    m = re.search(r"Trade:\s*([^\n]+)", grid.content, re.IGNORECASE)
    if m:
        return grid.prepend(f"Trade: {m.group(1).strip()}")
    m = PIL_TRADES.search(Path(source).stem.replace("_", " "))
    if m:
        return grid.prepend(f"Trade: {m.group(1)}")
    return grid
