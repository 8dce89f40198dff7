"""
Rate Extraction Module

Turns freight-carrier rate sheets into the 21-column FCL export format:
- Spreadsheets (.xlsx/.xls/.csv) read cell by cell
- PDFs read from their cached OCR table dumps
- One parser per carrier layout, picked from the filename

Usage:
    from rate_extract import RateExtractionService

    service = RateExtractionService()
    result = service.extract(Path("GUIDE RATE FOR 1-30 NOV 2025_SINOKOR.pdf"))
"""

from .detector import PatternDetector, detect_layout
from .errors import ColumnMappingFailed, RateExtractionError, SourceUnreadable, UnknownLayout
from .models import FCL_COLUMNS, ExtractionResult, RateRecord, RawExtraction
from .service import FileOutcome, RateExtractionService

__version__ = "0.1.0"

__all__ = [
    "RateExtractionService",
    "FileOutcome",
    "PatternDetector",
    "detect_layout",
    "RateRecord",
    "RawExtraction",
    "ExtractionResult",
    "FCL_COLUMNS",
    "RateExtractionError",
    "SourceUnreadable",
    "ColumnMappingFailed",
    "UnknownLayout",
]
