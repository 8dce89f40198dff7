"""
Test RateExtractionService: loading, detection, validity resolution and batches.
"""

import json

import pytest

from rate_extract.errors import SourceUnreadable, UnknownLayout
from rate_extract.export import download_filename
from rate_extract.grid import SheetImage, SpreadsheetGrid
from rate_extract.parsers import LAYOUTS, LayoutParser
from rate_extract.service import RateExtractionService, with_trade_line

from conftest import dump


HEUNG_A_DUMP = """\
TABLE 1 (Rows: 3, Cols: 9)
Row 0: POL | POD | 20' | 40' | 40HQ | SAILING | DIRECT/T/S | T/T | SURCHARGE
Row 1: BKK | BUSAN (KRPUS) | 250 | 500 | 500 | TUE | DIRECT | 7 | LSS INCL
Row 2: LCH | INCHEON | Check port | Check port | FRI | DIRECT | 10 | -
"""

SITC_DUMP = """\
TABLE 1 (Rows: 2, Cols: 9)
Row 0: POL | POD | Service Route | 20'GP | 40'HC | SURCHARGE | T/T | T/S | FREE TIME
Row 1: BKK | HOCHIMINH | VTX1 | 100 | 200 | INC LSS | 3 | Direct | 7 days
"""

AFRICA_DUMP = """\
TABLE 1 (Rows: 2, Cols: 8)
Row 0: PORTs | CODE | 20'GP | 40'HC | T/T | T/S | FREE TIME | Remark
Row 1: Mombasa | KEMBA | 2,600+HEA | 3,000+HEA | 30 days | SIN | 14 days |
"""


# ============================================================================
# SPREADSHEETS
# ============================================================================

def test_extract_generic_csv(service, generic_csv):
    result = service.extract(generic_csv)

    assert result.source == "rates.csv"
    assert result.layout == "generic"
    assert result.validity == "NOV 2025"
    assert len(result.records) == 1

    record = result.records[0]
    assert (record.carrier, record.pol, record.pod) == ("ONE", "BKK", "TOKYO")
    assert (record.rate20, record.rate40, record.rate40_hq) == ("300", "600", "600")
    assert record.currency == "USD"


def test_validity_hint_applies_to_every_row(service, generic_csv):
    result = service.extract(generic_csv, validity="1-15 DEC 2025")

    assert result.validity == "1-15 DEC 2025"
    assert result.records[0].validity == "1-15 DEC 2025"


def test_unknown_layout_fails_before_reading(service, tmp_path):
    with pytest.raises(UnknownLayout):
        service.extract(tmp_path / "missing.xlsx", layout="nope")


def test_unsupported_file(service, tmp_path):
    path = tmp_path / "rates.docx"
    path.write_bytes(b"PK")
    with pytest.raises(SourceUnreadable, match="unsupported"):
        service.extract(path)


# ============================================================================
# OCR DUMPS
# ============================================================================

def test_pdf_without_cached_dump(service, tmp_path):
    with pytest.raises(SourceUnreadable, match="no cached OCR dump"):
        service.extract(tmp_path / "HEUNG A DEC.pdf")


def test_pdf_reads_cached_dump_and_prose(service, app_config, tmp_path):
    ocr_dir = app_config.extraction.ocr_results_dir
    (ocr_dir / "HEUNG A DEC_tables.txt").write_text(HEUNG_A_DUMP, encoding="utf-8")
    (ocr_dir / "HEUNG A DEC_azure_result.json").write_text(
        json.dumps({"analyzeResult": {"content": "Rates valid until 15/12/2025"}}), encoding="utf-8"
    )

    result = service.extract(tmp_path / "HEUNG A DEC.pdf")

    assert result.layout == "heung_a"
    assert result.validity == "15 DEC 2025"
    assert [r.pod for r in result.records] == ["BUSAN", "INCHEON"]
    assert {r.validity for r in result.records} == {"15 DEC 2025"}
    assert result.records[1].rate20 == "Check port"


def test_layout_detected_from_dump_content(service, tmp_path):
    path = tmp_path / "dump_tables.txt"
    path.write_text(SITC_DUMP, encoding="utf-8")

    result = service.extract(path)

    assert result.layout == "sitc"
    assert result.records[0].carrier == "SITC"
    assert result.records[0].pod == "HOCHIMINH"


def test_detect_keeps_filename_layout(service):
    grid = dump(SITC_DUMP)
    assert service.detect("BOXMAN NOV.txt", grid) == "boxman"
    assert service.detect("notes.txt", grid) == "sitc"
    assert service.detect("notes.txt") == "generic"


def test_detect_kmtc_from_header_logo(service):
    with_logo = SpreadsheetGrid.from_rows([["POD"]], images=[SheetImage("E1", 218, 69)])

    assert service.detect("UPDTED RAET DEC.xlsx", with_logo) == "kmtc"
    assert service.detect("BOXMAN DEC.xlsx", with_logo) == "boxman"
    assert service.detect("UPDTED RAET DEC.xlsx", SpreadsheetGrid.from_rows([["POD"]])) == "generic"


def test_pil_region_from_filename(service, tmp_path):
    path = tmp_path / "PIL_AFRICA_tables.txt"
    path.write_text(AFRICA_DUMP, encoding="utf-8")

    result = service.extract(path)

    assert result.layout == "pil"
    assert result.region == "Africa"
    assert [r.pod for r in result.records] == ["Mombasa"]
    assert download_filename(result) == "PIL_AFRICA_NOV_2025.xlsx"


def test_filename_validity_when_dump_has_no_title(service, tmp_path):
    path = tmp_path / "GUIDE RATE FOR 1-30 NOV 2025_SINOKOR_tables.txt"
    path.write_text(
        "TABLE 1 (Rows: 2, Cols: 4)\n"
        "Row 0: COUNTRY | POD | 20' | 40'\n"
        "Row 1: VIETNAM | HAIPHONG | 150 | 300\n",
        encoding="utf-8",
    )

    result = service.extract(path)

    assert result.layout == "sinokor"
    assert [r.pod for r in result.records] == ["HAIPHONG"]
    assert result.records[0].validity == "1-30 NOV 2025"
    assert result.validity == "1-30 NOV 2025"


def test_trade_line_from_filename():
    grid = with_trade_line(dump("Row 0: a | b"), "PIL_Oceania_quotation.pdf")
    assert grid.head_text(1) == "Trade: Oceania"


def test_trade_line_from_prose():
    grid = with_trade_line(dump("Row 0: a | b", content="PIL\nTrade: South Asia\nValidity"), "x.pdf")
    assert grid.head_text(1) == "Trade: South Asia"


def test_trade_line_already_present():
    grid = dump("Trade: Africa\nRow 0: a | b")
    assert with_trade_line(grid, "PIL_Oceania.pdf") is grid


# ============================================================================
# BATCHES
# ============================================================================

def test_extract_many_isolates_failures(service, generic_csv, tmp_path):
    header_only = tmp_path / "header_only.csv"
    header_only.write_text("Carrier,POL,POD,20',40'\n", encoding="utf-8")
    docx = tmp_path / "rates.docx"
    docx.write_bytes(b"PK")

    outcomes = service.extract_many([generic_csv, tmp_path / "missing.xlsx", docx, header_only])

    assert [o.status for o in outcomes] == ["ok", "error", "error", "empty"]
    assert [o.source for o in outcomes] == ["rates.csv", "missing.xlsx", "rates.docx", "header_only.csv"]
    assert outcomes[0].record_count == 1
    assert "file not found" in outcomes[1].error
    assert outcomes[3].record_count == 0
    assert outcomes[1].result is None


def test_extract_many_survives_a_broken_layout(app_config, today, generic_csv, tmp_path):
    def broken(grid, validity=""):
        raise RuntimeError("cell index out of range")

    layouts = {**LAYOUTS, "boxman": LayoutParser("boxman", "BOXMAN rate card", "BOXMAN", lines=broken)}
    service = RateExtractionService(app_config, layouts=layouts, today=today)
    dump_path = tmp_path / "BOXMAN NOV_tables.txt"
    dump_path.write_text("TABLE 1 (Rows: 1, Cols: 2)\nRow 0: POL | POD\n", encoding="utf-8")

    outcomes = service.extract_many([dump_path, generic_csv])

    assert [o.status for o in outcomes] == ["error", "ok"]
    assert outcomes[0].error == "RuntimeError: cell index out of range"
    assert outcomes[1].record_count == 1
