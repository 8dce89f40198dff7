"""
Test the spreadsheet layouts: RCL, KMTC, IAL and the generic header mapper.
"""

from datetime import date

import pytest

from rate_extract.assembler import assemble_all
from rate_extract.errors import ColumnMappingFailed, UnknownLayout
from rate_extract.grid import SpreadsheetGrid
from rate_extract.parsers import LAYOUTS, get_layout
from rate_extract.parsers.ial import ial_rate, parse_ial
from rate_extract.parsers.kmtc import classify_notices, format_kmtc_validity, parse_kmtc
from rate_extract.parsers.rcl import parse_rcl

from conftest import dump


# ============================================================================
# RCL
# ============================================================================

def rcl_grid() -> SpreadsheetGrid:
    blank = []
    rows = [
        ["RCL FAK RATE"], blank, blank, blank, blank,
        ["Validity", "01/12/2025 - 31/12/2025"],
        blank, blank,
        ["COUNTRY", "POD", "", "POL", "", "ETD", "20'", "40'", "T/S", "T/T", "FREE TIME", "REMARK"],
        ["SINGAPORE", "SINGAPORE", "", "BKK/LCH", "", "MON (BKK PAT & LCH)\nWED (LCH)", 100, 200, "DIRECT", 3, "7 days", "LSS INCL"],
        ["MALAYSIA", "PORT KLANG", "", "LCH", "", "FRI", 150, 300, "T/S SIN", "5", "", ""],
        ["INDONESIA", "JAKARTA", "", "BKK", "", "TUE", 0, 0, "DIRECT", "4", "", ""],
        ["", "", "", "", "", "", "", "", "", "", "", ""],
    ]
    return SpreadsheetGrid.from_rows(rows, fills={"B11": "000000"})


def test_rcl_rows():
    rows = parse_rcl(rcl_grid())

    assert [r.pod for r in rows] == ["SINGAPORE", "PORT KLANG"]
    first = rows[0]
    assert first.carrier == "RCL"
    assert first.pol == "BKK/LCH"
    assert (first.rate20, first.rate40) == ("100", "200")
    assert (first.etd_bkk, first.etd_lch) == ("MON", "MON/WED")
    assert first.transit_time == "3 Days"
    assert first.transshipment == "DIRECT"
    assert first.free_time == "7 days"
    assert first.remark == "LSS INCL"
    assert first.highlighted is False


def test_rcl_validity_from_b6():
    rows = parse_rcl(rcl_grid())
    assert {r.validity for r in rows} == {"1-31 DEC 2025"}


def test_rcl_caller_validity_wins():
    rows = parse_rcl(rcl_grid(), "1-15 DEC 2025")
    assert rows[0].validity == "1-15 DEC 2025"


def test_rcl_black_fill_marks_row():
    port_klang = parse_rcl(rcl_grid())[1]
    assert port_klang.highlighted is True
    assert port_klang.etd_lch == "FRI"


def test_rcl_highlighted_row_reads_tba_after_assembly():
    records = assemble_all(parse_rcl(rcl_grid()), today=date(2025, 11, 15))

    assert [r.pod for r in records] == ["SINGAPORE", "PORT KLANG"]
    port_klang = records[1]
    assert (port_klang.carrier, port_klang.pol, port_klang.pod) == ("RCL", "LCH", "PORT KLANG")
    assert port_klang.highlighted is True
    assert (port_klang.rate20, port_klang.rate40) == ("TBA", "TBA")
    assert (port_klang.etd_bkk, port_klang.etd_lch) == ("TBA", "TBA")
    assert (port_klang.transit_time, port_klang.transshipment) == ("TBA", "TBA")
    assert records[0].rate20 == "100"


def test_rcl_end_date_fallback():
    grid = SpreadsheetGrid.from_rows(
        [[], [], [], [], [], ["Validity", "30/11/2025"], [], [], [],
         ["", "TOKYO", "", "BKK", "", "", 300, 600]],
    )
    # Not a range: the cell is kept as printed
    assert parse_rcl(grid)[0].validity == "30/11/2025"


# ============================================================================
# KMTC
# ============================================================================

AFS = "AFS charge USD30/BL for JP&CN"
LSS = "All rates subject to origin LSS"


def kmtc_grid() -> SpreadsheetGrid:
    blank = []
    rows = [
        ["KMTC UPDATED RATE"], blank, blank, blank,
        ["", "COUNTRY", "POL", "POD", "20'", "40'", "VALIDITY", "", "", "FREE TIME"],
        ["", "CHINA", "BKK", "SHANGHAI", 100, 200, "1-31 Dec", "", "", "7 days"],
        ["", None, "LCH", "NINGBO", 120, 240, "", "", "", ""],
        ["", "VIETNAM", "BKK", "HAIPHONG", 80, 160, "", "", "", "5 days"],
        ["Notice"],
        [AFS],
        [LSS],
    ]
    return SpreadsheetGrid.from_rows(rows, merged=["B6:B7"])


def test_kmtc_rows_stop_at_notice_block():
    rows = parse_kmtc(kmtc_grid(), "NOV 2025")

    assert [r.pod for r in rows] == ["SHANGHAI", "NINGBO", "HAIPHONG"]
    assert rows[0].carrier == "KMTC"
    assert (rows[0].pol, rows[0].rate20, rows[0].rate40) == ("BKK", "100", "200")
    assert rows[0].free_time == "7 days"


def test_kmtc_notice_follows_country():
    rows = parse_kmtc(kmtc_grid(), "NOV 2025")

    assert rows[0].remark == AFS
    # Merged country cell still reads CHINA
    assert rows[1].remark == AFS
    assert rows[2].remark == LSS


def test_kmtc_validity_column_wins():
    rows = parse_kmtc(kmtc_grid(), "NOV 2025")

    assert rows[0].validity.startswith("1-31 DEC ")
    assert rows[1].validity == "NOV 2025"


def test_format_kmtc_validity():
    assert format_kmtc_validity("1-31 Dec", today=date(2025, 1, 1)) == "1-31 DEC 2025"
    assert format_kmtc_validity("1-31 Dec 2025") == "1-31 DEC 2025"


def test_classify_notices():
    notices = classify_notices(["Bring your own seal", AFS, LSS])
    assert notices == {"afs": AFS, "lss": LSS}
    assert classify_notices([]) == {}


# ============================================================================
# IAL
# ============================================================================

def ial_grid() -> SpreadsheetGrid:
    return SpreadsheetGrid.from_rows([
        ["Validity: 1-31 Dec 2025"],
        ["POL", "POD", "Service", "T/T", "T/S", "20'", "40'", "Remark"],
        ["Thailand"],
        ["bkk", "SINGAPORE", "IA1", "3", "Direct", "$1,200", "TBA", "LSS incl"],
        ["* rates exclude local charges", "x"],
        ["THC", "USD 100"],
        ["Remark", "see below"],
        ["LCH", "PASIR GUDANG", "IA2", "4", "T/S SIN", "150", "300", ""],
    ])


def test_ial_rows():
    rows = parse_ial(ial_grid())

    assert [r.pod for r in rows] == ["SINGAPORE", "PASIR GUDANG"]
    first = rows[0]
    assert first.carrier == "Inter Asia"
    assert first.pol == "BKK"
    assert (first.rate20, first.rate40) == ("1200", "")
    assert (first.transit_time, first.transshipment) == ("3", "Direct")
    assert first.remark == "LSS incl"
    assert first.validity == "1-31 DEC 2025"


def test_ial_rate():
    assert ial_rate("$1,200") == "1200"
    assert ial_rate("TBA") == ""
    assert ial_rate("") == ""
    assert ial_rate("on request") == ""


# ============================================================================
# GENERIC + REGISTRY
# ============================================================================

def test_generic_sheet_maps_headers():
    grid = SpreadsheetGrid.from_rows([
        ["Rates"],
        ["Carrier", "POL", "POD", "20'", "40'"],
        ["ONE", "BKK", "TOKYO", 300, 600],
        ["ONE", "BKK", "", 300, 600],
    ])
    rows = get_layout("generic").parse(grid, "1-30 NOV 2025")

    assert len(rows) == 1
    assert (rows[0].carrier, rows[0].pol, rows[0].pod) == ("ONE", "BKK", "TOKYO")
    assert (rows[0].rate20, rows[0].rate40) == ("300", "600")
    assert rows[0].validity == "1-30 NOV 2025"


def test_generic_sheet_without_pod_column():
    grid = SpreadsheetGrid.from_rows([["POL", "Rate 20", "Rate 40"], ["BKK", 300, 600]])
    with pytest.raises(ColumnMappingFailed) as excinfo:
        get_layout("generic").parse(grid)
    assert excinfo.value.header_row == 1


def test_generic_sheet_without_header_row():
    grid = SpreadsheetGrid.from_rows([["hello"], ["world"]])
    with pytest.raises(ColumnMappingFailed):
        get_layout("generic").parse(grid)


def test_layout_falls_back_to_generic_reader_with_its_carrier():
    grid = dump("Row 1: Singapore | 100 | 200")
    rows = LAYOUTS["rcl"].parse(grid)

    assert len(rows) == 1
    assert rows[0].carrier == "RCL"
    assert (rows[0].pod, rows[0].rate20, rows[0].rate40) == ("Singapore", "100", "200")


def test_every_layout_has_a_description():
    for layout_id, parser in LAYOUTS.items():
        assert parser.layout == layout_id
        assert parser.description


def test_unknown_layout():
    with pytest.raises(UnknownLayout) as excinfo:
        get_layout("evergreen")
    assert "rcl" in excinfo.value.known
