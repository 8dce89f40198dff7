"""
Test the shared parser building blocks on literal strings.
"""

import pytest

from rate_extract.grid import SpreadsheetGrid
from rate_extract.parsers.common import (
    RowCarryState,
    cell_at,
    clean_rate,
    detect_header_row,
    extract_remark,
    find_header_row,
    is_highlighted,
    join_remarks,
    leading_number,
    map_columns,
    map_pol_to_etd,
    score_header,
    split_etd,
    strip_parentheses,
    with_days,
)


# ============================================================================
# HEADER DETECTION + COLUMN MAPPING
# ============================================================================

def test_score_header_counts_each_keyword_once():
    assert score_header(["POL", "POD", "20'", "40'"]) == 4
    assert score_header(["Singapore", "Direct"]) == 0


def test_detect_header_row():
    grid = SpreadsheetGrid.from_rows([
        ["Shipping rates"],
        ["POL", "POD", "20'", "40'"],
        ["BKK", "TOKYO", 300, 600],
    ])
    assert detect_header_row(grid) == 2


def test_detect_header_row_falls_back_to_first_row():
    grid = SpreadsheetGrid.from_rows([["hello"], ["world"]])
    assert find_header_row(grid) is None
    assert detect_header_row(grid) == 1


def test_map_columns():
    mapping = map_columns(["Carrier", "Port of Loading", "Destination", "20'GP", "40'HC", "T/T", "Free time", "Remark"])
    assert mapping.carrier == 1
    assert mapping.pol == 2
    assert mapping.pod == 3
    assert mapping.rate20 == 4
    assert mapping.rate40 == 5
    assert mapping.tt == 6
    assert mapping.freetime == 7
    assert mapping.remark == 8
    assert mapping.ts is None


def test_map_columns_skips_blank_headers():
    mapping = map_columns(["", "POD"])
    assert mapping.pod == 2
    assert mapping.get("pol") is None


# ============================================================================
# RATE CLEANING
# ============================================================================

@pytest.mark.parametrize("value, expected", [
    ("1,234 USD", "1234"),
    (500.0, "500"),
    ("$450", "450"),
    ("12.50", "12.50"),
    ("-----", ""),
    ("TBA", ""),
    ("SELL AT PRD SALES GUIDE", ""),
    ("CHECK", ""),
    (None, ""),
])
def test_clean_rate(value, expected):
    assert clean_rate(value) == expected


def test_clean_rate_is_idempotent():
    for value in ("1,234 USD", "$60 (INC.LSS)", "-----", "12.50"):
        assert clean_rate(clean_rate(value)) == clean_rate(value)


def test_leading_number():
    assert leading_number("2,600+HEA") == "2600"
    assert leading_number("$60 (INC.LSS)") == "60"
    assert leading_number("N/A") == ""


def test_with_days():
    assert with_days("5") == "5 Days"
    assert with_days("7 days") == "7 days"
    assert with_days("TBA") == ""
    assert with_days("") == ""


# ============================================================================
# REMARK EXTRACTION
# ============================================================================

@pytest.mark.parametrize("pod, expected", [
    ("MANZANILLO (T/S PUS)", ("MANZANILLO", "T/S PUS")),
    ("PORT KLANG (WEST) (LCH ONLY)", ("PORT KLANG WEST", "LCH ONLY")),
    ("BUSAN T/S PUS", ("BUSAN", "T/S PUS")),
    ("SINGAPORE", ("SINGAPORE", "")),
    ("  JAKARTA  ", ("JAKARTA", "")),
])
def test_extract_remark(pod, expected):
    assert extract_remark(pod) == expected


def test_strip_parentheses():
    assert strip_parentheses("SHANGHAI (CNSHA)") == "SHANGHAI"
    assert strip_parentheses("HONG KONG") == "HONG KONG"


def test_join_remarks_skips_empty_and_repeats():
    assert join_remarks("LSS INCL", "", "LSS INCL", "T/S SIN") == "LSS INCL, T/S SIN"
    assert join_remarks("a", "b", sep="; ") == "a; b"
    assert join_remarks() == ""


# ============================================================================
# HIGHLIGHT + ETD
# ============================================================================

def test_is_highlighted():
    assert is_highlighted("000000")
    assert is_highlighted("FF000000")
    assert is_highlighted("333333")
    assert not is_highlighted("FFFFFF")
    assert not is_highlighted(None)


def test_split_etd_tags_by_port():
    assert split_etd("MON (BKK PAT & LCH)\nWED (LCH)") == ("MON", "MON/WED", "")


def test_split_etd_reattaches_split_tags():
    assert split_etd("MON (BKK/LCH)") == ("MON", "MON", "")


def test_split_etd_untagged_goes_to_lch():
    assert split_etd("FRI") == ("", "FRI", "")


def test_split_etd_drops_ssw_only_days():
    assert split_etd("SUN (SSW)\nTUE (BKK)", "LSS INCL") == ("TUE", "", "LSS INCL / SSW")


def test_split_etd_empty_cell_keeps_remark():
    assert split_etd("", "note") == ("", "", "note")


@pytest.mark.parametrize("pol, fallback, expected", [
    ("BKK", "lch", ("MON", "")),
    ("LKB", "lch", ("", "MON")),
    ("LCH/LKE", "lch", ("", "MON")),
    ("BKK/LCH", "lch", ("MON", "MON")),
    ("SGN", "lch", ("", "MON")),
    ("SGN", "both", ("MON", "MON")),
    ("SGN", "bkk", ("MON", "")),
])
def test_map_pol_to_etd(pol, fallback, expected):
    assert map_pol_to_etd(pol, "MON", fallback=fallback) == expected


def test_map_pol_to_etd_without_sailing():
    assert map_pol_to_etd("BKK", "") == ("", "")


# ============================================================================
# ROW CARRY STATE
# ============================================================================

def test_carry_remembers_last_value():
    state = RowCarryState()
    assert state.carry("transit_time", "5") == "5"
    assert state.carry("transit_time", "") == "5"
    assert state.carry("transit_time", " 7 ") == "7"


def test_pending_pod_is_released_once():
    state = RowCarryState()
    state.hold("MANZANILLO")
    state.hold("ENSENADA")
    assert state.release() == "ENSENADA"
    assert state.release() is None


def test_reset_forgets_everything():
    state = RowCarryState(transit_time="5", area="VIETNAM", pending_pod="X")
    state.extras["service"] = "VTX1"
    state.reset()
    assert state == RowCarryState()


def test_cell_at():
    cells = ("a", " b ")
    assert cell_at(cells, 1) == "b"
    assert cell_at(cells, 5) == ""
    assert cell_at(cells, -1) == ""
