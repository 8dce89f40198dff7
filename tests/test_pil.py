"""
Test the PIL quotation parsers, one trade region at a time.
"""

import pytest

from rate_extract.models import RawExtraction
from rate_extract.parsers.pil import (
    LOCAL_CHARGES_REMARK,
    detect_pil_region,
    fix_latin_america_cells,
    parse_pil,
    parse_pil_rate,
    sort_africa_ports,
)

from conftest import dump


# ============================================================================
# REGION DETECTION
# ============================================================================

@pytest.mark.parametrize("text, expected", [
    ("Trade: Africa", "Africa"),
    ("Trade: Intra Asia", "Intra_Asia"),
    ("Trade: Latin America", "Latin_America"),
    ("Trade: Oceania", "Oceania"),
    ("Trade: South Asia", "South_Asia"),
    ("Row 1: Mombasa | KEMBA | 2600", "Africa"),
    ("Row 1: Chittagong | BDCGP | 500", "South_Asia"),
    ("Row 1: Foo | Bar", ""),
])
def test_detect_pil_region(text, expected):
    assert detect_pil_region(dump(text)) == expected


def test_detect_pil_region_reads_content():
    assert detect_pil_region(dump("Row 0: x | y", content="PIL Oceania quotation")) == "Oceania"


def test_unknown_region_returns_nothing():
    assert parse_pil(dump("Row 0: Foo | Bar | Baz")) == []


# ============================================================================
# AFRICA
# ============================================================================

AFRICA = """
    Trade: Africa
    TABLE 1 (Rows: 3, Cols: 8)
    Row 0: PORTs | CODE | 20'GP | 40'HC | T/T | T/S | FREE TIME | Remark
    Row 1: Mombasa | KEMBA | 2,600+HEA | 3,000+HEA | 30 days | SIN | 14 days |
    Row 2: Tema | GHTEM | 1800 | 2500 | 35 days | SIN 10 days | Subject to ISD | Lome | TGLFW | 1900 | 2600 | 38 days | SIN | 10 days
"""


def test_africa_splits_merged_rows_and_sorts_by_region():
    rows = parse_pil(dump(AFRICA), "NOV 2025")

    assert [r.pod for r in rows] == ["Tema", "Lome", "Mombasa"]
    assert {r.carrier for r in rows} == {"PIL"}
    assert {r.pol for r in rows} == {"BKK/LCH"}
    assert {r.validity for r in rows} == {"NOV 2025"}


def test_africa_merged_cells():
    tema, lome, _ = parse_pil(dump(AFRICA))

    assert (tema.rate20, tema.rate40) == ("1800", "2500")
    assert (tema.transshipment, tema.free_time) == ("SIN", "10 days")
    assert tema.remark == "Subject to ISD"

    assert (lome.rate20, lome.rate40) == ("1900", "2600")
    assert lome.transit_time == "38 days"
    assert lome.free_time == "10 days"
    assert lome.remark == LOCAL_CHARGES_REMARK


def test_africa_rates_keep_surcharge_suffix():
    mombasa = parse_pil(dump(AFRICA))[2]

    assert (mombasa.rate20, mombasa.rate40) == ("2600+HEA", "3000+HEA")
    assert mombasa.free_time == "14 days"
    assert mombasa.remark == LOCAL_CHARGES_REMARK


def test_unknown_african_ports_go_last():
    rows = [RawExtraction(pod="Atlantis"), RawExtraction(pod="Mombasa"), RawExtraction(pod="Tema")]
    assert [r.pod for r in sort_africa_ports(rows)] == ["Tema", "Mombasa", "Atlantis"]


# ============================================================================
# INTRA ASIA
# ============================================================================

INTRA_ASIA = """
    Trade: Intra Asia
    TABLE 1 (Rows: 4, Cols: 11)
    Row 0: PORTs | CODE | BKK 20' | BKK 40' | LCH 20' | LCH 40' | LSR | Free time | T/T | T/S | Remark
    Row 1: Malaysia | | | | | | | | | |
    Row 2: Port Klang | MYPKG | 100 | 200 | 90 | 180 | Include | 7 days | 5 | Direct |
    Row 3: Manila | PHMNL | 300 | 600 | 280 | 560 | 50 | 5 days | 4 | Direct | ** Subject to CIC **
"""


def test_intra_asia_one_record_per_pol():
    rows = parse_pil(dump(INTRA_ASIA))

    assert [(r.pol, r.pod) for r in rows] == [
        ("BKK", "Port Klang"), ("LCH", "Port Klang"),
        ("BKK", "Manila"), ("LCH", "Manila"),
    ]
    bkk, lch = rows[0], rows[1]
    assert (bkk.rate20, bkk.rate40) == ("100", "200")
    assert (lch.rate20, lch.rate40) == ("90", "180")
    assert (bkk.free_time, bkk.transit_time, bkk.transshipment) == ("7 days", "5", "Direct")


def test_intra_asia_remarks():
    rows = parse_pil(dump(INTRA_ASIA))

    assert rows[0].remark == "LSR Include"
    assert rows[2].remark == "LSR: 50, **Subject to CIC**"


# ============================================================================
# LATIN AMERICA
# ============================================================================

LATIN_AMERICA = """
    Trade: Latin America
    TABLE 1 (Rows: 5, Cols: 9)
    Row 0: ECSA Ex LCH
    Row 1: PORTs | CODE | 20'GP | 40'HC | LSR | T/T | T/S | POD F/T | Remark
    Row 2: Santos | BRSSZ | 1800 | 2400 | | 40 days | SIN 8 days | Subj. ISD USD 50 |
    Row 3: WCSA Ex BKK / LCH
    Row 4: Callao | PECLL | 1,500 | 2,000 | 100 | 35-40 days SIN | 8 days | | -
"""


def test_latin_america_west_coast_first():
    rows = parse_pil(dump(LATIN_AMERICA))
    assert [r.pod for r in rows] == ["Callao", "Santos"]


def test_latin_america_section_pol_and_cells():
    callao, santos = parse_pil(dump(LATIN_AMERICA))

    assert callao.pol == "BKK/LCH"
    assert (callao.rate20, callao.rate40) == ("1500", "2000")
    assert (callao.transit_time, callao.transshipment, callao.free_time) == ("35-40 days", "SIN", "8 days")
    assert callao.remark == "LSR 100"

    assert santos.pol == "LCH"
    assert (santos.transshipment, santos.free_time) == ("SIN", "8 days")
    assert santos.remark == "Subj. ISD USD 50"


def test_fix_latin_america_cells_free_time_holds_note():
    assert fix_latin_america_cells("30 days", "SIN", "8 days Subj. ISD 40", "") == (
        "30 days", "SIN", "8 days", "Subj. ISD 40",
    )


def test_fix_latin_america_cells_leaves_clean_rows():
    assert fix_latin_america_cells("30 days", "SIN", "8 days", "") == ("30 days", "SIN", "8 days", "")


# ============================================================================
# OCEANIA
# ============================================================================

OCEANIA = """
    Trade: Oceania
    TABLE 1 (Rows: 2, Cols: 18)
    Row 0: PORTs | CODE | 20' | 40' | 40'HC | T/T | T/S | F/T | REMARK | PORTs | CODE | 20' | 40' | 40'HC | T/T | T/S | F/T | REMARK
    Row 1: Sydney | AUSYD | 1,200+AMS | 2,000+AMS | 2,100+AMS | 14 days | Direct | 7 days | | Auckland | NZAKL | 1,300 | 2,200 | 2,300 | 18 days | SIN | 7 days | Note X
"""


def test_oceania_side_by_side_blocks():
    sydney, auckland = parse_pil(dump(OCEANIA))

    assert (sydney.pod, sydney.rate20, sydney.rate40, sydney.rate40_hq) == ("Sydney", "1200", "2000", "2100")
    assert sydney.remark == "+AMS"
    assert (sydney.transit_time, sydney.transshipment, sydney.free_time) == ("14 days", "Direct", "7 days")

    assert (auckland.pod, auckland.rate20, auckland.rate40_hq) == ("Auckland", "1300", "2300")
    assert auckland.transshipment == "SIN"
    assert auckland.remark == "Note X"


# ============================================================================
# SOUTH ASIA
# ============================================================================

SOUTH_ASIA = """
    Trade: South Asia
    TABLE 1 (Rows: 2, Cols: 9)
    Row 0: PORTs | CODE | BKK 20' | BKK 40' | LCH 20' | LCH 40' | T/T | T/S | FREE TIME
    Row 1: Chattogram | BDCGP | 500 +ISD 50 | 900 +ISD 50 | 480 | 880 | 14 days | SIN | 7 days
"""


def test_south_asia_one_record_per_pol():
    bkk, lch = parse_pil(dump(SOUTH_ASIA))

    assert (bkk.pol, bkk.rate20, bkk.rate40) == ("BKK", "500", "900")
    assert (lch.pol, lch.rate20, lch.rate40) == ("LCH", "480", "880")
    assert bkk.remark == lch.remark == "+ISD USD50"
    assert (bkk.transit_time, bkk.transshipment, bkk.free_time) == ("14 days", "SIN", "7 days")


# ============================================================================
# RATE CELLS
# ============================================================================

@pytest.mark.parametrize("value, expected", [
    ("2,600+HEA ( LSR & ISD included )", ("2600", "+HEA, LSR & ISD included")),
    ("1,200+AMS", ("1200", "+AMS")),
    ("500 +ISD 50", ("500", "+ISD USD50")),
    ("1300", ("1300", "")),
    ("n/a", ("", "")),
    ("", ("", "")),
])
def test_parse_pil_rate(value, expected):
    assert parse_pil_rate(value) == expected
