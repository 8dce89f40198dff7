"""
Parsers for SINOKOR OCR dumps.

SINOKOR "GUIDE RATE" format has:
- Title line with the validity ("GUIDE RATE FOR 1-30 NOV 2025")
- Rows of COUNTRY | POD | 20' | 40', or POD | 20' | 40' | REMARK once the
  country cell is merged away
- OCR artefacts: rates merged into one cell ("250 500"), and a POD whose
  rates are "--------" with the numbers printed on the next line
- Numbered remarks per country block, printed below the table

SINOKOR SKR feederage format (via Hong Kong) has:
POL_CODE | POL_NAME | POD_CODE | POD_NAME | T/T | TYPE | 20' | 40'
"""

from __future__ import annotations

import re

from ..grid import GridLine, LineTableGrid
from ..logging_utils import get_logger
from ..models import RawExtraction
from .common import DISALLOWED_RATE, RowCarryState, extract_remark, join_remarks, with_days


logger = get_logger(__name__)

CARRIER = "SINOKOR"
DEFAULT_REMARK = "OCF INCL LSS"

HEADER_CELL = re.compile(r"COUNTRY|POL|POD NAME|20offer|SINOKOR|HANSUNG|BKK/LCH", re.IGNORECASE)
MERGED_RATES = re.compile(r"^(\d+)\s+(\d+)$")
DASHES = re.compile(r"^-+$")
NUMBER = re.compile(r"^\d+$")

KNOWN_COUNTRY = re.compile(
    r"^(MAXICO|C\.?CHINA|HONG\s*KONG|S\.?CHINA|N\.?CHINA|VIETNAM|HOCHIMINH|INDONESIA|TAIWAN"
    r"|JP\s*\(?\s*MAIN\s*PORT\s*\)?|JP\s*\(?\s*OUT\s*PORT\s*\)?|RUSSIA|S\.?KOREA|INDIA|MALAYSIA)",
    re.IGNORECASE,
)

INLAND_LKR = "EX.THLKR ADDED ON $100/$150 PER 20'/40HQ FOR INLAND CHARGE"
INLAND_LKR_SPR = "EX.THLKR / THSPR ADDED ON $100/$150 PER 20'/40HQ FOR INLAND CHARGE"
DG_MIN = "DG MUST BE ADDED ON AT LEAST $100/TEU"
FLEXIBAG_MIN = "FLEXIBAG MUST BE ADDED ON AT LEAST $100/20DC"
JAPAN = "OCF INCL LSS / AFR $30 per BL / SERVICE T/S PUSAN"

# Numbered remarks printed under each country block of the guide rate sheet
COUNTRY_REMARKS: dict[str, tuple[str, ...]] = {
    "MAXICO": ("1) OCF INCL LSS",),
    "C.CHINA": ("1) OCF INCL LSS", f"2) {INLAND_LKR_SPR}"),
    "INDIA": ("1) OCF INCL LSS", f"2) {INLAND_LKR}"),
    "MALAYSIA": ("1) OCF INCL LSS", f"2) {INLAND_LKR_SPR}"),
    "HONGKONG": (
        "1) OCF INCL LSS",
        "2) PCS AT DESTINATION $100/$200 IS WAIVED",
        "3) RICE SHIPMENT $100/20DC INCL LSS, DTHC HKD $1500/20DC",
        f"4) {DG_MIN}",
        "5) CONSOL $100/$200 INCL LSS (SUBJECT TO EQUIPMENT AVAILABLE)",
        f"6) {FLEXIBAG_MIN}",
    ),
    "S.CHINA": (
        "1) OCF INCL LSS",
        "2) PCS AT DESTINATION $100/$200 IS WAIVED",
        f"3) {FLEXIBAG_MIN}",
        "4) AFR $30/BL",
    ),
    "N.CHINA": ("1) OCF INCL LSS", "2) AFR $30/BL", "3) SERVICE T/S PUSAN"),
    "VIETNAM": (
        "1) OCF INCL LSS",
        "2) CIC AT DESTINATION WAIVED",
        "3) CONSOL $70/$140 INCL LSS (SUBJECT EQUIPMENT AVAILABLE)",
        f"4) {FLEXIBAG_MIN}",
        f"5) {DG_MIN}",
    ),
    "HOCHIMINH": (
        "1) OCF INCL LSS",
        "2) CIC AT DESTINATION WAIVED",
        "3) CONSOL $70/$140 INCL LSS (SUBJECT EQUIPMENT AVAILABLE)",
        f"4) {FLEXIBAG_MIN}",
        f"5) {DG_MIN}",
    ),
    "INDONESIA": ("1) OCF INCL LSS", f"2) {INLAND_LKR}", f"3) {DG_MIN}"),
    "TAIWAN": ("OCF INCL LSS",),
    "JP(MAIN PORT)": (JAPAN,),
    "JP(OUT PORT)": (JAPAN,),
    "RUSSIA": ("OCF INCL LSS",),
    "S.KOREA": (
        "1) OCF INCL LSF / NES / CIS / CRS",
        "2) CONSOL PUS $420/840 + LSF (INCL NES + CRS)",
        "3) CONSOL INC,PKT $520/1040 + LSF (INCL NES + CRS + CIS)",
        f"4) {FLEXIBAG_MIN}",
        f"5) {DG_MIN}",
    ),
}

VALIDITY_TITLE = re.compile(
    r"(\d{1,2}[-\s]*\d{0,2})\s*(JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC)[A-Z]*\s*(\d{4})",
    re.IGNORECASE,
)


# ============================================================================
# GUIDE RATE TABLE
# ============================================================================

def parse_sinokor(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a SINOKOR guide rate dump.

    A POD whose rate cells read "--------" is held as pending; the next line
    made of two numbers ("250 | 500", with or without a "Row N:" prefix)
    completes it. A newer pending POD replaces an unresolved one.

    Args:
        grid: OCR table dump
        validity: Caller override; when empty the title range is used

    Returns:
        List of RawExtraction
    """
    if not validity:
        validity = extract_sinokor_validity(grid.raw_lines())

    rows: list[RawExtraction] = []
    state = RowCarryState()

    def emit(pod: str, rate20: str, rate40: str) -> None:
        clean_pod, remark = sinokor_remark(pod, state.area)
        rows.append(RawExtraction(
            carrier=CARRIER,
            pol="BKK/LCH",
            pod=clean_pod,
            rate20=rate20,
            rate40=rate40,
            validity=validity,
            remark=remark,
        ))

    for line in grid.lines():
        if line.kind == "table":
            state.reset()
            continue

        if line.kind == "text":
            if state.pending_pod and len(line.cells) == 2:
                _complete_pending(state, line, emit)
            continue

        if not line.is_row:
            continue

        cells = line.cells
        if len(cells) < 2:
            continue
        if HEADER_CELL.search(cells[0]) or cells[0].startswith(":unselected:"):
            continue

        parsed = _split_row(cells, state)
        if parsed is None:
            continue
        country, pod, rate20, rate40 = parsed

        if country and not NUMBER.match(country) and KNOWN_COUNTRY.match(country):
            state.area = country

        if DISALLOWED_RATE.search(rate20) or DISALLOWED_RATE.search(rate40):
            continue
        if re.fullmatch(r"[\d\-]+", pod):
            continue
        if DASHES.match(rate20) or DASHES.match(rate40):
            state.hold(pod)
            continue

        rate20 = _digits(rate20)
        rate40 = _digits(rate40)
        if pod and (rate20 or rate40):
            emit(pod, rate20, rate40)

    return rows


def _split_row(cells: tuple[str, ...], state: RowCarryState) -> tuple[str, str, str, str] | None:
    """
    Sort a row into (country, pod, rate20, rate40).

    Returns None for rows consumed here (pending POD set or completed).
    """
    country = ""

    if len(cells) >= 4:
        if NUMBER.match(cells[1]):
            # POD | 20' | 40' | REMARK
            pod, rate20, rate40 = cells[0], cells[1], cells[2]
        else:
            country, pod, rate20, rate40 = cells[0], cells[1], cells[2], cells[3]
        merged = MERGED_RATES.match(rate20)
        if merged:
            rate20, rate40 = merged.groups()
        return country, pod, rate20, rate40

    if len(cells) == 3:
        first, second, third = cells
        if not NUMBER.match(third) and re.search(r"[A-Za-z]{3,}", third):
            merged = MERGED_RATES.match(second)
            if merged:
                return "", first, merged.group(1), merged.group(2)
            # Country header row: COUNTRY | POD | "SELL AT PRD SALES GUIDE"
            return first, second, third, ""
        merged = MERGED_RATES.match(second)
        if merged:
            return "", first, merged.group(1), merged.group(2)
        return "", first, second, third

    first, second = cells[0], cells[1]
    if DASHES.match(second) and not NUMBER.match(first):
        state.hold(first)
        return None
    merged = MERGED_RATES.match(second)
    if merged:
        return "", first, merged.group(1), merged.group(2)
    if state.pending_pod:
        rate20, rate40 = _digits(first), _digits(second)
        pod = state.release()
        if rate20 or rate40:
            return "", pod, rate20, rate40
    return None


def _complete_pending(state: RowCarryState, line: GridLine, emit) -> None:
    rate20 = _digits(line.cells[0])
    rate40 = _digits(line.cells[1])
    pod = state.release()
    if rate20 or rate40:
        emit(pod, rate20, rate40)
    else:
        logger.debug("Dropped pending POD %s: no rates on %r", pod, line.raw)


def _digits(value: str) -> str:
    return re.sub(r"[^0-9]", "", value)


def sinokor_remark(pod: str, country: str = "") -> tuple[str, str]:
    """
    Clean POD plus its remark: the POD's own remark, then the country notes.

    Example:
        ("MANZANILLO (T/S PUS)", "MAXICO") -> ("MANZANILLO", "T/S PUS; 1) OCF INCL LSS")
    """
    clean_pod, pod_remark = extract_remark(pod)
    country_remark = country_remarks(country)
    remark = join_remarks(pod_remark, country_remark, sep="; ")
    return clean_pod, remark or DEFAULT_REMARK


def country_remarks(country: str) -> str:
    """Numbered notes for a country block; "" when the country is unknown."""
    upper = country.strip().upper()
    if not upper:
        return ""
    compact = upper.replace(" ", "")

    notes = COUNTRY_REMARKS.get(upper) or COUNTRY_REMARKS.get(compact)
    if notes is None:
        for key, value in COUNTRY_REMARKS.items():
            key_compact = key.replace(" ", "")
            if key_compact in compact or compact in key_compact:
                notes = value
                break

    return "; ".join(notes) if notes else ""


def extract_sinokor_validity(lines) -> str:
    """
    Validity from the title line: "GUIDE RATE FOR 1-30 NOV 2025" -> "1-30 NOV 2025".

    A single day is read as the month end ("30 NOV 2025" -> "1-30 NOV 2025").
    Empty when no title carries a date.
    """
    for line in lines:
        m = VALIDITY_TITLE.search(line)
        if not m:
            continue
        day_range = re.sub(r"\s+", "", m.group(1))
        if "-" not in day_range:
            day_range = f"1-{day_range}"
        return f"{day_range} {m.group(2)} {m.group(3)}".upper()

    return ""


# ============================================================================
# SKR FEEDERAGE TABLE
# ============================================================================

SKR_HEADER = re.compile(r"POL|POD|20offer|Feederage|SINOKOR", re.IGNORECASE)


def parse_sinokor_skr(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a SINOKOR SKR feederage dump (rates via Hong Kong).

    OCR sometimes merges the last two cells into "250 400", leaving seven
    cells instead of eight.

    Args:
        grid: OCR table dump
        validity: Caller override; when empty the title range is used

    Returns:
        List of RawExtraction
    """
    if not validity:
        validity = extract_sinokor_validity(grid.raw_lines())

    rows: list[RawExtraction] = []

    for line in grid.rows():
        cells = line.cells
        if len(cells) < 7 or SKR_HEADER.search(cells[0]):
            continue

        pol_name, pod_name = cells[1], cells[3]
        transit, container = cells[4], cells[5]

        if len(cells) >= 8:
            rate20, rate40 = cells[6], cells[7]
        else:
            merged = MERGED_RATES.match(cells[6])
            rate20, rate40 = merged.groups() if merged else (cells[6], "")

        if not pod_name or re.match(r"POD|NAME|Type", pod_name, re.IGNORECASE):
            continue

        rate20, rate40 = _digits(rate20), _digits(rate40)
        if not rate20 and not rate40:
            continue

        remark = container.upper() if container and container.upper() != "GP" else ""
        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=pol_name or "HONG KONG",
            pod=pod_name,
            rate20=rate20,
            rate40=rate40,
            transit_time=with_days(transit) or "TBA",
            validity=validity,
            remark=remark,
        ))

    return rows
