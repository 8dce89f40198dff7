"""
Parsers for WANHAI OCR dumps.

Three rate cards share the carrier name:

Asia ("FAK RATE (ASIA)"):
    Port of Loading | Nation | Destination | Port code | 20' | 40'
    POL cells hold UN/LOCODEs (THBKK, THLCB, THLCH, THLKA), sometimes several
    at once; a row of bare rates under a priced row is the LCH price.

Middle East:
    POL | POD ("AEJEA ( JEBEL ALI )") | 20GP | 40HQ | 20RF | 40RH | WBS | WRS

India:
    POD | LKA 20 | LKA 40HQ | LCB 20 | LCB 40HQ | 20RF | 40RH
    Rates may carry a "subject to IHC" note.
"""

from __future__ import annotations

from datetime import date
import re

from ..grid import LineTableGrid
from ..logging_utils import get_logger
from ..models import RawExtraction
from .common import cell_at


logger = get_logger(__name__)

CARRIER = "WANHAI"

PORT_CODE = re.compile(r"^[A-Z]{2}[A-Z]{3}$")
POL_CODES = re.compile(r"\b(THBKK|THLCB|THLCH|THLKA)\b")
POL_NAMES = {"THBKK": "BKK", "THLCB": "LCB", "THLCH": "LCH", "THLKA": "LKA"}
NATION_CODES = frozenset({"JP", "HK", "PH", "TW", "KR", "VN", "MY", "SG", "ID", "CN"})
NUMBER = re.compile(r"^\d+$")

# Destination / port code -> remark printed beside the Asia card
ASIA_REMARKS = {
    "HAIPONG": "include CAF WBS,CIC",
    "VNHPH": "include CAF WBS,CIC",
    "DANANG": "T/S SERVICE",
    "VNDAD": "T/S SERVICE",
    "PUSAN": "include CAF WBS,CIC",
    "KRPUS": "include CAF WBS,CIC",
    "INCHEON": "include CAF WBS,CIC",
    "KRINC": "include CAF WBS,CIC",
}
PHILIPPINE_PORTS = ("CEBU", "DAVAO", "MANILA SOUTH", "MANILA NORTH", "SUBIC BAY",
                    "PHCEB", "PHDVO", "PHMNS", "PHMNL", "PHSFS")
PHILIPPINE_REMARK = "include CAF WBS, D-CIC,D-SUR2,D-EIBS only transit at TWKHH only"

_MON = r"(JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC)"


def parse_wanhai(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a WANHAI dump, picking the card from its header rows.

    Args:
        grid: OCR table dump
        validity: Caller validity

    Returns:
        List of RawExtraction
    """
    card = wanhai_card(grid)
    logger.debug("WANHAI card: %s", card)
    if card == "india":
        return parse_wanhai_india(grid, validity)
    if card == "middle_east":
        return parse_wanhai_middle_east(grid, validity)
    return parse_wanhai_asia(grid, validity)


def wanhai_card(grid: LineTableGrid) -> str:
    """"india", "middle_east" or "asia"."""
    for line in grid.rows():
        text = " | ".join(line.cells)
        if line.number in (0, 1) and re.search(r"LKA.*LCB", text, re.IGNORECASE):
            return "india"
        if line.number == 2 and re.search(r"POD.*20.*40.*20RF.*40R", text, re.IGNORECASE):
            return "india"
        if line.number == 1 and re.search(r"POL.*POD.*DRY.*RF.*WBS", text, re.IGNORECASE):
            return "middle_east"
    return "asia"


# ============================================================================
# ASIA
# ============================================================================

def parse_wanhai_asia(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse the Asia card.

    Rates are grouped per (destination, 20', 40') across origins, then
    BKK and LCB with the same price collapse into one "BKK/LCB" row.
    """
    remarks = asia_remarks(grid.content)
    rows = [line for line in grid.rows() if (line.number or 0) > 1]

    # A priced row followed by a bare-rates row: the second row is the LCH price
    has_lch_row: set[int] = set()
    for current, following in zip(rows, rows[1:]):
        if _is_priced_destination(current.cells) and _is_bare_rates(following.cells):
            has_lch_row.add(id(current))

    grouped: dict[tuple[str, str, str], dict] = {}
    destination = port_code = ""
    last_pols = ["THLCB"]

    for line in rows:
        cells = line.cells
        text = " | ".join(cells)
        if len(cells) < 2 or re.search(r"Port of Loading|Nation|Destination|Port code|20SD|40.*HQ", text, re.IGNORECASE):
            continue

        first = cells[0]
        pols = list(dict.fromkeys(POL_CODES.findall(first)))
        if pols:
            last_pols = pols
            dest, code, rate20, rate40 = _asia_pol_row(cells, destination, port_code)
        else:
            pols = last_pols
            dest, code, rate20, rate40, lch_only = _asia_continuation(cells, destination, port_code)
            if lch_only:
                pols = ["THLCH"]

        rate20 = re.sub(r"[^0-9]", "", rate20)
        rate40 = re.sub(r"[^0-9]", "", rate40)

        dest = re.sub(r"\s*RUBBER\s*WOOD\s*", "", dest, flags=re.IGNORECASE).strip()
        if dest and dest not in NATION_CODES and not is_port_code(dest, code) and not NUMBER.match(dest):
            destination = dest
        if code and PORT_CODE.match(code):
            port_code = code

        if not (rate20 or rate40) or not destination:
            continue
        if id(line) in has_lch_row:
            pols = [pol for pol in pols if pol != "THLCH"]

        remark = remarks.get(destination.upper()) or remarks.get(port_code, "")
        entry = grouped.setdefault((destination, rate20, rate40), {"remark": remark, "pols": []})
        for code_ in pols:
            name = POL_NAMES.get(code_, code_)
            if name not in entry["pols"]:
                entry["pols"].append(name)

    out: list[RawExtraction] = []
    for (dest, rate20, rate40), entry in grouped.items():
        for pol in combine_pols(entry["pols"], ("BKK", "LCB")):
            out.append(RawExtraction(
                carrier=CARRIER,
                pol=pol,
                pod=dest,
                rate20=rate20,
                rate40=rate40,
                validity=validity,
                remark=entry["remark"],
            ))
    return out


def is_port_code(value: str, code: str = "") -> bool:
    """
    "JPTYO" is a port code, "TOKYO" is a port name.

    Five letters alone prove nothing: the value must repeat the row's code
    cell or start with a known nation prefix.
    """
    if not PORT_CODE.match(value):
        return False
    return value == code or value[:2] in NATION_CODES


def _asia_pol_row(cells, destination: str, port_code: str) -> tuple[str, str, str, str]:
    c1, c2, c3, c4, c5 = (cell_at(cells, i) for i in range(1, 6))

    if len(cells) >= 6:
        if c1 in NATION_CODES or not c1:
            if not c1 and not c2 and NUMBER.match(c3):
                return destination, port_code, c3, c4
            return c2, c3, c4, c5
        return c1, c2, c3, c4

    if len(cells) >= 4:
        if not c1 and not c2 and NUMBER.match(c3):
            return destination, port_code, c3, c4
        if not c1 and NUMBER.match(c2):
            return destination, port_code, c2, c3
        if NUMBER.match(c1):
            return destination, port_code, c1, c2
        if PORT_CODE.match(c2):
            return c1, c2, c3, c4
        return "", "", "", ""

    if len(cells) >= 3 and NUMBER.match(c1):
        return destination, port_code, c1, c2
    return "", "", "", ""


def _asia_continuation(cells, destination: str, port_code: str) -> tuple[str, str, str, str, bool]:
    c0, c1, c2, c3, c4 = (cell_at(cells, i) for i in range(5))

    if len(cells) >= 4:
        if PORT_CODE.match(c1):
            return c0, c1, c2, c3, False
        if PORT_CODE.match(c2):
            return c1, c2, c3, c4, False
        if not c0 and NUMBER.match(c1):
            return destination, port_code, c1, c2, True
    elif len(cells) >= 3:
        if not c0 and NUMBER.match(c1):
            return destination, port_code, c1, c2, True
    elif NUMBER.match(c0):
        return destination, port_code, c0, c1, False
    return "", "", "", "", False


def _is_priced_destination(cells) -> bool:
    text = " | ".join(cells)
    return bool(re.search(r"\|.*[A-Z]{2}[A-Z]{3}.*\|\s*\d+\s*\|\s*\d+", text))


def _is_bare_rates(cells) -> bool:
    return len(cells) >= 3 and not cells[0] and bool(NUMBER.match(cells[1])) and bool(NUMBER.match(cells[2]))


def combine_pols(pols: list[str], pair: tuple[str, str]) -> list[str]:
    """
    Origins for one price: the pair collapses into "A/B" when both are present.

    Example:
        (["BKK", "LCH", "LCB"], ("BKK", "LCB")) -> ["BKK/LCB", "LCH"]
    """
    ordered = sorted(pols)
    first, second = pair
    if first in ordered and second in ordered:
        return [f"{first}/{second}"] + [pol for pol in ordered if pol not in pair]
    return ordered


def asia_remarks(content: str) -> dict[str, str]:
    """Destination and port code -> remark for the Asia card."""
    remarks = dict(ASIA_REMARKS)
    philippine = PHILIPPINE_REMARK
    m = re.search(r"(include CAF WBS,?\s*D-CIC,?\s*D-SUR2,?\s*D-EIBS[^\n]+transit[^\n]+TWKHH[^\n]*)", content, re.IGNORECASE)
    if m:
        philippine = m.group(1).strip()
    for port in PHILIPPINE_PORTS:
        remarks[port] = philippine
    return remarks


# ============================================================================
# MIDDLE EAST
# ============================================================================

def parse_wanhai_middle_east(grid: LineTableGrid, validity: str = "", today: date | None = None) -> list[RawExtraction]:
    """POL | POD (code + name) | 20GP | 40HQ ...; "X" rates mean not offered."""
    if not validity:
        validity = _header_validity(grid, rf"VALID\s+(\d{{1,2}}[-–]\d{{1,2}})\s*{_MON}", today)

    rows: list[RawExtraction] = []
    for line in grid.rows():
        if (line.number or 0) <= 2 or len(line.cells) < 4:
            continue
        first, second, third, fourth = line.cells[:4]
        if re.match(r"^X$", third, re.IGNORECASE) or re.match(r"^:selected:$", third, re.IGNORECASE):
            continue

        pol = "BKK"
        combined = re.search(r"TH(BKK).*/(LCH|LCB)", first, re.IGNORECASE)
        single = re.search(r"TH(BKK|LCB|LCH|LKA)", first, re.IGNORECASE)
        if combined:
            pol = f"{combined.group(1)}/{combined.group(2)}".upper()
        elif single:
            pol = single.group(1).upper()

        m = re.match(r"^([A-Z]{5})\s*\(\s*(.+?)\s*\)", second) or re.match(r"^([A-Z]{5})\s+(.+)", second)
        pod = f"{m.group(1)} ({m.group(2).strip()})" if m else second
        if not pod:
            continue

        rate20 = re.sub(r"[^0-9]", "", third)
        rate40 = re.sub(r"[^0-9]", "", fourth)
        if not rate20 and not rate40:
            continue

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol=pol,
            pod=pod,
            rate20=rate20,
            rate40=rate40,
            validity=validity,
        ))
    return rows


# ============================================================================
# INDIA
# ============================================================================

INDIA_HEADER = re.compile(r"^(POD|LKA|LCB|DRY|REEFER|20\s*(RF|HQ)?|40\s*(RF|RH|HQ)?)\b", re.IGNORECASE)


def parse_wanhai_india(grid: LineTableGrid, validity: str = "", today: date | None = None) -> list[RawExtraction]:
    """
    POD | LKA 20 | LKA 40 | LCB 20 | LCB 40 | 20RF | 40RF.

    LKA and LCB with the same dry rates collapse into one "LKA/LCB" row;
    an "X" in a port's rates means that port is not offered.
    """
    if not validity:
        validity = _header_validity(grid, rf"RATE\s+(\d{{1,2}}[-–]\d{{1,2}})\s*{_MON}", today)

    rows: list[RawExtraction] = []
    for line in grid.rows():
        cells = line.cells
        if len(cells) < 3 or any(INDIA_HEADER.match(cell) for cell in cells[:3]) and not re.search(r"\d{3}", " ".join(cells)):
            continue
        if re.match(r"^\d+\s*subject to IHC\s*$", " ".join(cells), re.IGNORECASE):
            continue

        pod = cells[0]
        if not pod or re.match(r"^:?(selected|unselected):", pod, re.IGNORECASE) or pod.upper() == "X":
            continue
        m = re.match(r"^[A-Z]{5}\s*\((.+)\)$", pod, re.IGNORECASE) or re.match(r"^[A-Z]{5}\s+(.+)$", pod, re.IGNORECASE)
        clean_pod = m.group(1).strip() if m else pod

        lka20, lka40, lcb20, lcb40, rf20, rf40 = (cell_at(cells, i) for i in range(1, 7))
        if _is_x(lka20) and _is_x(lcb20):
            continue

        lka = (numeric_rate(lka20), numeric_rate(lka40))
        lcb = (numeric_rate(lcb20), numeric_rate(lcb40))
        if not any(lka) and not any(lcb):
            continue

        remark = "Subject to IHC" if re.search(r"subject to IHC", lka20 + lka40 + lcb20 + lcb40, re.IGNORECASE) else ""
        lka_x = _is_x(lka20) or _is_x(lka40)
        lcb_x = _is_x(lcb20) or _is_x(lcb40)

        def entry(pol: str, rates: tuple[str, str]) -> RawExtraction:
            return RawExtraction(
                carrier=CARRIER,
                pol=pol,
                pod=clean_pod,
                rate20=rates[0],
                rate40=rates[1],
                rate20_rf=numeric_rate(rf20),
                rate40_rf=numeric_rate(rf40),
                validity=validity,
                remark=remark,
            )

        if any(lka) and any(lcb) and not lka_x and not lcb_x and lka == lcb:
            rows.append(entry("LKA/LCB", lka))
            continue
        if any(lka) and not lka_x:
            rows.append(entry("LKA", lka))
        if any(lcb) and not lcb_x:
            rows.append(entry("LCB", lcb))

    return rows


def numeric_rate(cell: str) -> str:
    """"1200 subject to IHC" -> "1200"; "X", "N/A" and text -> ""."""
    cell = cell.strip()
    if not cell or re.match(r"^(X|N/A)$", cell, re.IGNORECASE):
        return ""
    m = re.match(r"^(\d+)", cell)
    return m.group(1) if m else ""


def _is_x(cell: str) -> bool:
    return cell.strip().upper() == "X"


def _header_validity(grid: LineTableGrid, pattern: str, today: date | None) -> str:
    year = (today or date.today()).year
    for raw in grid.raw_lines():
        m = re.search(pattern, raw, re.IGNORECASE)
        if m:
            return f"{m.group(1)} {m.group(2).upper()} {year}"
    return ""
