"""
Parsers for PIL (Pacific International Lines) quotation OCR dumps.

PIL sends one quotation per trade region, each with its own table:

Africa:
    PORTs | CODE | 20'GP | 40'HC | T/T | T/S | FREE TIME | Remark
    OCR merges neighbouring destinations into one row; every 5-letter port
    code starts a destination. Rates are kept as printed ("2600+HEA").

Intra Asia:
    PORTs | CODE | BKK 20' | BKK 40' | LCH 20' | LCH 40' | LSR | Free time | T/T | T/S | Remark

Latin America:
    "WCSA Ex BKK / LCH" section titles set POL and coast, then
    PORTs | CODE | 20'GP | 40'HC | LSR | T/T | T/S | POD F/T | Remark

Oceania:
    Two destinations side by side, nine cells each:
    PORT | CODE | 20' | 40' | 40'HC | T/T | T/S | F/T | REMARK

South Asia:
    PORTs | CODE | BKK 20' | BKK 40' | LCH 20' | LCH 40' | T/T | T/S | FREE TIME

The region is read from the "Trade: ..." title or, failing that, from the
port names in the dump.
"""

from __future__ import annotations

import re

from ..grid import LineTableGrid
from ..logging_utils import get_logger
from ..models import RawExtraction
from .common import cell_at, leading_number


logger = get_logger(__name__)

CARRIER = "PIL"
LOCAL_CHARGES_REMARK = "Rates are subject to local charges at both ends."

HEADER_CELL = re.compile(r"PORTs|CODE|RATE IN USD", re.IGNORECASE)
NOT_A_PORT = re.compile(r"Validity|Rates quotation|Note", re.IGNORECASE)
PORT_CODE = re.compile(r"^[A-Z]{5}$")
PLACEHOLDER = re.compile(r"^(-|—|N/?A|TBA)$", re.IGNORECASE)

# (region, patterns), checked in order; any pattern matching picks the region
REGION_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Africa", (
        r"\bAfrica\b",
        r"\b(Mombasa|Dar\s+Es\s+Salaam|Zanzibar|Apapa|Lagos|Tema|Lome|Cotonou|Abidjan|Douala|Durban"
        r"|Capetown|Maputo|Beira|Nacala|Toamasina|Tamatave|Reunion|Port\s+Louis)\b",
    )),
    ("Intra_Asia", (r"\bIntra\s+Asia\b",)),
    ("Latin_America", (r"\b(Latin|South)\s+America\b",)),
    ("Oceania", (r"\bOceania\b",)),
    ("South_Asia", (
        r"\bSouth\s+Asia\b",
        r"\b(Chattogram|Chittagong|Mongla|Dhaka|Chennai|Madras|Gangavaram|Calcutta|Kolkata"
        r"|Nhava\s+Sheva|Mumbai|Mundra)\b",
    )),
)


def detect_pil_region(grid: LineTableGrid) -> str:
    """
    Trade region of a PIL dump.

    Returns:
        "Africa", "Intra_Asia", "Latin_America", "Oceania", "South_Asia",
        or "" when nothing matches
    """
    text = "\n".join(grid.raw_lines())
    if grid.content:
        text = f"{text}\n{grid.content}"
    for region, patterns in REGION_RULES:
        if any(re.search(p, text, re.IGNORECASE) for p in patterns):
            return region
    return ""


def parse_pil(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse a PIL quotation with the table of its trade region.

    Args:
        grid: OCR table dump
        validity: Caller validity

    Returns:
        List of RawExtraction; empty when the region is not recognised
    """
    region = detect_pil_region(grid)
    parser = REGION_PARSERS.get(region)
    if parser is None:
        logger.warning("PIL quotation without a known trade region: %s", grid.source or "<grid>")
        return []
    logger.debug("PIL region: %s", region)
    return parser(grid, validity)


def parse_pil_rate(value: str) -> tuple[str, str]:
    """
    Split a PIL rate cell into the base rate and the surcharge notes.

    Example: "2,600+HEA ( LSR & ISD included )"
        -> ("2600", "+HEA, LSR & ISD included")

    Returns:
        (rate, remark); ("", "") for empty and n/a cells
    """
    value = value.strip()
    if not value or value.lower() == "n/a":
        return "", ""

    rate = leading_number(value)

    notes: list[str] = []
    if "+HEA" in value:
        notes.append("+HEA")
    if "+AMS" in value:
        notes.append("+AMS")
    isd = re.search(r"\+\s*ISD\s*(\d+)", value)
    if isd:
        notes.append(f"+ISD USD{isd.group(1)}")
    included = re.search(r"\((.*?included.*?)\)", value, re.IGNORECASE)
    if included:
        notes.append(included.group(1).strip())
    if re.search(r"LSR\s*&\s*ISD\s*included", value, re.IGNORECASE) and "LSR & ISD included" not in notes:
        notes.append("LSR & ISD included")

    return rate, ", ".join(notes)


def _data_rows(grid: LineTableGrid, min_cells: int):
    """Row cells after the first PORTs/CODE header row."""
    in_data = False
    for line in grid.rows():
        cells = list(line.cells)
        if len(cells) < min_cells:
            continue
        if HEADER_CELL.search(cell_at(cells, 0)):
            in_data = True
            continue
        if in_data:
            yield cells


def _entry(pol: str, pod: str, rate20: str, rate40: str, *, tt: str, ts: str,
           free_time: str, validity: str, remark: str, rate40_hq: str = "") -> RawExtraction:
    return RawExtraction(
        carrier=CARRIER,
        pol=pol,
        pod=pod,
        rate20=rate20,
        rate40=rate40,
        rate40_hq=rate40_hq,
        transit_time=tt,
        transshipment=ts,
        free_time=free_time,
        validity=validity,
        remark=remark,
    )


# ============================================================================
# AFRICA
# ============================================================================

AFRICA_HEADER = re.compile(
    r"Validity|Rates quotation|Note|RATE IN USD|20'GP|40'HC|^PORTs$|^CODE$|^Remark$|^PIL$|BKK/LCH"
    r"|Trade\s*:\s*Africa|Ex\s+BKK|West Africa|East Africa|South Africa|Mozambique|Indian Ocean",
    re.IGNORECASE,
)
AFRICA_RATE_HEADER = re.compile(r"^CODE$|RATE IN USD|20'GP|40'HC", re.IGNORECASE)

# Sheet order, west coast round to the Indian Ocean islands
AFRICA_REGIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("West Africa", ("Apapa, Lagos", "Onne", "Tema", "Lome", "Cotonou", "Abidjan", "Douala")),
    ("East Africa", ("Mombasa", "Dar Es Salaam", "Zanzibar")),
    ("South Africa", ("Durban", "Capetown")),
    ("Mozambique", ("Maputo", "Beira", "Nacala")),
    ("Indian Ocean", ("Toamasina (Tamatave)", "Reunion (Pointe Des Galets)", "Port Louis")),
)
AFRICA_PORT_NAMES = frozenset(
    name.lower() for name in (
        "Apapa", "Lagos", "Onne", "Tema", "Lome", "Cotonou", "Abidjan", "Douala", "Mombasa",
        "Dar Es Salaam", "Zanzibar", "Durban", "Capetown", "Maputo", "Beira", "Nacala",
        "Toamasina", "Tamatave", "Reunion", "Port Louis",
    )
)


def parse_pil_africa(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse the Africa table, splitting merged multi-destination rows.

    Records come back in the sheet's regional port order; ports missing from
    AFRICA_REGIONS go last and are logged.
    """
    rows: list[RawExtraction] = []

    for line in grid.rows():
        cells = list(line.cells)
        if len(cells) < 5:
            continue

        codes = [i for i, cell in enumerate(cells) if PORT_CODE.match(cell)]
        merged = len(codes) > 1
        # No code cell at all: the plain PORT | CODE | ... shape
        for code_at in codes or [1]:
            raw = _africa_destination(cells, code_at, merged, validity)
            if raw is not None:
                rows.append(raw)

    return sort_africa_ports(rows)


def _africa_destination(cells: list[str], code_at: int, merged: bool, validity: str) -> RawExtraction | None:
    pod = cell_at(cells, code_at - 1)
    rate20 = cell_at(cells, code_at + 1)
    rate40 = cell_at(cells, code_at + 2)
    tt = cell_at(cells, code_at + 3)
    ts = cell_at(cells, code_at + 4)
    free_time = cell_at(cells, code_at + 5)
    remark = cell_at(cells, code_at + 6)

    if not pod or AFRICA_HEADER.search(pod) or AFRICA_RATE_HEADER.search(rate20) or AFRICA_RATE_HEADER.search(rate40):
        return None

    if merged:
        # "SIN 10 days": T/S and free time share a cell, the free time cell
        # then holds the remark
        split = re.match(r"^(.+?)\s+(\d.*)$", ts)
        if split:
            if free_time:
                remark = free_time
            ts, free_time = split.group(1).strip(), split.group(2).strip()
        # The next destination's name or code can land in the remark slot
        if remark.lower() in AFRICA_PORT_NAMES or re.match(r"^[A-Z]{3,5}$", remark):
            remark = ""

    return _entry(
        "BKK/LCH", pod, rate20.replace(",", ""), rate40.replace(",", ""),
        tt=tt, ts=ts, free_time=free_time, validity=validity,
        remark=remark or LOCAL_CHARGES_REMARK,
    )


def sort_africa_ports(rows: list[RawExtraction]) -> list[RawExtraction]:
    """Stable sort by AFRICA_REGIONS order; unknown ports keep first-seen order at the end."""
    order: dict[str, int] = {}
    for _, ports in AFRICA_REGIONS:
        for port in ports:
            order[port] = len(order)

    unknown = []
    for raw in rows:
        if raw.pod not in order and raw.pod not in unknown:
            unknown.append(raw.pod)
    if unknown:
        logger.warning("PIL Africa: unknown ports placed last: %s", ", ".join(unknown))
        for position, pod in enumerate(unknown):
            order[pod] = 1000 + position

    return sorted(rows, key=lambda raw: order[raw.pod])


# ============================================================================
# INTRA ASIA
# ============================================================================

INTRA_ASIA_COUNTRY = re.compile(r"^(Malaysia|Brunei|Cambodia|Philippines|Indonesia|Vietnam|Myanmar)$", re.IGNORECASE)


def parse_pil_intra_asia(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """Parse the Intra Asia table into one BKK and one LCH record per port."""
    rows: list[RawExtraction] = []

    for cells in _data_rows(grid, 7):
        pod, code = cell_at(cells, 0), cell_at(cells, 1)
        # Country titles ("Singapore" too) have no port code
        if not pod or not code or NOT_A_PORT.search(pod) or INTRA_ASIA_COUNTRY.match(pod):
            continue

        lsr = cell_at(cells, 6)
        free_time, tt, ts = cell_at(cells, 7), cell_at(cells, 8), cell_at(cells, 9)
        remark = intra_asia_remark(lsr, cell_at(cells, 10))

        for pol, first in (("BKK", 2), ("LCH", 4)):
            rows.append(_entry(
                pol, pod,
                cell_at(cells, first).replace(",", ""),
                cell_at(cells, first + 1).replace(",", ""),
                tt=tt, ts=ts, free_time=free_time, validity=validity, remark=remark,
            ))

    return rows


def intra_asia_remark(lsr: str, note: str) -> str:
    """"LSR Include" / "LSR: 50" plus the printed note, or the local charges line."""
    parts: list[str] = []
    if lsr and not PLACEHOLDER.match(lsr):
        parts.append("LSR Include" if lsr.lower() == "include" else f"LSR: {lsr}")
    if note:
        note = re.sub(r"\*\*\s+", "**", note)
        note = re.sub(r"\s+\*\*", "**", note)
        if note not in parts:
            parts.append(note)
    return ", ".join(parts) or LOCAL_CHARGES_REMARK


# ============================================================================
# LATIN AMERICA
# ============================================================================

COAST_ORDER = {"WCSA": 0, "ECSA": 1}
TS_PORTS = r"(SIN|HCM|JKT|BKK|SGN|SGSIN|CNTAO|CNSHK)"


def parse_pil_latin_america(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse the Latin America table.

    West coast (WCSA) ports come before east coast (ECSA) ports.
    """
    found: list[tuple[str, RawExtraction]] = []
    pol, coast = "BKK/LCH", "WCSA"
    in_data = False

    for line in grid.rows():
        cells = list(line.cells)
        title = cell_at(cells, 0)

        coast_match = re.match(r"^(WCSA|ECSA)\s+Ex\s+", title, re.IGNORECASE)
        if coast_match:
            coast = coast_match.group(1).upper()
        pol_match = re.search(r"Ex\s+(.+)$", title, re.IGNORECASE)
        if pol_match:
            pol = pol_match.group(1).strip().replace(" ", "")
            continue

        if len(cells) < 5:
            continue
        if HEADER_CELL.search(title):
            in_data = True
            continue
        if not in_data or not title or NOT_A_PORT.search(title):
            continue

        lsr = cell_at(cells, 4)
        tt, ts, free_time, note = fix_latin_america_cells(
            cell_at(cells, 5), cell_at(cells, 6), cell_at(cells, 7), cell_at(cells, 8)
        )

        parts = [f"LSR {lsr}"] if lsr else []
        if note and note != "-":
            parts.append(note)

        found.append((coast, _entry(
            pol, title,
            cell_at(cells, 2).replace(",", ""),
            cell_at(cells, 3).replace(",", ""),
            tt=tt, ts=ts, free_time=free_time, validity=validity,
            remark=", ".join(parts) or LOCAL_CHARGES_REMARK,
        )))

    found.sort(key=lambda pair: COAST_ORDER.get(pair[0], 0))
    return [raw for _, raw in found]


def fix_latin_america_cells(tt: str, ts: str, free_time: str, note: str) -> tuple[str, str, str, str]:
    """
    Undo the three OCR cell merges seen in the Latin America table.

    - "SIN 8 days" | "Subj. ISD..."      T/S swallowed the free time
    - "35-40 days SIN" | "8 days"       T/T swallowed the T/S
    - "8 days Subj. ISD..." | ""        free time swallowed the remark

    Returns:
        (tt, ts, free_time, note)
    """
    free_looks_like_note = bool(free_time) and ("subj." in free_time.lower() or "isd" in free_time.lower())

    if free_looks_like_note and re.search(r"\d", ts):
        note = free_time
        days = re.search(r"(\d+\s*days)\s*$", ts, re.IGNORECASE)
        if days:
            free_time = days.group(1).strip()
            ts = re.sub(r"\s*\d+\s*days\s*$", "", ts, flags=re.IGNORECASE).strip()
        else:
            free_time = ts
    elif re.search(TS_PORTS + r"$", tt, re.IGNORECASE) and re.match(r"^\d+\s*days$", ts, re.IGNORECASE):
        free_time = ts
        ts = re.search(TS_PORTS + r"$", tt, re.IGNORECASE).group(1)
        tt = re.sub(TS_PORTS + r"\s*$", "", tt, flags=re.IGNORECASE).strip()
    elif not note:
        joined = re.match(r"^(\d+\s*days)\s*(.*?(Subj\.|ISD).*)$", free_time, re.IGNORECASE)
        if joined:
            free_time, note = joined.group(1).strip(), joined.group(2).strip()

    return tt, ts, free_time, note


# ============================================================================
# OCEANIA
# ============================================================================

def parse_pil_oceania(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """Parse the side-by-side Oceania table (cells 0-8 and 9-17)."""
    rows: list[RawExtraction] = []

    for cells in _data_rows(grid, 1):
        if re.match(r"^(20'|40')", cell_at(cells, 0)):
            continue
        if len(cells) >= 9:
            raw = _oceania_block(cells[0:9], validity)
            if raw is not None:
                rows.append(raw)
        if len(cells) >= 17:
            raw = _oceania_block(cells[9:18], validity)
            if raw is not None:
                rows.append(raw)

    return rows


def _oceania_block(block: list[str], validity: str) -> RawExtraction | None:
    pod = cell_at(block, 0)
    if not pod or re.search(r"Validity|Rates quotation|Note|PORTs", pod, re.IGNORECASE):
        return None

    rate20, note20 = parse_pil_rate(cell_at(block, 2))
    rate40, note40 = parse_pil_rate(cell_at(block, 3))
    rate40_hq, _ = parse_pil_rate(cell_at(block, 4))

    parts = [p for p in (cell_at(block, 8), note20) if p]
    if note40 and note40 != note20:
        parts.append(note40)

    return _entry(
        "BKK/LCH", pod, rate20, rate40, rate40_hq=rate40_hq,
        tt=cell_at(block, 5), ts=cell_at(block, 6), free_time=cell_at(block, 7),
        validity=validity, remark=", ".join(parts),
    )


# ============================================================================
# SOUTH ASIA
# ============================================================================

def parse_pil_south_asia(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """Parse the South Asia table into one BKK and one LCH record per port."""
    rows: list[RawExtraction] = []

    for cells in _data_rows(grid, 7):
        pod = cell_at(cells, 0)
        if not pod or NOT_A_PORT.search(pod):
            continue

        bkk20, bkk20_note = parse_pil_rate(cell_at(cells, 2))
        bkk40, bkk40_note = parse_pil_rate(cell_at(cells, 3))
        lch20, _ = parse_pil_rate(cell_at(cells, 4))
        lch40, _ = parse_pil_rate(cell_at(cells, 5))

        parts = [bkk20_note] if bkk20_note else []
        if bkk40_note and bkk40_note != bkk20_note:
            parts.append(bkk40_note)
        remark = ", ".join(parts)

        tt, ts, free_time = cell_at(cells, 6), cell_at(cells, 7), cell_at(cells, 8)
        for pol, rate20, rate40 in (("BKK", bkk20, bkk40), ("LCH", lch20, lch40)):
            rows.append(_entry(
                pol, pod, rate20, rate40,
                tt=tt, ts=ts, free_time=free_time, validity=validity, remark=remark,
            ))

    return rows


REGION_PARSERS = {
    "Africa": parse_pil_africa,
    "Intra_Asia": parse_pil_intra_asia,
    "Latin_America": parse_pil_latin_america,
    "Oceania": parse_pil_oceania,
    "South_Asia": parse_pil_south_asia,
}
