"""
Parser for SITC "PUBLIC QUOTATION" OCR dumps.

SITC format has several tables of:
POL | POD | SERVICE | 20'GP | 40'/40'HC | [REEFER NOTE] | SURCHARGE | T/T | T/S | FREE TIME

- Service codes (VTX1, CKV2, JTH, Kerry) identify the route
- A POD with several origins prints the extra origins as continuation rows
  (POL | SERVICE | 20' | 40' or POL | 20' | 40') that inherit the POD
- Some tables carry T/T, T/S and free time in a separate side table with
  the same row numbers ("metadata table")
- Numbered notes under "REMARKS:" attach surcharges to specific PODs
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from ..grid import LineTableGrid
from ..logging_utils import get_logger
from ..models import RawExtraction
from .common import RowCarryState, cell_at


logger = get_logger(__name__)

CARRIER = "SITC"

SERVICE_CODE = re.compile(r"^(VTX|CKV|JTH|Kerry)", re.IGNORECASE)
SURCHARGE_TEXT = re.compile(r"^(INC|Include|Exclude|no have|LSS|CIC)", re.IGNORECASE)
HEADER_CELL = re.compile(r"POL|POD|Service Route|FREIGHT RATE", re.IGNORECASE)
NOTE_ROW = re.compile(r"^(Please recheck|Include LSS|INC LSS|no have LSS|\d+|\d+-\d+)$", re.IGNORECASE)
SURCHARGE_TERMS = re.compile(r"LSS|CIC|ISPS|BDTHC|BDCFS|detention|dem\s*/|det\s*$", re.IGNORECASE)

TRANSIT = re.compile(r"^(\d+)([,-]\s*\d+)*$")
TRANSSHIP = re.compile(r"^Direct$|^T/S", re.IGNORECASE)
FREE_TIME = re.compile(r"\d+.*day|dem.*det|\d+/\d+", re.IGNORECASE)
MONTH_WORD = re.compile(r"Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec", re.IGNORECASE)

# Ports whose surcharge is not in the numbered remarks
PORT_SURCHARGES = {
    "BUSAN": "Include LSS, EBS, CIS",
    "INCHON": "Include LSS, EBS, CIS, CIC",
}
NO_SURCHARGE_PORTS = ("Kuching", "Sarawak", "Bintulu")

# Remark keyword -> the POD names it applies to
REMARK_PORTS: dict[str, tuple[str, ...]] = {
    "DANANG": ("DANANG",),
    "JAPAN MAIN PORT": (
        "OSAKA", "KOBE", "KAWASAKI", "NGO", "TOKYO", "YOKO", "HAKATA", "NAGOYA", "SAKAISENBOKU",
        "MOJI", "SHIMIZU", "SENDAI", "TOKUYAMA", "HITACHINAKA", "FUKUYAMA", "YOKKAICHI",
        "MIZUSHIMA", "TAKAMATSU", "HIROSHIMA", "TOMAKOMAI", "HACHINOHE",
    ),
    "N.MANILA": ("N.MANILA",),
    "BATANGAS": ("BATANGAS",),
    "S.MANILA": ("S.MANILA",),
    "XINGANG": ("TIANJIN", "XINGANG"),
    "DAESAN": ("DAESAN",),
    "CEBU": ("CEBU",),
    "CAGAYAN": ("CAGAYAN",),
    "DAVAO": ("DAVAO",),
    "SUBIC": ("SUBIC",),
    "INDONESIA": ("JAKARTA", "NPCT1", "CIKARANG", "CKD", "SEMARANG", "MAKASSAR", "BATAM", "SURABAYA", "BALIKPAPAN"),
}


@dataclass
class RowMeta:
    """T/T, T/S, free time and surcharge found for one row."""
    tt: str = ""
    ts: str = ""
    free_time: str = ""
    surcharge: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.tt and self.ts and self.free_time)


@dataclass
class SitcTable:
    index: int
    rows: list[tuple[int, tuple[str, ...]]] = field(default_factory=list)
    metadata: bool = False


def parse_sitc(grid: LineTableGrid, validity: str = "") -> list[RawExtraction]:
    """
    Parse an SITC quotation dump.

    Args:
        grid: OCR table dump; grid.content supplies the "REMARKS:" notes
        validity: Caller validity

    Returns:
        List of RawExtraction
    """
    tables = _collect_tables(grid)
    pod_remarks = sitc_pod_remarks(grid.content)

    # Side tables pair with the rate table just before them, row for row
    side_meta: dict[int, dict[int, RowMeta]] = {}
    previous_rate_table = None
    for table in tables:
        if table.metadata and previous_rate_table is not None:
            side_meta[previous_rate_table] = {
                number: scan_metadata(cells, 0, surcharge=True) for number, cells in table.rows
            }
        elif not table.metadata:
            previous_rate_table = table.index

    rows: list[RawExtraction] = []
    state = RowCarryState()
    last_meta = RowMeta()

    for table in tables:
        if table.metadata:
            continue
        paired = side_meta.get(table.index, {})
        state.reset()
        last_meta = RowMeta()

        for number, cells in table.rows:
            pol = cell_at(cells, 0)
            if not pol:
                continue
            if HEADER_CELL.search(pol):
                state.reset()
                last_meta = RowMeta()
                continue
            if NOTE_ROW.match(pol) or SURCHARGE_TERMS.search(pol):
                continue

            side = paired.get(number, RowMeta())
            parsed = _read_rate_cells(cells, state, side.surcharge)
            if parsed is None:
                continue
            pod, service, rate20, rate40, surcharge, start, continuation = parsed
            if not pod or not (rate20 or rate40):
                continue

            meta = RowMeta(tt=side.tt, ts=side.ts, free_time=side.free_time)
            if not meta.complete:
                found = scan_metadata(cells, start)
                meta.tt = meta.tt or found.tt
                meta.ts = meta.ts or found.ts
                meta.free_time = meta.free_time or found.free_time

            if continuation:
                meta.tt = meta.tt or last_meta.tt
                meta.ts = meta.ts or last_meta.ts
                meta.free_time = meta.free_time or last_meta.free_time
            last_meta = RowMeta(
                tt=meta.tt or last_meta.tt,
                ts=meta.ts or last_meta.ts,
                free_time=meta.free_time or last_meta.free_time,
            )

            if table.index >= 3:
                surcharge = port_surcharge(pod, surcharge, pod_remarks)

            rows.append(RawExtraction(
                carrier=CARRIER,
                pol=pol,
                pod=pod,
                rate20=rate20,
                rate40=rate40,
                transit_time=meta.tt,
                transshipment=meta.ts,
                free_time=meta.free_time,
                validity=validity,
                remark=sitc_remark(service, surcharge),
            ))

    return rows


def _collect_tables(grid: LineTableGrid) -> list[SitcTable]:
    tables: list[SitcTable] = []
    for index, table_rows in grid.tables():
        table = SitcTable(index=index)
        numbered = [line for line in grid.rows() if line.table == index]
        table.rows = [(line.number or 0, line.cells) for line in numbered]
        if table_rows:
            header = " ".join(table_rows[0])
            table.metadata = bool(
                re.search(r"T/T|Transit|Free time", header, re.IGNORECASE)
                and not re.search(r"20.*GP|40.*HC|FREIGHT|POD", header, re.IGNORECASE)
            )
        tables.append(table)
    return tables


def _read_rate_cells(cells: tuple[str, ...], state: RowCarryState, side_surcharge: str):
    """
    Identify the row shape and pull POD, service, rates and surcharge.

    Returns:
        (pod, service, rate20, rate40, surcharge, metadata start index,
        is_continuation) or None
    """
    col1, col2, col3, col4, col5, col6 = (cell_at(cells, i) for i in range(1, 7))

    if is_service_code(col1) and is_pure_rate(col2):
        # POL | SERVICE | 20' | 40'
        state.extras["service"] = col1
        return state.last_pod, col1, _rate(col2), _rate(col3), state.remark, 4, True

    if is_pure_rate(col1) and is_pure_rate(col2):
        # POL | 20' | 40'
        return state.last_pod, state.extras.get("service", ""), _rate(col1), _rate(col2), state.remark, 3, True

    if len(cells) >= 7 and is_pure_rate(col3) and is_service_code(col2):
        pod, service, rate20, rate40 = col1, col2, col3, col4
        surcharge = side_surcharge or _first_surcharge((col6, col5, *cells[5:max(5, len(cells) - 3)]))
    elif len(cells) >= 7 and is_pure_rate(col3):
        pod, service, rate20, rate40 = col1, state.extras.get("service", ""), col2, col3
        surcharge = side_surcharge or _first_surcharge((col4, col5))
    elif is_pure_rate(col2) and col1 and not col1.isdigit():
        pod, service, rate20, rate40 = col1, state.extras.get("service", ""), col2, col3
        surcharge = _first_surcharge((col4,)) or side_surcharge
    else:
        pod, service, rate20, rate40 = col1, col2, col3, col4
        surcharge = _first_surcharge((col6, col5)) or side_surcharge

    surcharge = state.carry("remark", surcharge)
    state.last_pod = pod
    state.extras["service"] = service
    return pod, service, _rate(rate20), _rate(rate40), surcharge, 5, False


def _first_surcharge(values) -> str:
    for value in values:
        if SURCHARGE_TEXT.match(value.strip()):
            return value.strip()
    return ""


def _rate(value: str) -> str:
    return value.replace(",", "").strip()


def is_service_code(value: str) -> bool:
    return bool(SERVICE_CODE.match(value.strip()))


def is_pure_rate(value: str) -> bool:
    """Digits, or digits with one thousands comma ("1,500"); not "5,12,4"."""
    value = value.strip()
    return bool(re.fullmatch(r"\d+", value) or re.fullmatch(r"\d{1,3},\d{3}", value))


def scan_metadata(cells, start: int, surcharge: bool = False) -> RowMeta:
    """
    Scan forward from `start` for the first T/T, T/S and free time cells.

    Transit times are small numbers or lists ("5", "15-20", "10,11"); any
    first number above 50 is a rate, not a transit time.
    """
    meta = RowMeta()
    for value in list(cells)[start:]:
        value = value.strip()
        if not value:
            continue
        if not meta.tt and TRANSIT.match(value) and not MONTH_WORD.search(value):
            if int(re.match(r"\d+", value).group(0)) <= 50:
                meta.tt = value
        elif not meta.ts and TRANSSHIP.match(value):
            meta.ts = value
        elif not meta.free_time and FREE_TIME.search(value):
            meta.free_time = value
        elif surcharge and not meta.surcharge and re.search(r"INC|LSS|CIC|Exclude|Include", value, re.IGNORECASE):
            meta.surcharge = value
        if meta.complete and (meta.surcharge or not surcharge):
            break
    return meta


def port_surcharge(pod: str, surcharge: str, pod_remarks: dict[str, str]) -> str:
    """Surcharge for a POD from the fixed port list, then the REMARKS notes."""
    upper = pod.upper()
    if any(port.upper() in upper for port in NO_SURCHARGE_PORTS):
        return ""
    for port, text in PORT_SURCHARGES.items():
        if port in upper:
            return text
    for port, text in pod_remarks.items():
        if port in upper:
            return text
    return surcharge


def sitc_pod_remarks(content: str) -> dict[str, str]:
    """
    Map POD names to the numbered note that mentions them.

    Reads the lines after "REMARKS:"; "6. DANANG include CAF,BAF,LSS" gives
    {"DANANG": "INC CAF,BAF,LSS"}.
    """
    remarks: dict[str, str] = {}
    in_remarks = False

    for line in content.splitlines():
        line = line.strip()
        if re.match(r"^REMARKS\s*:", line, re.IGNORECASE):
            in_remarks = True
            continue
        if not in_remarks:
            continue
        m = re.match(r"^\d+\.\s+(.+)", line)
        if not m:
            continue

        text = m.group(1).strip()
        for keyword, ports in REMARK_PORTS.items():
            if keyword not in text.upper():
                continue
            note = re.sub(r"\binclude\b", "INC", text, flags=re.IGNORECASE)
            note = re.sub(r"^[A-Z.\s/()]+\s*(INC|exclude)", r"\1", note, flags=re.IGNORECASE)
            for port in ports:
                remarks[port] = note.strip()
            break

    if remarks:
        logger.debug("SITC remark notes for %d ports", len(remarks))
    return remarks


def sitc_remark(service: str, surcharge: str) -> str:
    """"VTX1 - INC LSS"; surcharge cells that are really T/T or T/S values are ignored."""
    if surcharge and not TRANSIT.match(surcharge) and not TRANSSHIP.match(surcharge):
        return f"{service} - {surcharge}" if service else surcharge
    return service
