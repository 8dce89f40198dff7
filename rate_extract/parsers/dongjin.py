"""
Parser for DONGJIN OCR dumps.

DONGJIN format has:
POD | CODE | COUNTRY | CURRENCY | 20' | 40' | T/T | T/S | ETD BKK | ETD LCH

Rows after the first of a country block lose the COUNTRY cell, so the
"USD" currency cell is the anchor: rates follow it, T/T, T/S and the two
ETDs follow the rates. Remarks are fixed sentences per destination region.
"""

from __future__ import annotations

from datetime import date
import re

from ..grid import LineTableGrid
from ..models import RawExtraction
from .common import RowCarryState, cell_at, strip_parentheses, with_days


CARRIER = "DONGJIN"

_SUBJECT = "inclusive of FAF and YAS durring the quote period but subject to local charge and THC/DOC Fee both ends."

REGION_REMARKS: dict[str, str] = {
    "KOREA": f"Free time DEM / DET are combined for all Korea ports destination at 16 days + {_SUBJECT}",
    "JAPAN": f"Rate for all Japan destination ports must be apply AFR $30 per BL. + {_SUBJECT}",
    "HONG KONG": _SUBJECT,
    "VIETNAM": _SUBJECT,
    "CHINA": f"Rate for all China destination ports must be apply AFR $30 per BL Except HONGKONG. + {_SUBJECT}",
}

# Checked in this order; Hong Kong before China
REGION_PORTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("KOREA", ("KWANGYANG", "PUSAN", "BUSAN", "INCHON", "INCHEON", "PYEONGTAEK")),
    ("JAPAN", ("TOKYO", "YOKOHAMA", "NAGOYA", "OSAKA", "KOBE", "TOKUYAMA", "SHIMIZU", "HIBIKI", "HAKATA", "MOJI")),
    ("HONG KONG", ("HONG KONG", "HONGKONG")),
    ("VIETNAM", ("HOCHIMINH", "HO CHI MINH", "HAIPHONG", "HAI PHONG", "DANANG", "DA NANG", "CATLAI", "CAT LAI")),
    ("CHINA", (
        "NANSHA", "SHEKOU", "XIAMEN", "GAOMING", "RONGQI", "ZHONGSHAN", "HUANGPU", "XIAOLAN", "SANRONG",
        "GAOYAO", "LIAHUASHAN", "HONGWAN", "CIVET", "ZHUHAI", "SANSHUI", "GAOSHA", "GAOXIN", "JIANGMEN",
        "BEIJIAO", "LEILU", "SHUNDE", "JIUJIANG", "ZHAOQING", "MAFANG", "FOSHAN", "WUZHOU", "BEIHAI",
        "DONGGUAN", "FANGCHENG", "GUIGANG", "HAIKOU",
    )),
)

COUNTRIES = ("KOREA", "CHINA", "JAPAN", "VIETNAM", "HONG KONG", "HONGKONG")
SKIP_LINE = re.compile(r"Destination port|Currency", re.IGNORECASE)
TRANSIT = re.compile(r"\d+.*day|^\d+$|\d+-\d+", re.IGNORECASE)


def parse_dongjin(grid: LineTableGrid, validity: str = "", today: date | None = None) -> list[RawExtraction]:
    """
    Parse a DONGJIN rate dump.

    Args:
        grid: OCR table dump
        validity: Caller override; when empty a "1-30 Nov" range in the
            dump is used with the current year

    Returns:
        List of RawExtraction
    """
    if not validity:
        validity = dongjin_validity(grid.raw_lines(), today)

    rows: list[RawExtraction] = []
    state = RowCarryState()

    for line in grid.lines():
        if line.kind == "table":
            state.reset()
            continue
        if not line.is_row:
            continue
        cells = line.cells
        if line.number == 0 or SKIP_LINE.search(line.raw):
            state.reset()
            continue
        if len(cells) < 4:
            continue

        usd = next((i for i, cell in enumerate(cells) if cell.upper() == "USD"), None)
        if usd is None:
            continue

        country = _country(cells[1:usd])
        country = state.carry("area", country)

        rate20 = re.sub(r"[^0-9]", "", cell_at(cells, usd + 1))
        rate40 = re.sub(r"[^0-9]", "", cell_at(cells, usd + 2))

        tt = ts = etd_bkk = etd_lch = ""
        after = cell_at(cells, usd + 3)
        if TRANSIT.search(after):
            tt, ts = after, cell_at(cells, usd + 4)
            etd_bkk, etd_lch = cell_at(cells, usd + 5), cell_at(cells, usd + 6)
        elif after:
            # No T/T cell: the cell after the rates is already T/S
            ts = after
            etd_bkk, etd_lch = cell_at(cells, usd + 4), cell_at(cells, usd + 5)

        pod = strip_parentheses(cells[0])
        if not pod or not rate20 or re.match(r"^(destination|port|currency)", pod, re.IGNORECASE):
            continue

        rows.append(RawExtraction(
            carrier=CARRIER,
            pol="BKK/LCH",
            pod=pod.upper(),
            rate20=rate20,
            rate40=rate40,
            etd_bkk=etd_bkk,
            etd_lch=etd_lch,
            transit_time=with_days(tt),
            transshipment=ts or "Direct",
            validity=validity,
            remark=region_remark(pod, country),
        ))

    return rows


def _country(cells) -> str:
    for cell in cells:
        upper = cell.strip().upper()
        if upper in COUNTRIES:
            return upper
        if "JAPAN" in upper:
            return "JAPAN"
    return ""


def region_remark(pod: str, country: str = "") -> str:
    """Fixed remark for the POD's region, matched by port name or country."""
    upper = pod.strip().upper()
    country = "HONG KONG" if country == "HONGKONG" else country
    for region, ports in REGION_PORTS:
        if country == region or any(port in upper for port in ports):
            return REGION_REMARKS[region]
    return ""


def dongjin_validity(lines, today: date | None = None) -> str:
    """"1-30 Nov" anywhere in the dump -> "1-30 NOV 2025"; else empty."""
    today = today or date.today()
    for line in lines:
        m = re.search(r"(\d{1,2})\s*[-–]\s*(\d{1,2})\s*(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)", line, re.IGNORECASE)
        if m:
            return f"{m.group(1)}-{m.group(2)} {m.group(3)[:3].upper()} {today.year}"
    return ""
