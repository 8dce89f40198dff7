"""
Building blocks shared by the layout parsers.

Each carrier layout is a different arrangement of the same few tricks:
- header-row detection and keyword -> field column mapping
- numeric rate cleaning
- POD cells with an embedded remark ("MANZANILLO (T/S PUS)")
- black-filled rows that must read TBA
- ETD cells listing several sailing days per origin port
- OCR rows split across two lines (a POD now, its rates on the next line)

They live here as plain functions so each one can be tested on literal
strings without building a grid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence
import re

from ..grid import SpreadsheetGrid, cell_text


# ============================================================================
# HEADER DETECTION + COLUMN MAPPING
# ============================================================================

HEADER_KEYWORDS: tuple[str, ...] = ("pol", "pod", "origin", "destination", "rate", "carrier", "20", "40", "port")


def score_header(cells: Sequence[str], keywords: Sequence[str] = HEADER_KEYWORDS) -> int:
    """Number of keywords found anywhere in the row (each counted once)."""
    row_text = " ".join(cells).lower()
    return sum(1 for keyword in keywords if keyword in row_text)


def detect_header_row(
    grid: SpreadsheetGrid,
    keywords: Sequence[str] = HEADER_KEYWORDS,
    max_rows: int = 20,
    min_score: int = 3,
) -> int:
    """
    Find the header row of a sheet.

    Scans the first `max_rows` rows and returns the first one in which at
    least `min_score` keywords appear.

    Args:
        grid: Sheet to scan
        keywords: Lowercase substrings that suggest a header cell

    Returns:
        1-based row number, or 1 when no row qualifies
    """
    return find_header_row(grid, keywords, max_rows, min_score) or 1


def find_header_row(
    grid: SpreadsheetGrid,
    keywords: Sequence[str] = HEADER_KEYWORDS,
    max_rows: int = 20,
    min_score: int = 3,
) -> int | None:
    """Like detect_header_row, but None instead of the row-1 fallback."""
    for row in range(1, min(grid.highest_row(), max_rows) + 1):
        if score_header(grid.row_texts(row), keywords) >= min_score:
            return row
    return None


@dataclass(frozen=True)
class ColumnRule:
    """Header cells matching `pattern` map to `field`."""
    field: str
    pattern: str

    def matches(self, header: str) -> bool:
        return bool(re.search(self.pattern, header, re.IGNORECASE))


# First matching rule wins per column, so overlapping rules are ordered
# (a "Port of Loading" header must hit pol before the "port" pod rule).
COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule("carrier", r"carrier|line|shipping"),
    ColumnRule("pol", r"pol|origin|loading|from"),
    ColumnRule("pod", r"pod|destination|discharge|\bto\b|port"),
    ColumnRule("rate20", r"20['\"]?|20.*gp|20.*dc"),
    ColumnRule("rate40", r"40['\"]?|40.*hc|40.*hq"),
    ColumnRule("tt", r"t/t|transit|days"),
    ColumnRule("ts", r"t/s|trans.*ship"),
    ColumnRule("freetime", r"free|dem|det"),
    ColumnRule("remark", r"remark|note|comment"),
)


@dataclass(frozen=True)
class ColumnMapping:
    """1-based column index per field; None when the sheet has no such column."""
    carrier: int | None = None
    pol: int | None = None
    pod: int | None = None
    rate20: int | None = None
    rate40: int | None = None
    tt: int | None = None
    ts: int | None = None
    freetime: int | None = None
    remark: int | None = None

    def get(self, name: str) -> int | None:
        return getattr(self, name)


def map_columns(headers: Sequence[str], rules: Sequence[ColumnRule] = COLUMN_RULES) -> ColumnMapping:
    """
    Map header cells to fields.

    Each column takes the first rule that matches it and whose field is
    still free; a field is claimed by the leftmost column that matches.

    Args:
        headers: Header cell texts, headers[0] is column 1
        rules: Ordered (field, pattern) rules

    Returns:
        ColumnMapping
    """
    found: dict[str, int] = {}
    for index, header in enumerate(headers, start=1):
        header = header.strip()
        if not header:
            continue
        for rule in rules:
            if rule.field in found:
                continue
            if rule.matches(header):
                found[rule.field] = index
                break
    known = set(ColumnMapping.__dataclass_fields__)
    return ColumnMapping(**{name: col for name, col in found.items() if name in known})


# ============================================================================
# RATE CLEANING
# ============================================================================

DISALLOWED_RATE = re.compile(r"SELL|GUIDE|CHECK|TBA", re.IGNORECASE)


def clean_rate(value: Any) -> str:
    """
    Reduce a rate cell to its number.

    Handles:
    - "1,234 USD" -> "1234"
    - 500.0 -> "500"
    - "-----" -> "" (placeholder, absent)
    - "TBA", "SELL", "GUIDE", "CHECK" -> "" (absent, not zero)

    Cleaning is idempotent: clean_rate(clean_rate(x)) == clean_rate(x).
    """
    text = cell_text(value)
    if not text or DISALLOWED_RATE.search(text):
        return ""
    digits = re.sub(r"[^0-9.]", "", text).strip(".")
    if not any(ch.isdigit() for ch in digits):
        return ""
    return digits


def leading_number(value: Any) -> str:
    """
    First number in a cell, commas removed.

    "2,600+HEA" -> "2600", "$60 (INC.LSS)" -> "60", "N/A" -> "".
    """
    m = re.search(r"\d[\d,]*(?:\.\d+)?", cell_text(value))
    if not m:
        return ""
    return m.group(0).replace(",", "").rstrip(",")


def with_days(value: str) -> str:
    """Transit time as printed in the output: "5" -> "5 Days"."""
    value = value.strip()
    if not value or value.upper() == "TBA":
        return ""
    if re.search(r"day", value, re.IGNORECASE):
        return value
    return f"{value} Days"


# ============================================================================
# REMARK EXTRACTION
# ============================================================================

def extract_remark(pod: str) -> tuple[str, str]:
    """
    Split an embedded remark off a POD cell.

    The last parenthetical group is the remark; earlier groups stay in the
    port name without their parentheses. Without parentheses an inline
    "T/S <CODE>" token is the remark.

    Examples:
        "MANZANILLO (T/S PUS)"          -> ("MANZANILLO", "T/S PUS")
        "PORT KLANG (WEST) (LCH ONLY)"  -> ("PORT KLANG WEST", "LCH ONLY")
        "BUSAN T/S PUS"                 -> ("BUSAN", "T/S PUS")
        "SINGAPORE"                     -> ("SINGAPORE", "")

    Returns:
        (clean POD, remark)
    """
    pod = pod.strip()
    groups = [m for m in re.finditer(r"\(([^()]*)\)", pod) if m.group(1).strip()]
    if groups:
        last = groups[-1]
        before = re.sub(r"[()]", " ", pod[:last.start()])
        after = re.sub(r"[()]", " ", pod[last.end():])
        name = " ".join((before + " " + after).split())
        return name, last.group(1).strip()

    ts = re.search(r"\bT/S\s+(\w+)", pod, re.IGNORECASE)
    if ts:
        name = " ".join(re.sub(r"\s*\bT/S\s+\w+", "", pod, flags=re.IGNORECASE).split())
        return name, f"T/S {ts.group(1)}"

    return pod, ""


def strip_parentheses(text: str) -> str:
    """"SHANGHAI (CNSHA)" -> "SHANGHAI"."""
    return " ".join(re.sub(r"\([^)]*\)", " ", text).split())


def join_remarks(*parts: str, sep: str = ", ") -> str:
    """Join non-empty remark parts, skipping repeats."""
    out: list[str] = []
    for part in parts:
        part = (part or "").strip()
        if part and part not in out:
            out.append(part)
    return sep.join(out)


# ============================================================================
# HIGHLIGHT + ETD
# ============================================================================

HIGHLIGHT_COLORS = frozenset({"000000", "333333"})


def is_highlighted(color: str | None) -> bool:
    """Black or near-black solid fill."""
    return bool(color) and color.upper()[-6:] in HIGHLIGHT_COLORS


_PORT_TAG_ONLY = re.compile(r"^[\s()&,]*((BKK|PAT|LCH|SSW|AND)[\s()&,]*)+$", re.IGNORECASE)


def split_etd(cell: str, remark: str = "") -> tuple[str, str, str]:
    """
    Split a multi-day ETD cell into BKK and LCH columns.

    Tokens are separated by newlines, slashes or commas and tagged by port:
    BKK or PAT -> BKK column, LCH -> LCH column, both -> both columns, no
    tag -> LCH column. A token tagged only SSW is dropped. Any SSW tag adds
    "SSW" to the remark.

    Example:
        "MON (BKK PAT & LCH)\\nWED (LCH)" -> ("MON", "MON/WED", remark)

    Args:
        cell: ETD cell text
        remark: Row remark so far

    Returns:
        (etd_bkk, etd_lch, remark)
    """
    cell = cell.strip()
    if not cell:
        return "", "", remark

    if re.search(r"SSW", cell, re.IGNORECASE):
        remark = f"{remark} / SSW" if remark else "SSW"

    tokens: list[str] = []
    for part in re.split(r"[\n\r/,]+", cell):
        part = part.strip()
        if not part:
            continue
        # "MON (BKK/LCH)" splits into "MON (BKK" + "LCH)"; re-attach the tag
        if tokens and _PORT_TAG_ONLY.match(part):
            tokens[-1] = f"{tokens[-1]} {part}"
        else:
            tokens.append(part)

    bkk: list[str] = []
    lch: list[str] = []
    for token in tokens:
        has_bkk = bool(re.search(r"BKK|PAT", token, re.IGNORECASE))
        has_lch = bool(re.search(r"LCH", token, re.IGNORECASE))
        has_ssw = bool(re.search(r"SSW", token, re.IGNORECASE))
        if has_ssw and not has_bkk and not has_lch:
            continue

        label = _etd_label(token)
        if has_bkk:
            bkk.append(label)
        if has_lch or not has_bkk:
            lch.append(label)

    return "/".join(bkk), "/".join(lch), remark


def _etd_label(token: str) -> str:
    m = re.match(r"([A-Za-z]{3})\b", token)
    if m:
        return m.group(1)
    m = re.match(r"[A-Za-z]{3}", token)
    return m.group(0) if m else token.strip()


def map_pol_to_etd(pol: str, sailing: str, fallback: str = "lch") -> tuple[str, str]:
    """
    Place a single sailing token in the BKK or LCH ETD column.

    BKK -> BKK column; LCH, LKB or LKE -> LCH column; both -> both columns;
    neither -> `fallback` ("lch", "bkk" or "both").

    Returns:
        (etd_bkk, etd_lch)
    """
    sailing = sailing.strip()
    if not sailing:
        return "", ""

    upper = pol.upper()
    has_bkk = "BKK" in upper
    has_lch = any(tag in upper for tag in ("LCH", "LKB", "LKE", "LATKRABANG", "LATKABANG"))

    if has_bkk and has_lch:
        return sailing, sailing
    if has_bkk:
        return sailing, ""
    if has_lch:
        return "", sailing
    if fallback == "both":
        return sailing, sailing
    if fallback == "bkk":
        return sailing, ""
    return "", sailing


# ============================================================================
# ROW CARRY STATE
# ============================================================================

@dataclass
class RowCarryState:
    """
    Values inherited by the following OCR rows.

    OCR dumps flatten vertically merged cells, so T/T, T/S, ETD or the
    country only appear on the first row of their block. One pending POD can
    wait for its rates on the next line; a newer one replaces it.
    """
    transit_time: str = ""
    transshipment: str = ""
    etd: str = ""
    remark: str = ""
    area: str = ""
    pol: str = ""
    last_pod: str = ""
    pending_pod: str | None = None
    extras: dict[str, str] = field(default_factory=dict)

    def reset(self) -> None:
        """Forget everything (new table, new header row)."""
        self.transit_time = ""
        self.transshipment = ""
        self.etd = ""
        self.remark = ""
        self.area = ""
        self.pol = ""
        self.last_pod = ""
        self.pending_pod = None
        self.extras.clear()

    def carry(self, name: str, value: str) -> str:
        """Return `value` and remember it, or the remembered one when empty."""
        value = value.strip()
        if value:
            setattr(self, name, value)
            return value
        return getattr(self, name)

    def hold(self, pod: str) -> None:
        self.pending_pod = pod

    def release(self) -> str | None:
        pod, self.pending_pod = self.pending_pod, None
        return pod


def cell_at(cells: Sequence[str], index: int) -> str:
    """cells[index] or "" when the row is short."""
    if 0 <= index < len(cells):
        return cells[index].strip()
    return ""
