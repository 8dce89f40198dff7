"""
Remark and validity text helpers shared by the layout parsers.

Two jobs:
- pull a validity range out of free text ("valid until 15/12/2025",
  "1-15 Nov'25", "DECEMBER 1-31, 2025") and render it as "D-D MON YYYY"
- derive the per-row notice (AFS vs LSS) from a destination country via a
  small lookup table

Everything here is pure: no I/O, always returns a string, "" on no match.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Mapping, Sequence
import re


MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

MONTH_NAMES = {
    "JANUARY": "JAN", "FEBRUARY": "FEB", "MARCH": "MAR", "APRIL": "APR",
    "MAY": "MAY", "JUNE": "JUN", "JULY": "JUL", "AUGUST": "AUG",
    "SEPTEMBER": "SEP", "SEPT": "SEP", "OCTOBER": "OCT", "NOVEMBER": "NOV", "DECEMBER": "DEC",
}

_MON = r"(JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC)"
_FULL_MONTH = r"(JANUARY|FEBRUARY|MARCH|APRIL|MAY|JUNE|JULY|AUGUST|SEPTEMBER|OCTOBER|NOVEMBER|DECEMBER)"
_DASH = r"\s*[-–]\s*"


def current_month_validity(today: date | None = None) -> str:
    """Fallback validity: the current month, e.g. "DEC 2025"."""
    today = today or date.today()
    return f"{MONTHS[today.month - 1]} {today.year}"


def month_abbrev(name: str) -> str:
    """"November" / "nov" / "NOV." -> "NOV"; "" when not a month."""
    upper = name.strip().upper().rstrip(".")
    if upper in MONTH_NAMES:
        return MONTH_NAMES[upper]
    if upper[:3] in MONTHS:
        return upper[:3]
    return ""


def expand_year(year: str) -> str:
    """Two-digit years are 20xx."""
    year = year.strip()
    return f"20{year}" if len(year) == 2 else year


# ============================================================================
# VALIDITY FROM PROSE
# ============================================================================

@dataclass(frozen=True)
class ValidityPattern:
    """A regex plus the function that renders its match."""
    name: str
    regex: re.Pattern
    render: Callable[[re.Match, date], str]


def _numeric_range(m: re.Match, today: date) -> str:
    d1, m1, y1, d2, m2, y2 = (int(g) for g in m.groups())
    if not (1 <= m1 <= 12 and 1 <= m2 <= 12):
        return ""
    if (m1, y1) == (m2, y2):
        return f"{d1}-{d2} {MONTHS[m2 - 1]} {y2}"
    return f"{d2} {MONTHS[m2 - 1]} {y2}"


def _valid_until(m: re.Match, today: date) -> str:
    day, month, year = m.group(1), int(m.group(2)), m.group(3)
    if not 1 <= month <= 12:
        return ""
    return f"{int(day)} {MONTHS[month - 1]} {year}"


def _day_range_with_year(m: re.Match, today: date) -> str:
    return f"{int(m.group(1))}-{int(m.group(2))} {month_abbrev(m.group(3))} {expand_year(m.group(4))}"


def _month_first(m: re.Match, today: date) -> str:
    return f"{int(m.group(2))}-{int(m.group(3))} {month_abbrev(m.group(1))} {m.group(4)}"


def _day_range_current_year(m: re.Match, today: date) -> str:
    return f"{int(m.group(1))}-{int(m.group(2))} {month_abbrev(m.group(3))} {today.year}"


VALIDITY_PATTERNS: tuple[ValidityPattern, ...] = (
    ValidityPattern(
        "numeric_range",
        re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})" + _DASH + r"(\d{1,2})/(\d{1,2})/(\d{4})"),
        _numeric_range,
    ),
    ValidityPattern(
        "valid_until",
        re.compile(r"valid\s+until\s+(\d{1,2})[/\\](\d{1,2})[/\\](\d{4})", re.IGNORECASE),
        _valid_until,
    ),
    ValidityPattern(
        "applied_until",
        re.compile(r"Rate can be applied until\s+(\d{1,2})" + _DASH + r"(\d{1,2})\s*" + _MON + r"[A-Z]*['`’]?\s*(\d{4})", re.IGNORECASE),
        _day_range_with_year,
    ),
    ValidityPattern(
        "day_range",
        re.compile(r"(\d{1,2})" + _DASH + r"(\d{1,2})\s*" + _MON + r"[A-Z]*[.\s]*['`’]?\s*(\d{4}|\d{2})(?!\d)", re.IGNORECASE),
        _day_range_with_year,
    ),
    ValidityPattern(
        "month_first",
        re.compile(_FULL_MONTH + r"\s+(\d{1,2})" + _DASH + r"(\d{1,2}),?\s*(\d{4})", re.IGNORECASE),
        _month_first,
    ),
    ValidityPattern(
        "valid_day_range",
        re.compile(r"VALID(?:ITY)?\s*:?\s+(\d{1,2})" + _DASH + r"(\d{1,2})\s*" + _MON, re.IGNORECASE),
        _day_range_current_year,
    ),
)


def normalize_validity(
    text: str,
    today: date | None = None,
    patterns: Sequence[ValidityPattern] = VALIDITY_PATTERNS,
) -> str:
    """
    Extract a validity range from free text.

    First matching pattern wins. Output is "D-D MON YYYY" or "D MON YYYY".

    Examples:
        "valid until 15/12/2025"  -> "15 DEC 2025"
        "1-15 Nov'25"             -> "1-15 NOV 2025"
        "DECEMBER 1-31, 2025"     -> "1-31 DEC 2025"

    Args:
        text: Any prose (OCR content, a remark cell, a title line)
        today: Reference date for patterns without a year

    Returns:
        Canonical validity, or "" when nothing matches
    """
    if not text:
        return ""
    today = today or date.today()
    for pattern in patterns:
        m = pattern.regex.search(text)
        if m:
            rendered = pattern.render(m, today)
            if rendered:
                return rendered
    return ""


def validity_from_filename(filename: str, today: date | None = None) -> str:
    """
    Validity printed in a filename.

    Handles:
    - "GUIDE RATE FOR 1-30 NOV 2025_SINOKOR" -> "1-30 NOV 2025"
    - "1764088043_GUIDE_RATE_FOR_1-31_DEC_2025" -> "1-31 DEC 2025"
    - "RATE 1-15 Nov" -> "1-15 NOV <current year>"
    - "Rate Guideline of DECEMBER 2025" -> "DEC 2025"
    """
    today = today or date.today()

    m = re.search(r"(\d{1,2})[-_\s]*(\d{1,2})[-_\s]*" + _MON + r"[A-Z]*[-_\s]*(\d{4})", filename, re.IGNORECASE)
    if m:
        return f"{m.group(1)}-{m.group(2)} {m.group(3).upper()} {m.group(4)}"

    m = re.search(r"(\d{1,2})[-_\s]+(\d{1,2})[-_\s]*" + _MON, filename, re.IGNORECASE)
    if m:
        return f"{m.group(1)}-{m.group(2)} {m.group(3).upper()} {today.year}"

    m = re.search(
        r"(JANUARY|FEBRUARY|MARCH|APRIL|MAY|JUNE|JULY|AUGUST|SEPTEMBER|OCTOBER|NOVEMBER|DECEMBER|"
        r"JAN|FEB|MAR|APR|JUN|JUL|AUG|SEP|OCT|NOV|DEC)[-_\s]*(\d{4})",
        filename,
        re.IGNORECASE,
    )
    if m:
        return f"{month_abbrev(m.group(1))} {m.group(2)}"

    return ""


def format_end_date_validity(raw: str, today: date | None = None) -> str:
    """
    Render a "start - end" numeric date cell as its end date.

    "01/11/2025 - 30/11/2025" -> "30 NOV 2025". Cells that are not a numeric
    range come back unchanged; an empty cell gives the current month.
    """
    raw = raw.strip()
    if not raw:
        return current_month_validity(today)

    if "-" in raw:
        end = raw.split("-")[1].strip()
        parts = end.split("/")
        if len(parts) >= 2:
            try:
                day = int(parts[0])
                month = int(parts[1])
                year = int(parts[2]) if len(parts) > 2 else (today or date.today()).year
            except (ValueError, TypeError):
                return raw
            if 1 <= month <= 12:
                return f"{day:02d} {MONTHS[month - 1]} {year}"

    return raw


# ============================================================================
# NOTICE DERIVATION
# ============================================================================

@dataclass(frozen=True)
class NoticeRule:
    """Rows whose country contains any of `countries` get notice `notice`."""
    notice: str
    countries: tuple[str, ...]


# Destinations charged the Advance Filing Surcharge instead of the LSS note
NOTICE_RULES: tuple[NoticeRule, ...] = (
    NoticeRule("afs", ("CHINA", "JAPAN")),
)


def derive_notice(
    country: str,
    notices: Mapping[str, str],
    rules: Sequence[NoticeRule] = NOTICE_RULES,
    fallback: str = "lss",
) -> str:
    """
    Pick the notice text that applies to a destination country.

    Args:
        country: Country cell of the row (any case)
        notices: Notice texts found on the sheet, keyed by notice id
            ({"afs": "...", "lss": "..."}); missing ids count as absent
        rules: Country -> notice table, checked in order
        fallback: Notice id used when no rule applies

    Returns:
        The notice text, or "" when the sheet has none that applies
    """
    upper = country.upper()
    for rule in rules:
        if any(c in upper for c in rule.countries) and notices.get(rule.notice):
            return notices[rule.notice]
    return notices.get(fallback, "") or ""
