"""
Detect which carrier layout a rate sheet uses.

Carriers rarely put a layout marker inside the file, but the filenames they
mail out are stable ("FAK RATE OF DEC", "GUIDE RATE FOR 1-30 NOV 2025_SINOKOR",
...). Detection is an ordered list of filename rules, first match wins, with
"generic" as the fallback. OCR dumps whose filename says nothing get a second
pass over the first lines of table content, and spreadsheets get a look at
the pictures in their header (the KMTC logo survives filename typos).

The rule lists are plain data handed to PatternDetector, so tests and new
carriers can supply their own without touching dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence
import re


GENERIC = "generic"


@dataclass(frozen=True)
class DetectionRule:
    """
    A (matcher, layout) pair.

    `pattern` is searched case-insensitively. `requires` adds further
    patterns that must all match too (content signatures need two markers).
    """
    layout: str
    pattern: str
    requires: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not re.search(self.pattern, text, re.IGNORECASE):
            return False
        return all(re.search(extra, text, re.IGNORECASE) for extra in self.requires)


# Order matters: specific markers sit above the broader ones they overlap.
# ".?" accepts a space, underscore or hyphen (upload sanitizing varies).
FILENAME_RULES: tuple[DetectionRule, ...] = (
    DetectionRule("wanhai", r"FAK.?RATE.*\(ASIA\)|FAK.?RATE.*_ASIA_"),
    DetectionRule("rcl", r"FAK.?RATE.?OF"),
    DetectionRule("kmtc", r"UPDATED.?RATE"),
    DetectionRule("pil", r"PIL.*QUOTATION|QUOTATION.*PIL|PIL.*(AFRICA|INTRA.?ASIA|LATIN.?AMERICA|OCEANIA|SOUTH.?ASIA)"),
    DetectionRule("sinokor_skr", r"SKR.*SINOKOR|SINOKOR.*SKR"),
    # "GUIDE RATE FOR ... (SKR)" is the main SINOKOR card, not the feeder table
    DetectionRule("sinokor", r"GUIDE.?RATE.*[(_]SKR[)_]"),
    DetectionRule("sinokor", r"SINOKOR"),
    DetectionRule("heung_a", r"HEUNG.?A|HUANG.?A"),
    DetectionRule("boxman", r"BOXMAN"),
    DetectionRule("sitc", r"SITC"),
    DetectionRule("wanhai", r"INDIA|WANHAI"),
    DetectionRule("ck_line", r"CK.?LINE"),
    DetectionRule("sm_line", r"SM.?LINE"),
    DetectionRule("dongjin", r"DONGJIN"),
    DetectionRule("ts_line", r"TS.?LINE|RATE.?1ST"),
    DetectionRule("ial", r"INTER.?ASIA|(?<![A-Z])IAL(?![A-Z])"),
)

CONTENT_RULES: tuple[DetectionRule, ...] = (
    DetectionRule("pil", r"Pacific International Lines|Trade\s*:\s*(Africa|Intra Asia|Latin America|Oceania|South Asia)"),
    DetectionRule("sitc", r"Service Route|\b(VTX\d|CKV\d|JTH)\b"),
    DetectionRule("sm_line", r"BANGKOK.*UNITHAI", requires=(r"LAEMCHABANG",)),
    DetectionRule("ck_line", r"ETD\s*BKK", requires=(r"ETD\s*LCH",)),
    DetectionRule("ts_line", r"TS\s*LINES?"),
    DetectionRule("dongjin", r"DONGJIN"),
    DetectionRule("wanhai", r"Port of Loading", requires=(r"\b(THBKK|THLCB|THLCH|THLKA)\b",)),
)


@dataclass(frozen=True)
class LogoRule:
    """
    A carrier logo recognized by placement and shape.

    Matches a picture anchored in one of `columns` on a row within `rows`
    whose width/height ratio is within `tolerance` of `aspect_ratio`.
    """
    layout: str
    columns: tuple[str, ...]
    rows: tuple[int, int]
    aspect_ratio: float
    tolerance: float = 0.4

    def matches(self, anchor: str, width: float, height: float) -> bool:
        m = re.fullmatch(r"([A-Z]+)(\d+)", anchor.strip().upper())
        if not m or m.group(1) not in self.columns or height <= 0:
            return False
        first, last = self.rows
        if not first <= int(m.group(2)) <= last:
            return False
        return abs(width / height - self.aspect_ratio) <= self.tolerance


# KMTC sheets carry a 218x69 logo somewhere in D1:G3
LOGO_RULES: tuple[LogoRule, ...] = (
    LogoRule("kmtc", columns=("D", "E", "F", "G"), rows=(1, 3), aspect_ratio=218 / 69),
)


class PatternDetector:
    """
    Maps filenames (and OCR content) to layout ids.

    Usage:
        detector = PatternDetector()
        detector.detect("GUIDE RATE FOR 1-30 NOV 2025_SINOKOR.pdf")  # "sinokor"
    """

    def __init__(
        self,
        rules: Sequence[DetectionRule] = FILENAME_RULES,
        content_rules: Sequence[DetectionRule] = CONTENT_RULES,
        fallback: str = GENERIC,
        logo_rules: Sequence[LogoRule] = LOGO_RULES,
    ):
        self._rules = tuple(rules)
        self._content_rules = tuple(content_rules)
        self._logo_rules = tuple(logo_rules)
        self._fallback = fallback

    @property
    def rules(self) -> tuple[DetectionRule, ...]:
        return self._rules

    def detect(self, filename: str | Path) -> str:
        """
        Detect the layout from a filename.

        Total: every name maps to exactly one layout, `fallback` when no rule
        matches. Only the base name is inspected.

        Args:
            filename: File name or path

        Returns:
            Layout id
        """
        name = Path(str(filename)).name.upper()
        return _first_match(self._rules, name) or self._fallback

    def detect_from_content(self, lines: Sequence[str], limit: int = 30) -> str:
        """
        Detect the layout from the first `limit` lines of an OCR table dump.

        Args:
            lines: Raw dump lines

        Returns:
            Layout id, `fallback` when no signature is present
        """
        text = "\n".join(lines[:limit])
        return _first_match(self._content_rules, text) or self._fallback

    def detect_from_images(self, images: Sequence[Any]) -> str | None:
        """
        Detect the layout from the pictures on a worksheet.

        Args:
            images: Objects with `anchor`, `width` and `height` (SheetImage)

        Returns:
            Layout id of the first matching logo rule, None when no picture matches
        """
        for image in images:
            for rule in self._logo_rules:
                if rule.matches(image.anchor, image.width, image.height):
                    return rule.layout
        return None

    def with_rules(self, extra: Sequence[DetectionRule], *, first: bool = True) -> "PatternDetector":
        """Return a detector with `extra` rules added ahead of (or after) the current ones."""
        rules = (*extra, *self._rules) if first else (*self._rules, *extra)
        return PatternDetector(rules, self._content_rules, self._fallback, self._logo_rules)


def _first_match(rules: Sequence[DetectionRule], text: str) -> str | None:
    for rule in rules:
        if rule.matches(text):
            return rule.layout
    return None


_default = PatternDetector()
detect_layout: Callable[[str | Path], str] = _default.detect
