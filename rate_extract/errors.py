"""
Errors raised by the extraction engine.

Only whole-file failures are exceptions. A layout that runs cleanly but finds
no rows returns an empty list, and malformed cells degrade to sentinels.
"""

from __future__ import annotations

from pathlib import Path


class RateExtractionError(ValueError):
    """Base class for every per-file extraction failure."""


class SourceUnreadable(RateExtractionError):
    """The grid could not be built from the source file at all."""

    def __init__(self, source: str | Path, reason: str):
        self.source = str(source)
        self.reason = reason
        super().__init__(f"Cannot read {self.source}: {reason}")


class ColumnMappingFailed(RateExtractionError):
    """Header detection found no POD column in a generic sheet."""

    def __init__(self, header_row: int, headers: list[str] | None = None):
        self.header_row = header_row
        self.headers = headers or []
        super().__init__(
            f"Could not map a POD column from header row {header_row} "
            f"({', '.join(h for h in self.headers if h) or 'no headers'}); "
            "try a different layout"
        )


class UnknownLayout(RateExtractionError):
    """An explicit layout id is not registered."""

    def __init__(self, layout: str, known: list[str]):
        self.layout = layout
        self.known = known
        super().__init__(f"Unknown layout '{layout}'. Available: {', '.join(known)}")
