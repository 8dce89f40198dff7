"""
Data models for rate extraction.

RawExtraction is the loose bag of fields a layout parser fills in while it
walks a grid. RecordAssembler turns each one into a RateRecord, the fixed
21-column "FCL export" row every downstream consumer reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field


# Output column order. Consumed by the sheet writer, do not reorder or rename.
FCL_COLUMNS: tuple[str, ...] = (
    "CARRIER", "POL", "POD", "CUR", "20'", "40'", "40 HQ", "20 TC", "20 RF", "40RF",
    "ETD BKK", "ETD LCH", "T/T", "T/S", "FREE TIME", "VALIDITY", "REMARK",
    "Export", "Who use?", "Rate Adjust", "1.1",
)

TBA = "TBA"
DEFAULT_POL = "BKK/LCH"
DEFAULT_CURRENCY = "USD"


@dataclass
class RawExtraction:
    """
    One row as a layout parser saw it.

    Empty string means "not found". RecordAssembler owns every default, so
    parsers only set what the sheet actually says.

    Attributes:
        highlighted: The source row was visually flagged (black fill).
        rate40_hq: Left empty to mirror rate40; set only when the sheet has
            a distinct high-cube value.
    """
    carrier: str = ""
    pol: str = ""
    pod: str = ""
    currency: str = ""
    rate20: str = ""
    rate40: str = ""
    rate40_hq: str = ""
    rate20_tc: str = ""
    rate20_rf: str = ""
    rate40_rf: str = ""
    etd_bkk: str = ""
    etd_lch: str = ""
    transit_time: str = ""
    transshipment: str = ""
    free_time: str = ""
    validity: str = ""
    remark: str = ""
    highlighted: bool = False


@dataclass(frozen=True)
class RateRecord:
    """A normalized FCL export rate row."""
    carrier: str
    pol: str
    pod: str
    currency: str
    rate20: str
    rate40: str
    rate40_hq: str
    rate20_tc: str
    rate20_rf: str
    rate40_rf: str
    etd_bkk: str
    etd_lch: str
    transit_time: str
    transshipment: str
    free_time: str
    validity: str
    remark: str
    highlighted: bool = False

    # Reserved for manual annotation downstream, never filled by extraction
    export: str = ""
    who_use: str = ""
    rate_adjust: str = ""
    extra: str = ""

    def to_row(self) -> dict[str, str]:
        """Return the record keyed by FCL_COLUMNS, in column order."""
        values = (
            self.carrier, self.pol, self.pod, self.currency,
            self.rate20, self.rate40, self.rate40_hq, self.rate20_tc,
            self.rate20_rf, self.rate40_rf, self.etd_bkk, self.etd_lch,
            self.transit_time, self.transshipment, self.free_time,
            self.validity, self.remark,
            self.export, self.who_use, self.rate_adjust, self.extra,
        )
        return dict(zip(FCL_COLUMNS, values))


@dataclass(frozen=True)
class ExtractionResult:
    """
    Outcome of extracting one file.

    An empty `records` tuple is a valid result: the layout ran and found
    nothing, which usually means the wrong layout was picked.
    """
    source: str
    layout: str
    validity: str = ""
    region: str = ""
    records: tuple[RateRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.records
