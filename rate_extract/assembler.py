"""
RecordAssembler - turns parser output into final RateRecords.

Defaults are applied in a fixed order:
1. currency -> USD
2. 40 HQ mirrors 40'
3. T/T, T/S, FREE TIME -> TBA
4. validity -> current month ("DEC 2025")
5. highlighted rows: rates, ETDs, T/T, T/S and FREE TIME forced to TBA
6. drop rows without a POD or without any rate
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable

from .logging_utils import get_logger
from .models import DEFAULT_CURRENCY, DEFAULT_POL, TBA, RateRecord, RawExtraction
from .remarks import current_month_validity


logger = get_logger(__name__)

# Fields the visual highlight overrides. Carrier, POL, POD and currency stay.
HIGHLIGHT_FIELDS = (
    "rate20", "rate40", "rate40_hq",
    "etd_bkk", "etd_lch",
    "transit_time", "transshipment", "free_time",
)


def has_rate(value: str) -> bool:
    """A rate counts when it is neither empty nor zero."""
    value = value.strip()
    if not value:
        return False
    try:
        return float(value.replace(",", "")) != 0
    except (ValueError, TypeError):
        # Sentinels like "TBA" or "CHECK" still mark the row as quoted
        return True


def assemble(
    raw: RawExtraction,
    *,
    carrier_default: str = "UNKNOWN",
    pol_default: str = DEFAULT_POL,
    currency_default: str = DEFAULT_CURRENCY,
    today: date | None = None,
) -> RateRecord | None:
    """
    Normalize one raw extraction.

    Args:
        raw: Fields as the layout parser found them
        carrier_default: Used when the parser set no carrier
        pol_default: Used when the parser set no POL
        currency_default: Used when the parser set no currency
        today: Reference date for the validity fallback

    Returns:
        RateRecord, or None when the row has no POD or no rate
    """
    raw = replace(raw)  # never mutate the parser's object

    # 1. currency
    if not raw.currency.strip():
        raw.currency = currency_default

    # 2. 40 HQ mirror
    if not raw.rate40_hq.strip():
        raw.rate40_hq = raw.rate40

    # 3. logistics defaults
    for name in ("transit_time", "transshipment", "free_time"):
        if not getattr(raw, name).strip():
            setattr(raw, name, TBA)

    # 4. validity
    if not raw.validity.strip():
        raw.validity = current_month_validity(today)

    # 5. highlight override
    if raw.highlighted:
        for name in HIGHLIGHT_FIELDS:
            setattr(raw, name, TBA)

    # 6. presence rule
    pod = raw.pod.strip()
    if not pod:
        return None
    if not raw.highlighted and not (has_rate(raw.rate20) or has_rate(raw.rate40)):
        logger.debug("Dropping %s: no rate", pod)
        return None

    return RateRecord(
        carrier=raw.carrier.strip() or carrier_default,
        pol=raw.pol.strip() or pol_default,
        pod=pod,
        currency=raw.currency.strip(),
        rate20=raw.rate20.strip(),
        rate40=raw.rate40.strip(),
        rate40_hq=raw.rate40_hq.strip(),
        rate20_tc=raw.rate20_tc.strip(),
        rate20_rf=raw.rate20_rf.strip(),
        rate40_rf=raw.rate40_rf.strip(),
        etd_bkk=raw.etd_bkk.strip(),
        etd_lch=raw.etd_lch.strip(),
        transit_time=raw.transit_time.strip(),
        transshipment=raw.transshipment.strip(),
        free_time=raw.free_time.strip(),
        validity=raw.validity.strip(),
        remark=raw.remark.strip(),
        highlighted=raw.highlighted,
    )


def assemble_all(raws: Iterable[RawExtraction], **kwargs) -> list[RateRecord]:
    """Assemble in order, dropping rejected rows."""
    records = []
    for raw in raws:
        record = assemble(raw, **kwargs)
        if record is not None:
            records.append(record)
    return records
