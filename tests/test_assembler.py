"""
Test RecordAssembler defaults, the highlight override and the drop rules.
"""

from datetime import date

from rate_extract.assembler import assemble, assemble_all, has_rate
from rate_extract.models import FCL_COLUMNS, RawExtraction


TODAY = date(2025, 11, 15)


def test_defaults_are_applied():
    record = assemble(RawExtraction(pod="SINGAPORE", rate20="100"), today=TODAY)

    assert record.carrier == "UNKNOWN"
    assert record.pol == "BKK/LCH"
    assert record.currency == "USD"
    assert record.transit_time == "TBA"
    assert record.transshipment == "TBA"
    assert record.free_time == "TBA"
    assert record.validity == "NOV 2025"
    assert record.highlighted is False


def test_custom_defaults():
    record = assemble(
        RawExtraction(pod="SINGAPORE", rate40="200"),
        carrier_default="ONE",
        pol_default="LCH",
        currency_default="THB",
        today=TODAY,
    )
    assert (record.carrier, record.pol, record.currency) == ("ONE", "LCH", "THB")


def test_parser_values_win_over_defaults():
    raw = RawExtraction(
        carrier="RCL", pol="BKK", pod="TOKYO", currency="EUR",
        rate20="300", rate40="600", transit_time="7 Days", validity="1-30 NOV 2025",
    )
    record = assemble(raw, today=TODAY)
    assert record.carrier == "RCL"
    assert record.currency == "EUR"
    assert record.transit_time == "7 Days"
    assert record.validity == "1-30 NOV 2025"


def test_hq_mirrors_forty_only_when_empty():
    assert assemble(RawExtraction(pod="A", rate40="600"), today=TODAY).rate40_hq == "600"
    assert assemble(RawExtraction(pod="A", rate40="600", rate40_hq="650"), today=TODAY).rate40_hq == "650"


def test_highlighted_rows_read_tba():
    raw = RawExtraction(
        carrier="RCL", pol="LCH", pod="PORT KLANG",
        rate20="150", rate40="300", etd_bkk="MON", etd_lch="FRI",
        transit_time="5 Days", free_time="7 days", remark="LSS INCL", highlighted=True,
    )
    record = assemble(raw, today=TODAY)

    for name in ("rate20", "rate40", "rate40_hq", "etd_bkk", "etd_lch", "transit_time", "transshipment", "free_time"):
        assert getattr(record, name) == "TBA"
    assert record.carrier == "RCL"
    assert record.pol == "LCH"
    assert record.pod == "PORT KLANG"
    assert record.remark == "LSS INCL"
    assert record.highlighted is True


def test_highlighted_row_without_rates_is_kept():
    record = assemble(RawExtraction(pod="PORT KLANG", highlighted=True), today=TODAY)
    assert record is not None
    assert record.rate20 == "TBA"


def test_rows_without_pod_or_rate_are_dropped():
    assert assemble(RawExtraction(rate20="100"), today=TODAY) is None
    assert assemble(RawExtraction(pod="   ", rate20="100"), today=TODAY) is None
    assert assemble(RawExtraction(pod="TOKYO"), today=TODAY) is None
    assert assemble(RawExtraction(pod="TOKYO", rate20="0", rate40="0.00"), today=TODAY) is None


def test_sentinel_rates_count_as_quoted():
    record = assemble(RawExtraction(pod="INCHEON", rate20="Check port", rate40="Check port"), today=TODAY)
    assert record is not None
    assert record.rate20 == "Check port"


def test_has_rate():
    assert has_rate("1,200")
    assert has_rate("TBA")
    assert not has_rate("")
    assert not has_rate("0.0")


def test_assemble_does_not_mutate_parser_output():
    raw = RawExtraction(pod="TOKYO", rate20="300")
    assemble(raw, today=TODAY)
    assert raw.currency == ""
    assert raw.transit_time == ""


def test_assemble_all_keeps_order_and_drops_rejects():
    raws = [
        RawExtraction(pod="TOKYO", rate20="300"),
        RawExtraction(pod="OSAKA"),
        RawExtraction(pod="NAGOYA", rate40="650"),
    ]
    records = assemble_all(raws, today=TODAY)
    assert [r.pod for r in records] == ["TOKYO", "NAGOYA"]


def test_to_row_follows_export_columns():
    record = assemble(RawExtraction(carrier="RCL", pod="TOKYO", rate20="300"), today=TODAY)
    row = record.to_row()

    assert tuple(row) == FCL_COLUMNS
    assert len(row) == 21
    assert row["POD"] == "TOKYO"
    assert row["20'"] == "300"
    assert row["Export"] == row["Who use?"] == row["Rate Adjust"] == row["1.1"] == ""
