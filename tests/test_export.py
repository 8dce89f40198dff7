"""
Test the FCL export sheet writer and download names.
"""

from datetime import date

import pandas as pd
import pytest
from openpyxl import load_workbook

from rate_extract.assembler import assemble_all
from rate_extract.export import (
    SHEET_NAME,
    carrier_summary,
    download_filename,
    records_to_dataframe,
    write_records,
)
from rate_extract.models import FCL_COLUMNS, ExtractionResult, RawExtraction


TODAY = date(2025, 11, 15)


@pytest.fixture
def records():
    return assemble_all([
        RawExtraction(carrier="RCL", pol="BKK", pod="SINGAPORE", rate20="100", rate40="200"),
        RawExtraction(carrier="RCL", pol="LCH", pod="PORT KLANG", rate20="150", highlighted=True),
        RawExtraction(carrier="KMTC", pod="SHANGHAI", rate40="240"),
    ], today=TODAY)


def test_dataframe_columns(records):
    df = records_to_dataframe(records)

    assert tuple(df.columns) == FCL_COLUMNS
    assert len(df) == 3
    assert df.loc[1, "20'"] == "TBA"


def test_write_csv(records, tmp_path):
    path = write_records(records, tmp_path / "out" / "rates.csv")

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert tuple(df.columns) == FCL_COLUMNS
    assert df["POD"].tolist() == ["SINGAPORE", "PORT KLANG", "SHANGHAI"]
    assert df.loc[0, "40 HQ"] == "200"


def test_write_xlsx(records, tmp_path):
    path = write_records(records, tmp_path / "rates.xlsx")

    wb = load_workbook(path)
    assert wb.sheetnames == [SHEET_NAME]
    ws = wb[SHEET_NAME]

    assert ws["A1"].value == "CARRIER"
    assert ws["A1"].font.bold
    assert ws["C2"].value == "SINGAPORE"
    # Highlighted record keeps its black fill
    assert ws["A3"].fill.start_color.rgb == "FF000000"
    assert ws["A2"].fill.fill_type is None


def test_write_unsupported_type(records, tmp_path):
    with pytest.raises(ValueError):
        write_records(records, tmp_path / "rates.json")


def test_carrier_summary(records):
    assert carrier_summary(records) == {"RCL": 2, "KMTC": 1}
    assert list(carrier_summary(records)) == ["RCL", "KMTC"]
    assert carrier_summary([]) == {}


def test_download_filename_for_carrier_layout():
    result = ExtractionResult(source="x.pdf", layout="sinokor", validity="1-30 NOV 2025")
    assert download_filename(result) == "SINOKOR_1-30_NOV_2025.xlsx"


def test_download_filename_for_generic_layout(records):
    kmtc_only = tuple(r for r in records if r.carrier == "KMTC")
    result = ExtractionResult(source="x.csv", layout="generic", records=kmtc_only)
    assert download_filename(result) == "KMTC_NOV_2025.xlsx"


def test_download_filename_with_region():
    result = ExtractionResult(source="x.txt", layout="pil", validity="DEC 2025", region="Latin_America")
    assert download_filename(result) == "PIL_LATIN_AMERICA_DEC_2025.xlsx"


def test_download_filename_without_anything():
    assert download_filename(ExtractionResult(source="x.csv", layout="generic")) == "RATES.xlsx"
