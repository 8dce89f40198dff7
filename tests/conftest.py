from datetime import date
from pathlib import Path
import textwrap

import pytest

from rate_extract.config import ApiConfig, AppConfig, ExtractionConfig
from rate_extract.grid import LineTableGrid
from rate_extract.service import RateExtractionService


TODAY = date(2025, 11, 15)


def dump(text: str, content: str = "", source: str = "") -> LineTableGrid:
    """LineTableGrid from an indented OCR dump literal."""
    return LineTableGrid.from_text(textwrap.dedent(text).strip("\n"), content=content, source=source)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    ocr_dir = tmp_path / "ocr_results"
    ocr_dir.mkdir()
    return AppConfig(
        extraction=ExtractionConfig(
            ocr_results_dir=ocr_dir,
            output_dir=tmp_path / "output",
            default_pol="BKK/LCH",
            currency="USD",
        ),
        api=ApiConfig(host="127.0.0.1", port=5001, max_upload_mb=10),
    )


@pytest.fixture
def service(app_config: AppConfig, today: date) -> RateExtractionService:
    return RateExtractionService(app_config, today=today)


@pytest.fixture
def generic_csv(tmp_path: Path) -> Path:
    path = tmp_path / "rates.csv"
    path.write_text("Carrier,POL,POD,20',40'\nONE,BKK,TOKYO,300,600\n", encoding="utf-8")
    return path
