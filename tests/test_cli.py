"""
Test the command line entry point and config loading.
"""

from pathlib import Path

import pytest

from rate_extract.cli import build_parser, main, unique_target
from rate_extract.config import load_app_config


ENV_VARS = ("OCR_RESULTS_DIR", "RATE_OUTPUT_DIR", "PORT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        '[extraction]\n'
        'ocr_results_dir = "ocr"\n'
        'output_dir = "out"\n'
        'default_pol = "LCH"\n'
        'currency = "THB"\n'
        '\n'
        '[api]\n'
        'host = "127.0.0.1"\n'
        'port = 6000\n'
        'max_upload_mb = 5\n',
        encoding="utf-8",
    )
    return path


# ============================================================================
# CONFIG
# ============================================================================

def test_load_app_config(config_file, tmp_path):
    config = load_app_config(config_file)

    assert config.extraction.ocr_results_dir == (tmp_path / "ocr").resolve()
    assert config.extraction.output_dir == (tmp_path / "out").resolve()
    assert config.extraction.default_pol == "LCH"
    assert config.extraction.currency == "THB"
    assert (config.api.host, config.api.port, config.api.max_upload_mb) == ("127.0.0.1", 6000, 5)


def test_env_overrides(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "7000")
    monkeypatch.setenv("RATE_OUTPUT_DIR", "exports")

    config = load_app_config(config_file)

    assert config.api.port == 7000
    assert config.extraction.output_dir == (tmp_path / "exports").resolve()


def test_defaults_without_config_file(tmp_path):
    config = load_app_config(tmp_path / "absent.toml")

    assert config.extraction.default_pol == "BKK/LCH"
    assert config.extraction.currency == "USD"
    assert config.extraction.output_dir == (tmp_path / "output").resolve()
    assert config.api.port == 5001


# ============================================================================
# CLI
# ============================================================================

def test_parser_defaults():
    args = build_parser().parse_args(["rates.csv"])

    assert args.files == ["rates.csv"]
    assert args.layout == "auto"
    assert args.validity == ""
    assert args.combine is False


def test_parser_rejects_unknown_layout():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["rates.csv", "--layout", "nope"])


def test_main_writes_sheet(config_file, generic_csv, tmp_path, capsys):
    code = main([str(generic_csv), "--config", str(config_file), "--validity", "1-15 DEC 2025"])

    assert code == 0
    written = list((tmp_path / "out").glob("*.xlsx"))
    assert [p.name for p in written] == ["ONE_1-15_DEC_2025.xlsx"]

    out = capsys.readouterr().out
    assert "[Extract] rates.csv: layout=generic records=1" in out
    assert "ONE: 1" in out


def test_main_csv_to_output_dir(config_file, generic_csv, tmp_path):
    target = tmp_path / "elsewhere"
    code = main([str(generic_csv), "--config", str(config_file), "--csv", "--output-dir", str(target)])

    assert code == 0
    assert len(list(target.glob("*.csv"))) == 1


def test_main_combine(config_file, generic_csv, tmp_path):
    code = main([str(generic_csv), str(generic_csv), "--config", str(config_file), "--combine"])

    assert code == 0
    assert (tmp_path / "out" / "extracted_rates.xlsx").exists()


def test_main_reports_failures(config_file, generic_csv, tmp_path, capsys):
    code = main([str(generic_csv), str(tmp_path / "missing.xlsx"), "--config", str(config_file)])

    assert code == 1
    out = capsys.readouterr().out
    assert "[Extract] FAILED missing.xlsx" in out
    assert len(list((tmp_path / "out").glob("*.xlsx"))) == 1


def test_main_keeps_sheets_with_the_same_download_name(config_file, generic_csv, tmp_path):
    copy = tmp_path / "rates_b.csv"
    copy.write_bytes(generic_csv.read_bytes())

    code = main([str(generic_csv), str(copy), "--config", str(config_file), "--validity", "1-15 DEC 2025"])

    assert code == 0
    written = sorted(p.name for p in (tmp_path / "out").glob("*.xlsx"))
    assert written == ["ONE_1-15_DEC_2025.xlsx", "ONE_1-15_DEC_2025_rates_b.xlsx"]


def test_unique_target(tmp_path):
    taken = {tmp_path / "ONE_DEC_2025.xlsx"}
    assert unique_target(tmp_path, "RCL_DEC_2025.xlsx", "a.xlsx", taken) == tmp_path / "RCL_DEC_2025.xlsx"
    assert unique_target(tmp_path, "ONE_DEC_2025.xlsx", "a.csv", taken) == tmp_path / "ONE_DEC_2025_a.xlsx"

    taken.add(tmp_path / "ONE_DEC_2025_a.xlsx")
    assert unique_target(tmp_path, "ONE_DEC_2025.xlsx", "a.csv", taken) == tmp_path / "ONE_DEC_2025_a_2.xlsx"
