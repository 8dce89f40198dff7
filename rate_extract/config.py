from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import tomllib

from dotenv import load_dotenv


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.toml"


@dataclass(frozen=True)
class ExtractionConfig:
    ocr_results_dir: Path
    output_dir: Path
    default_pol: str
    currency: str


@dataclass(frozen=True)
class ApiConfig:
    host: str
    port: int
    max_upload_mb: int


@dataclass(frozen=True)
class AppConfig:
    extraction: ExtractionConfig
    api: ApiConfig


def load_app_config(config_path: Path | None = None) -> AppConfig:
    config_path = (config_path or DEFAULT_CONFIG_PATH).resolve()
    app_dir = config_path.parent

    env_path = app_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    raw: dict = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    extraction = raw.get("extraction", {})
    api = raw.get("api", {})

    ocr_dir = os.getenv("OCR_RESULTS_DIR") or extraction.get("ocr_results_dir", "ocr_results")
    output_dir = os.getenv("RATE_OUTPUT_DIR") or extraction.get("output_dir", "output")

    return AppConfig(
        extraction=ExtractionConfig(
            ocr_results_dir=(app_dir / ocr_dir).resolve(),
            output_dir=(app_dir / output_dir).resolve(),
            default_pol=str(extraction.get("default_pol", "BKK/LCH")),
            currency=str(extraction.get("currency", "USD")),
        ),
        api=ApiConfig(
            host=str(api.get("host", "0.0.0.0")),
            port=int(os.getenv("PORT") or api.get("port", 5001)),
            max_upload_mb=int(api.get("max_upload_mb", 10)),
        ),
    )
