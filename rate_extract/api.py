"""
REST API for rate extraction.

Endpoints:
- GET  /health          - Health check
- GET  /api/layouts     - Registered layout ids
- POST /api/extract     - Upload a rate sheet, get the 21-column records

Run with: python -m rate_extract.api
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import os
import tempfile

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.utils import secure_filename

from .config import AppConfig, load_app_config
from .errors import RateExtractionError
from .export import carrier_summary, download_filename
from .logging_utils import configure_logging, get_logger
from .models import ExtractionResult
from .service import AUTO, RateExtractionService


logger = get_logger(__name__)


def serialize_result(result: ExtractionResult) -> dict:
    """ExtractionResult as JSON-ready data, records keyed by FCL column."""
    return {
        "source": result.source,
        "layout": result.layout,
        "validity": result.validity,
        "region": result.region,
        "count": len(result.records),
        "carrier_summary": carrier_summary(result.records),
        "download_filename": download_filename(result),
        "records": [record.to_row() for record in result.records],
        "highlighted": [i for i, record in enumerate(result.records) if record.highlighted],
    }


def create_app(config: AppConfig | None = None, service: RateExtractionService | None = None) -> Flask:
    """
    Build the Flask app.

    Args:
        config: Loaded config; config.toml when None
        service: Extraction service; built from `config` when None
    """
    config = config or load_app_config()
    service = service or RateExtractionService(config)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.api.max_upload_mb * 1024 * 1024
    CORS(app)  # Enable CORS for frontend access

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "rate-extract-api",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/api/layouts", methods=["GET"])
    def list_layouts():
        """List layout ids with their descriptions."""
        return jsonify({
            "success": True,
            "layouts": [
                {"id": layout_id, "description": parser.description}
                for layout_id, parser in service.layouts.items()
            ],
        })

    @app.route("/api/extract", methods=["POST"])
    def extract():
        """
        Extract an uploaded rate sheet.

        Form fields:
            file: The rate sheet (.xlsx, .xls, .csv, .txt dump, .pdf)
            layout: Layout id or "auto" (optional)
            validity: Validity hint (optional)

        Response:
        {
            "success": true,
            "data": {"layout": "rcl", "count": 12, "records": [...], ...}
        }
        """
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return jsonify({
                "success": False,
                "error": "Missing 'file' in form data",
            }), 400

        layout = request.form.get("layout", AUTO) or AUTO
        validity = request.form.get("validity", "")
        filename = secure_filename(upload.filename) or "upload"

        try:
            with tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / filename
                upload.save(path)
                result = service.extract(path, layout=layout, validity=validity)
        except RateExtractionError as e:
            return jsonify({
                "success": False,
                "error": str(e),
            }), 422
        except Exception as e:
            logger.exception("Extraction of %s failed", filename)
            return jsonify({
                "success": False,
                "error": str(e),
            }), 500

        return jsonify({
            "success": True,
            "data": serialize_result(result),
        })

    return app


if __name__ == "__main__":
    configure_logging()
    app_config = load_app_config()
    debug = os.getenv("API_DEBUG", "false").lower() == "true"

    print(f"\n{'='*60}")
    print("RATE EXTRACTION API")
    print(f"{'='*60}")
    print(f"Running on: http://localhost:{app_config.api.port}")
    print(f"Debug mode: {debug}")
    print("\nEndpoints:")
    print("  GET  /health           - Health check")
    print("  GET  /api/layouts      - Layout ids")
    print("  POST /api/extract      - Extract an uploaded rate sheet")
    print(f"{'='*60}\n")

    create_app(app_config).run(host=app_config.api.host, port=app_config.api.port, debug=debug)
