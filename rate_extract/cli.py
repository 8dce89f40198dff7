"""
Command line entry point.

Extracts one or more rate sheets and writes the FCL export sheet per file
(or one combined sheet with --combine). A file that fails is reported and
skipped; the exit code is 1 when any file failed.

Run with: rate-extract "FAK RATE OF 1-30 NOV.xlsx" --validity "1-30 NOV 2025"
"""

from __future__ import annotations

from pathlib import Path
import argparse
import sys

from .config import load_app_config
from .export import carrier_summary, download_filename, write_records
from .logging_utils import configure_logging
from .parsers import LAYOUTS
from .service import AUTO, RateExtractionService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract carrier rate sheets into the 21-column FCL export format")
    parser.add_argument("files", nargs="+", help="Spreadsheets, OCR table dumps or PDFs with a cached dump")
    parser.add_argument("--layout", default=AUTO, choices=[AUTO, *LAYOUTS],
                        help="Layout id (default: detect from filename and content)")
    parser.add_argument("--validity", default="", help="Validity applied to rows without their own")
    parser.add_argument("--output-dir", default=None, help="Where sheets are written (default: config output_dir)")
    parser.add_argument("--combine", action="store_true", help="Write every record into one sheet")
    parser.add_argument("--csv", action="store_true", help="Write .csv instead of .xlsx")
    parser.add_argument("--config", default=None, help="Path to config.toml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")

    config = load_app_config(Path(args.config) if args.config else None)
    service = RateExtractionService(config)
    output_dir = Path(args.output_dir) if args.output_dir else config.extraction.output_dir
    suffix = ".csv" if args.csv else ".xlsx"

    print(f"\n{'='*60}")
    print("RATE EXTRACTION")
    print(f"{'='*60}")
    print(f"Files: {len(args.files)}")
    print(f"Layout: {args.layout}")
    print(f"Output: {output_dir}")
    print(f"{'='*60}\n")

    outcomes = service.extract_many(args.files, layout=args.layout, validity=args.validity)

    combined = []
    written: set[Path] = set()
    failed = 0
    for outcome in outcomes:
        if outcome.status == "error":
            failed += 1
            print(f"[Extract] FAILED {outcome.source}: {outcome.error}")
            continue

        result = outcome.result
        print(f"[Extract] {outcome.source}: layout={result.layout} records={len(result.records)}"
              + (f" region={result.region}" if result.region else ""))
        if result.is_empty:
            print("[Extract]   no rates found - check the layout")
            continue

        if args.combine:
            combined.extend(result.records)
            continue

        name = Path(download_filename(result)).with_suffix(suffix).name
        target = unique_target(output_dir, name, outcome.source, written)
        write_records(result.records, target)
        written.add(target)
        print(f"[Extract]   wrote {target}")

    if args.combine and combined:
        target = output_dir / f"extracted_rates{suffix}"
        write_records(combined, target)
        print(f"[Extract] wrote {len(combined)} records to {target}")

    all_records = [r for o in outcomes if o.result for r in o.result.records]
    if all_records:
        print(f"\n{'='*60}")
        print("CARRIERS")
        print(f"{'='*60}")
        for carrier, count in carrier_summary(all_records).items():
            print(f"  {carrier}: {count}")

    return 1 if failed else 0



def unique_target(output_dir: Path, name: str, source: str, taken: set[Path]) -> Path:
    """
    Output path for `name`, kept apart from files this run already wrote.

    Two sources with the same carrier and validity would share a download
    name; the later one gets its source name appended
    ("ONE_NOV_2025_rates_b.xlsx", then a counter).
    """
    target = output_dir / name
    if target not in taken:
        return target
    stem, suffix = Path(name).stem, Path(name).suffix
    base = f"{stem}_{Path(source).stem}"
    target = output_dir / f"{base}{suffix}"
    counter = 2
    while target in taken:
        target = output_dir / f"{base}_{counter}{suffix}"
        counter += 1
    return target


if __name__ == "__main__":
    sys.exit(main())
