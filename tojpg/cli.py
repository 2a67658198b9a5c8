from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .batch import run_batch, summarize
from .report import build_report, save_report_csv, save_report_json
from .settings import ConfigurationError, ConversionRequest


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tojpg",
        description="Bulk convert images (RAW, HEIC, PNG, TIFF, ...) to JPEG",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    sub = p.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", help="Convert image files to JPEG")
    conv.add_argument("inputs", nargs="+", help="Files to convert (processed in the given order)")

    # Output
    conv.add_argument("--out", default=None, help="Output folder (default: next to each source file)")
    conv.add_argument(
        "--remove-extension",
        action="store_true",
        help="Drop the original extension: photo.png -> photo.jpg instead of photo.png.jpg",
    )

    # Already-JPEG files
    conv.add_argument(
        "--fix-extension",
        action="store_true",
        help="Rename JPEG files that lack a .jpg/.jpeg extension",
    )
    conv.add_argument(
        "--output-unconverted",
        action="store_true",
        help="Copy files that are already JPEG into --out as well",
    )

    # Reports
    conv.add_argument("--report", default=None, help="Write report.json and report.csv into this folder")

    return p


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(bool(args.verbose))

    if args.command == "convert":
        inputs = [Path(p) for p in args.inputs]

        cfg = ConversionRequest(
            output_folder=Path(args.out) if args.out else None,
            fix_extension_if_jpeg=bool(args.fix_extension),
            output_unconverted=bool(args.output_unconverted),
            remove_original_extension=bool(args.remove_extension),
        )

        try:
            outcome = run_batch(inputs, cfg)
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}")
            return 2

        summary = summarize(outcome)

        # Print summary
        print("\n=== Batch Summary ===")
        print("Total files:", summary.total_files)
        print("Transcoded :", summary.transcoded)
        print("Copied     :", summary.copied)
        print("Renamed    :", summary.renamed)
        print("Skipped    :", summary.skipped)
        print("Unsupported:", summary.unsupported)
        print("Failed     :", summary.failed)

        if args.report:
            report = build_report(outcome, summary)
            report_dir = Path(args.report)

            json_path = report_dir / "report.json"
            save_report_json(report, json_path)

            csv_path = report_dir / "report.csv"
            save_report_csv(report, csv_path)

            print("\nReport written:", json_path)
            print("CSV written   :", csv_path)

        return 1 if summary.failed else 0

    parser.print_help()
    return 2
