"""Command line driver for generating QR codes and managing history."""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional, Sequence

from config.settings import AppConfig, load_config
from modules.errors import QRStudioError, ValidationSkip
from modules.pipelines.qr_options import ErrorCorrectionLevel
from modules.services.export_service import ExportService
from modules.ui.layout import build_services
from modules.utils.logging import setup_logging

MIN_SIZE, MAX_SIZE = 64, 2000
MIN_MARGIN, MAX_MARGIN = 0, 10


async def _generate(config: AppConfig, args: argparse.Namespace, exporter: ExportService) -> int:
    form = config.default_configuration()
    form.content = args.text
    if args.size is not None:
        form.pixel_size = args.size
    if args.margin is not None:
        form.margin = args.margin
    if args.ec is not None:
        form.error_correction_level = ErrorCorrectionLevel.parse(args.ec)
    if args.dark:
        form.dark_color = args.dark
    if args.light:
        form.light_color = args.light

    pipeline = exporter.pipeline
    if args.replay is not None:
        entry = pipeline.history.get(args.replay)
        if entry is None:
            print(f"No history entry at index {args.replay}.")
            return 1
        await pipeline.replay(entry, form)
    else:
        await pipeline.generate(form)

    print(f"Generated QR code for: {form.content}")
    if args.png:
        print("PNG:", exporter.export_raster())
    if args.svg:
        print("SVG:", exporter.export_vector())
    return 0


def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    setup_logging(config)
    pipeline, exporter = build_services(config)

    if args.command == "history":
        for index, entry in enumerate(pipeline.history.entries):
            print(f"[{index}] {entry.generated_at.isoformat()}  {entry.text}")
        return 0
    if args.command == "clear":
        pipeline.history.clear()
        print("History cleared.")
        return 0

    try:
        return asyncio.run(_generate(config, args, exporter))
    except ValidationSkip:
        print("Nothing to encode: content is empty.")
        return 1
    except QRStudioError as exc:
        print(f"Error: {exc}")
        return 1


def _bounded_int(low: int, high: int):
    def convert(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid int value: {raw!r}") from None
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"must be between {low} and {high}, got {value}")
        return value

    return convert


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate QR codes offline.")
    parser.add_argument("--config", default=None, help="Path to a .env file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Encode text and record it in history.")
    generate.add_argument("text", nargs="?", default="")
    generate.add_argument("--size", type=_bounded_int(MIN_SIZE, MAX_SIZE), default=None)
    generate.add_argument("--margin", type=_bounded_int(MIN_MARGIN, MAX_MARGIN), default=None)
    generate.add_argument("--ec", choices=[level.value for level in ErrorCorrectionLevel], default=None)
    generate.add_argument("--dark", default=None)
    generate.add_argument("--light", default=None)
    generate.add_argument("--replay", type=int, default=None, help="Re-generate a history entry by index.")
    generate.add_argument("--png", action="store_true", help="Save the PNG to the output directory.")
    generate.add_argument("--svg", action="store_true", help="Save the SVG to the output directory.")

    subparsers.add_parser("history", help="List stored history entries.")
    subparsers.add_parser("clear", help="Remove all stored history.")
    return parser.parse_args(argv)


if __name__ == "__main__":
    raise SystemExit(run(parse_args()))
