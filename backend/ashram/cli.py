import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Sequence

from ashram.core.logging_config import configure_logging
from ashram.services.browser_pool import BrowserPool
from ashram.services.receipt_html import render_receipt_html
from ashram.services.receipts import (
    ReceiptGenerationError,
    ReceiptInputError,
    ascii_filename,
    generate_receipt,
    prepare_receipt,
)
from ashram.services.resources import default_provider


def _load_receipt(raw_path: str) -> dict[str, Any]:
    path = Path(raw_path)
    if not path.is_file():
        raise SystemExit(f"Input file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(payload, dict) and isinstance(payload.get("receipt"), dict):
        payload = payload["receipt"]
    if not isinstance(payload, dict):
        raise SystemExit("Receipt JSON must be an object")
    return payload


def _output_path(raw_path: str | None, default_name: str) -> Path:
    path = Path(raw_path or default_name)
    if path.is_dir():
        raise SystemExit(f"Output path points to a directory: {path}")
    return path


async def render_pdf(receipt: dict[str, Any], output: str | None, *, backend: str | None, include_logos: bool) -> Path:
    pool = BrowserPool()
    try:
        result = await generate_receipt(receipt, include_logos=include_logos, backend=backend, browser_pool=pool)
    finally:
        await pool.shutdown()
    path = _output_path(output, ascii_filename(result.filename))
    path.write_bytes(result.pdf)
    for attempt in result.attempts:
        print(f"backend {attempt.backend} failed: {attempt.message}")
    print(f"Wrote {path} ({len(result.pdf)} bytes, {result.backend} backend)")
    return path


def render_html(receipt: dict[str, Any], output: str | None, *, include_logos: bool) -> Path:
    prepared = prepare_receipt(receipt, include_logos=include_logos)
    path = _output_path(output, ascii_filename(f"Receipt-{prepared.record.receipt_number}.html"))
    path.write_text(render_receipt_html(prepared.program, prepared.resources.fonts), encoding="utf-8")
    print(f"Wrote {path}")
    return path


def print_fonts() -> None:
    for row in default_provider().describe_fonts():
        state = "found" if row.exists else "missing"
        coverage = "devanagari" if row.devanagari else "latin-only" if row.exists else "-"
        print(f"{row.weight:<8} {state:<8} {coverage:<11} {row.size:>9} {row.path}")


def _add_render_commands(subparsers) -> None:
    render = subparsers.add_parser("render", help="Render a receipt JSON file to PDF")
    render.add_argument("input", help="Receipt JSON path")
    render.add_argument("-o", "--output", help="Output PDF path (default Receipt-<number>.pdf)")
    render.add_argument("--backend", help="Backend to try first (vector, raster, browser)")
    render.add_argument("--no-logos", action="store_true", help="Leave the logo boxes empty")

    html = subparsers.add_parser("html", help="Render a receipt JSON file to the HTML preview")
    html.add_argument("input", help="Receipt JSON path")
    html.add_argument("-o", "--output", help="Output HTML path")
    html.add_argument("--no-logos", action="store_true", help="Leave the logo boxes empty")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Donation receipt utilities")
    subparsers = parser.add_subparsers(dest="command")
    _add_render_commands(subparsers)
    subparsers.add_parser("fonts", help="List receipt font candidates and their Devanagari coverage")
    return parser


def _run_cli_command(args: argparse.Namespace) -> bool:
    if args.command == "render":
        receipt = _load_receipt(args.input)
        asyncio.run(render_pdf(receipt, args.output, backend=args.backend, include_logos=not args.no_logos))
        return True

    if args.command == "html":
        render_html(_load_receipt(args.input), args.output, include_logos=not args.no_logos)
        return True

    if args.command == "fonts":
        print_fonts()
        return True

    return False


def main(argv: Sequence[str] | None = None) -> None:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        handled = _run_cli_command(args)
    except ReceiptInputError as exc:
        raise SystemExit(f"Invalid receipt: {exc}") from exc
    except ReceiptGenerationError as exc:
        raise SystemExit(str(exc)) from exc
    if not handled:
        parser.print_help()


if __name__ == "__main__":
    main()
