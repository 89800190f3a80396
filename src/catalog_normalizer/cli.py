#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .errors import CatalogError
from .io import read_any_rows, write_csv
from .mapping import PLATFORMS
from .records import CUSTOMER_ANCHORS, ORDER_ANCHORS, RECORD_PLATFORMS, parse_customer_table, parse_order_table
from .settings import load_settings
from .transform import ANCHOR_COLUMNS, build_payloads, export_catalog, parse_table


SOURCES = PLATFORMS + tuple(p for p in RECORD_PLATFORMS if p not in PLATFORMS)
KINDS = ("products", "customers", "orders")


def load_env(dotenv_path: Optional[str]) -> None:
    if dotenv_path is None:
        # try default .env in cwd if present
        default_env = Path.cwd() / ".env"
        if default_env.exists():
            load_dotenv(default_env)
        return
    p = Path(dotenv_path)
    if p.exists():
        load_dotenv(p)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Convert product exports between Shopify, WooCommerce and Wix, or normalize customer and order exports")
    p.add_argument("--input", required=True, help="Source export file (.csv, .xlsx or .xls)")
    p.add_argument("--source", required=True, choices=SOURCES, help="Platform the input was exported from")
    p.add_argument("--kind", default="products", choices=KINDS, help="What the export holds (default: products)")
    p.add_argument("--target", default="shopify", choices=PLATFORMS, help="Platform to convert to (default: shopify)")
    out = p.add_mutually_exclusive_group()
    out.add_argument("--output", help="Write target CSV here (default: stdout)")
    out.add_argument("--payloads", help="Write target creation payloads as JSON here")
    p.add_argument("--max-combinations", type=int, help="Fail when a product would expand to more variants")
    p.add_argument("--skip-validation", action="store_true", help="Skip header checks and the variant validity filter")
    p.add_argument("--settings", help="JSON settings file (optional)")
    p.add_argument("--env-file", help="Path to .env file (optional)")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v for INFO, -vv for DEBUG)")
    return p.parse_args(argv)


def write_records(args: argparse.Namespace, input_path: Path, settings) -> int:
    """Customer and order exports are written as JSON records."""
    anchors, parse = (
        (CUSTOMER_ANCHORS, parse_customer_table) if args.kind == "customers" else (ORDER_ANCHORS, parse_order_table)
    )
    try:
        table = read_any_rows(input_path, anchors=anchors.get(args.source, ()))
        result = parse(table, args.source, settings)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    logging.getLogger(__name__).info(f"Parsed {len(result)} {args.kind}: {result.stats.as_dict()}")
    text = json.dumps([r.model_dump(mode="json") for r in result], indent=2, ensure_ascii=False)
    dest = args.payloads or args.output
    if dest:
        Path(dest).write_text(text, encoding="utf-8")
        print(f"Wrote {len(result)} {args.source} {args.kind} to {dest}")
    else:
        sys.stdout.write(text + "\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    log = logging.getLogger(__name__)
    load_env(args.env_file)

    settings = load_settings(Path(args.settings) if args.settings else None)
    if args.max_combinations is not None:
        settings.max_combinations = args.max_combinations
    if args.skip_validation:
        settings.skip_validation = True

    input_path = Path(args.input).expanduser()
    if not input_path.exists():
        print(f"Error: input file not found: {input_path}", file=sys.stderr)
        return 1

    if args.kind != "products":
        return write_records(args, input_path, settings)

    try:
        table = read_any_rows(input_path, anchors=ANCHOR_COLUMNS.get(args.source, ()))
        result = parse_table(table, args.source, settings)
        log.info(f"Parsed {len(result.products)} products: {result.stats.as_dict()}")
        if args.payloads:
            payloads = build_payloads(result.products, args.target)
            Path(args.payloads).write_text(json.dumps(payloads, indent=2, ensure_ascii=False), encoding="utf-8")
            print(f"Wrote {len(payloads)} {args.target} payloads to {args.payloads}")
            return 0
        text = export_catalog(result.products, args.target)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output:
        write_csv(Path(args.output), text)
        print(f"Wrote {len(result.products)} products to {args.output}")
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
