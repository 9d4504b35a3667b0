#!/usr/bin/env python3
"""
Campaign Vision Pipeline - Main Entry Point

Turns advertising-campaign CSV exports into one Vision analytics document
per product.

Usage:
    # Unique category tiers -> intermediate/categories.tier2.jsonl
    python -m vision.run_pipeline extract-categories --tiers 2

    # Age/gender de-aggregation -> intermediate/gender.deaggregated.jsonl
    python -m vision.run_pipeline infer-age-gender

    # IAB taxonomy scoring -> intermediate/categoryscored.jsonl
    python -m vision.run_pipeline infer-iab --minscore 0.5

    # Vision documents -> processed/<productId>.vision.json
    python -m vision.run_pipeline generate-vision --device-min-pct 5

    # Everything, in order, stopping at the first failure
    python -m vision.run_pipeline all

Inputs (raw dir): categories.csv, genders.csv (or gender.csv), device.csv,
unique.csv. Dictionary dir: tier1_iab_mapping_top10_unique.jsonl.
"""

import argparse
import json
import logging
import sys
from typing import Callable, Dict, List, Optional

from .age_gender import run_infer_age_gender
from .assembler import run_generate_vision
from .categories import run_extract_categories
from .config import PROVIDERS, TIER_CHOICES, ConfigError, VisionConfig
from .iab import run_infer_iab
from .utils import MissingInputError, setup_logging


STEPS: Dict[str, Callable] = {
    "extract-categories": run_extract_categories,
    "infer-age-gender": run_infer_age_gender,
    "infer-iab": run_infer_iab,
    "generate-vision": run_generate_vision,
}


# ============================================================
# CLI
# ============================================================

def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--provider", choices=PROVIDERS, help="Source provider behavior (default: dv)")
    parser.add_argument("--raw-dir", help="Directory holding the raw CSV exports")
    parser.add_argument("--intermediate-dir", help="Directory for JSONL intermediates")
    parser.add_argument("--processed-dir", help="Directory for Vision documents")
    parser.add_argument("--dictionary-dir", help="Directory holding the tier1 -> IAB dictionary")
    parser.add_argument("--delimiter", help="CSV delimiter (single character)")
    parser.add_argument("--encoding", help="CSV encoding")
    parser.add_argument("--column-overrides", metavar="JSON",
                        help='Explicit 0-based column indices, e.g. {"device": {"deviceType": 4}}')
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")


def _add_tiers(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tiers", type=int, choices=TIER_CHOICES, help="Max depth of tiers to extract (default: 1)")


def _add_splitval(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--splitval", help="Single character used as category separator (default: /)")


def _add_minscore(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--minscore", type=float, help="Minimum dictionary score to include, 0..1 (default: 0.4)")


def _add_device_min_pct(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--device-min-pct", type=float,
                        help="Roll device buckets below this percentage into the largest (default: 1.0)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Campaign Vision Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m vision.run_pipeline extract-categories --tiers 2 --provider ttd
  python -m vision.run_pipeline infer-iab --minscore 0.5 --splitval '>'
  python -m vision.run_pipeline all --raw-dir ./rawData --processed-dir ./processed
        """
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract-categories", help="Extract unique category tiers")
    _add_common(p)
    _add_tiers(p)
    _add_splitval(p)

    p = sub.add_parser("infer-age-gender", help="De-aggregate age/gender impressions")
    _add_common(p)

    p = sub.add_parser("infer-iab", help="Score categories against the IAB dictionary")
    _add_common(p)
    _add_minscore(p)
    _add_splitval(p)

    p = sub.add_parser("generate-vision", help="Build Vision documents per product")
    _add_common(p)
    _add_device_min_pct(p)

    p = sub.add_parser("all", help="Run every step in order")
    _add_common(p)
    _add_tiers(p)
    _add_splitval(p)
    _add_minscore(p)
    _add_device_min_pct(p)

    return parser


def config_from_args(args: argparse.Namespace) -> VisionConfig:
    """Environment defaults overridden by whatever flags were given."""
    column_overrides = None
    if args.column_overrides:
        try:
            column_overrides = json.loads(args.column_overrides)
        except ValueError as exc:
            raise ConfigError(f"Invalid --column-overrides: {exc}") from exc

    return VisionConfig.from_env(
        provider=args.provider,
        raw_dir=args.raw_dir,
        intermediate_dir=args.intermediate_dir,
        processed_dir=args.processed_dir,
        dictionary_dir=args.dictionary_dir,
        delimiter=args.delimiter,
        encoding=args.encoding,
        tiers=getattr(args, "tiers", None),
        splitval=getattr(args, "splitval", None),
        min_score=getattr(args, "minscore", None),
        device_min_pct=getattr(args, "device_min_pct", None),
        column_overrides=column_overrides,
    )


def run_steps(config: VisionConfig, steps: List[str]) -> None:
    for name in steps:
        logging.info(f">> Running {name} ...")
        STEPS[name](config)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args).validate()
    except ConfigError as e:
        parser.error(str(e))

    setup_logging("DEBUG" if args.verbose else config.log_level)

    steps = list(STEPS) if args.command == "all" else [args.command]
    try:
        run_steps(config, steps)
    except MissingInputError as e:
        logging.error(str(e))
        return 1
    except Exception as e:
        logging.error(f"Pipeline failed: {e}")
        raise

    if args.command == "all":
        logging.info("All steps completed successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
