"""
Category tier extraction.

Reads categories.csv and writes the unique category paths, cut to the
configured depth, to intermediate/categories.tier<N>.jsonl.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .csv_reader import ScanStats, iter_records
from .provider import split_category_path
from .utils import require_file, write_lines_atomic


def extract_tiers(category: Optional[str], separator: str, depth: int, provider: str) -> Optional[Tuple[str, ...]]:
    """
    First `depth` non-empty parts of a category path.

    Paths with fewer than `depth` parts are rejected (None), never truncated.
    """
    if category is None:
        return None
    parts = split_category_path(category, provider, separator)
    if len(parts) < depth:
        return None
    return tuple(parts[:depth])


def collect_tier_sets(path: str, config, stats: ScanStats) -> List[Tuple[str, ...]]:
    """Unique tier tuples of a categories file, in first-seen order."""
    seen: Dict[Tuple[str, ...], None] = {}

    for row in iter_records(path, "categories", config, stats):
        raw = row["category"]
        if raw is None:
            stats.record("missing_category")
            continue
        tiers = extract_tiers(raw, config.splitval, config.tiers, config.provider)
        if tiers is None:
            stats.record("too_few_tiers")
            continue
        if tiers in seen:
            stats.record("duplicate")
            continue
        seen[tiers] = None
        stats.record(None)

    return list(seen)


def tiers_to_record(tiers: Tuple[str, ...]) -> Dict[str, str]:
    return {f"tier{i + 1}": part for i, part in enumerate(tiers)}


def run_extract_categories(config) -> str:
    """
    Extract unique category tiers from raw categories.csv.

    Returns:
        Path of the JSONL file written.
    """
    source = require_file(config.raw_path("categories.csv"))
    out_path = config.intermediate_path(f"categories.tier{config.tiers}.jsonl")

    logging.info(f"Extracting tier-{config.tiers} categories from {source} (provider={config.provider})")
    stats = ScanStats(source=source)
    unique = collect_tier_sets(source, config, stats)
    stats.log_summary()

    count = write_lines_atomic(out_path, (tiers_to_record(t) for t in unique))
    logging.info(f"Wrote {count} unique categories to {out_path}")
    return out_path
