"""
IAB content-taxonomy scoring.

Each categories.csv row contributes impressions x score to every IAB
taxonomy candidate its tier-1 category maps to in the precomputed
tier1 -> IAB dictionary, provided the candidate score reaches min_score.

Dictionary format (one JSON object per line):
    {"tier1": "Sports", "iab": [{"id": "483", "name": "Sports", "score": 0.91}, ...]}

Output (intermediate/categoryscored.jsonl), one record per
(insertion order, date, IAB id):
    {"insertionOrder", "date", "iabId", "iabcategoryName", "iabscore"}
"""

import json
import logging
from typing import Dict, List, Optional, Tuple

from .csv_reader import ScanStats, iter_records
from .provider import split_category_path
from .utils import parse_number, require_file, write_lines_atomic


def load_dictionary(path: str, encoding: str = "utf-8") -> Dict[str, List[dict]]:
    """
    Load the tier1 -> IAB candidates mapping, keyed by lowercased tier1.

    Malformed lines and entries without a tier1 are ignored.
    """
    dictionary: Dict[str, List[dict]] = {}
    skipped = 0
    with open(path, "r", encoding=encoding, errors="replace") as handle:
        for line in handle:
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except ValueError:
                skipped += 1
                continue
            if not isinstance(obj, dict):
                skipped += 1
                continue
            key = str(obj.get("tier1") or "").strip().lower()
            candidates = obj.get("iab")
            if key:
                dictionary[key] = candidates if isinstance(candidates, list) else []

    logging.info(f"Loaded {len(dictionary)} dictionary entries from {path}")
    if skipped:
        logging.warning(f"Ignored {skipped} malformed dictionary lines in {path}")
    return dictionary


def _candidate_score(candidate) -> Optional[float]:
    if not isinstance(candidate, dict):
        return None
    try:
        return float(candidate.get("score"))
    except (TypeError, ValueError):
        return None


class ScoreAccumulator:
    """
    Running score sum per key with the taxonomy name of the latest addition.

    The name is order-sensitive (last write wins); the score is not.
    """

    def __init__(self):
        self._entries: Dict[Tuple, Dict[str, object]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, key: Tuple, name: str, score: float) -> None:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = {"name": name, "score": 0.0}
        entry["score"] += score
        entry["name"] = name

    def items(self):
        return self._entries.items()


def score_categories(path: str, dictionary: Dict[str, List[dict]], config, stats: ScanStats) -> ScoreAccumulator:
    acc = ScoreAccumulator()

    for row in iter_records(path, "categories", config, stats):
        if row["category"] is None or row["impressions"] is None:
            stats.record("missing_field")
            continue
        impressions = parse_number(row["impressions"])
        if impressions is None:
            stats.record("bad_impressions")
            continue

        parts = split_category_path(row["category"], config.provider, config.splitval)
        if not parts:
            stats.record("empty_category")
            continue
        candidates = dictionary.get(parts[0].lower())
        if not candidates:
            stats.record("no_dictionary_entry")
            continue

        insertion_order = row["insertionOrder"] or ""
        date = row["date"] or ""
        matched = 0
        for candidate in candidates:
            score = _candidate_score(candidate)
            if score is None or not score >= config.min_score:
                continue
            iab_id = candidate.get("id")
            if iab_id is None or iab_id == "":
                continue
            acc.add((insertion_order, date, str(iab_id)), str(candidate.get("name") or ""), impressions * score)
            matched += 1

        stats.record(None if matched else "below_min_score")

    return acc


def scored_records(acc: ScoreAccumulator) -> List[dict]:
    return [
        {
            "insertionOrder": io,
            "date": date,
            "iabId": iab_id,
            "iabcategoryName": entry["name"],
            "iabscore": entry["score"],
        }
        for (io, date, iab_id), entry in acc.items()
    ]


def run_infer_iab(config) -> str:
    """
    Score categories.csv against the IAB dictionary into categoryscored.jsonl.

    Returns:
        Path of the JSONL file written.
    """
    source = require_file(config.raw_path("categories.csv"))
    dictionary_path = require_file(config.dictionary_path())
    out_path = config.intermediate_path("categoryscored.jsonl")

    dictionary = load_dictionary(dictionary_path, config.encoding)

    logging.info(f"Scoring {source} against IAB dictionary (minscore={config.min_score}, provider={config.provider})")
    stats = ScanStats(source=source)
    acc = score_categories(source, dictionary, config, stats)
    stats.log_summary()

    count = write_lines_atomic(out_path, scored_records(acc))
    logging.info(f"Wrote {out_path} ({count} aggregated records)")
    return out_path
