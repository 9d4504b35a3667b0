"""
Age/gender de-aggregation.

Demographic exports report impressions against heterogeneous age tokens
("18-24", "-21", "21+", "65+", ...). Each row is spread uniformly over the
single years the token covers and re-binned into seven fixed bins:

    -18, 18-24, 25-34, 35-44, 45-54, 55-64, +65

Sums stay fractional until emission, where each
(insertion order, date, gender, bin) total is rounded once.
"""

import logging
import re
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from .csv_reader import ScanStats, iter_records
from .utils import parse_number, require_file, round_half_up, write_lines_atomic


AGE_BINS = ["-18", "18-24", "25-34", "35-44", "45-54", "55-64", "+65"]
OVER_BOUND = 65
OVER_BIN = "+65"

UNDER_BOUND = 21
PLUS_BOUND = 21

_UNDER = re.compile(r"^(?:-21|<=?\s*21)$")
_OVER = re.compile(r"^(?:65\+|>=?\s*65)$")
_PLUS = re.compile(r"^21\+$")
_RANGE = re.compile(r"^(\d{1,2})\s*-\s*(\d{1,2})$")


class AgeToken(NamedTuple):
    kind: str  # under, over, plus, range, unknown
    start: int = 0
    end: int = 0


def parse_age_token(value: Optional[str]) -> AgeToken:
    """
    Classify an age token.

    - "-21", "<21", "<=21": under, years 0..21
    - "65+", ">65", ">=65": over, everything goes to +65
    - "21+": plus, years 21..64 and one unit for +65
    - "25-34": range, years 25..34 (start must not exceed end)

    Any other bound ("-18", "30+", ">=21") is unknown.
    """
    s = str(value or "").strip()
    if not s:
        return AgeToken("unknown")

    if _UNDER.match(s):
        return AgeToken("under", 0, UNDER_BOUND)
    if _OVER.match(s):
        return AgeToken("over", OVER_BOUND, OVER_BOUND)
    if _PLUS.match(s):
        return AgeToken("plus", PLUS_BOUND, OVER_BOUND - 1)

    m = _RANGE.match(s)
    if m:
        start, end = int(m.group(1)), int(m.group(2))
        if start <= end:
            return AgeToken("range", start, end)

    return AgeToken("unknown")


def expand_age(token: AgeToken, impressions: float) -> Iterator[Tuple[Optional[int], float]]:
    """
    Spread impressions over the years a token covers.

    Yields (year, share) pairs; year None stands for the +65 bucket. Shares
    always sum to the input impressions. For "plus" tokens the +65 bucket is
    counted as one extra year in the denominator, so it gets one year's
    share rather than the remainder.
    """
    if token.kind == "over":
        yield None, impressions
    elif token.kind == "plus":
        years = range(token.start, token.end + 1)
        per = impressions / (len(years) + 1)
        for year in years:
            yield year, per
        yield None, per
    elif token.kind in ("under", "range"):
        years = range(token.start, token.end + 1)
        per = impressions / len(years)
        for year in years:
            yield year, per


def year_to_bin(year: Optional[int]) -> str:
    if year is None:
        return OVER_BIN
    if year < 18:
        return "-18"
    if year <= 24:
        return "18-24"
    if year <= 34:
        return "25-34"
    if year <= 44:
        return "35-44"
    if year <= 54:
        return "45-54"
    if year <= 64:
        return "55-64"
    return OVER_BIN


class AgeBinAccumulator:
    """Fractional impressions per (insertion order, date, gender, bin)."""

    def __init__(self):
        self._sums: Dict[Tuple[str, str, str, str], float] = {}

    def __len__(self) -> int:
        return len(self._sums)

    def add(self, insertion_order: str, date: str, gender: str, age: Optional[str], impressions: float) -> Optional[str]:
        """
        Redistribute one row into the bins.

        Returns:
            None when the row was used, otherwise the skip reason.
        """
        token = parse_age_token(age)
        if token.kind == "unknown":
            return "unknown_age"
        for year, share in expand_age(token, impressions):
            key = (insertion_order, date, gender, year_to_bin(year))
            self._sums[key] = self._sums.get(key, 0.0) + share
        return None

    def totals(self) -> Dict[Tuple[str, str, str, str], float]:
        return dict(self._sums)

    def records(self) -> List[dict]:
        """One record per key, impressions rounded to an integer."""
        return [
            {
                "insertionOrder": io,
                "date": date,
                "gender": gender,
                "age": age_bin,
                "impressions": round_half_up(total),
            }
            for (io, date, gender, age_bin), total in self._sums.items()
        ]


def accumulate_demographics(path: str, config, stats: ScanStats) -> AgeBinAccumulator:
    acc = AgeBinAccumulator()
    for row in iter_records(path, "genders", config, stats):
        if row["age"] is None or row["impressions"] is None:
            stats.record("missing_field")
            continue
        impressions = parse_number(row["impressions"])
        if impressions is None:
            stats.record("bad_impressions")
            continue
        stats.record(acc.add(
            row["insertionOrder"] or "",
            row["date"] or "",
            row["gender"] or "",
            row["age"],
            impressions,
        ))
    return acc


def run_infer_age_gender(config) -> str:
    """
    De-aggregate genders.csv (or gender.csv) into gender.deaggregated.jsonl.

    Returns:
        Path of the JSONL file written.
    """
    source = require_file(config.raw_path("genders.csv"), config.raw_path("gender.csv"))
    out_path = config.intermediate_path("gender.deaggregated.jsonl")

    logging.info(f"De-aggregating age/gender from {source} (provider={config.provider})")
    stats = ScanStats(source=source)
    acc = accumulate_demographics(source, config, stats)
    stats.log_summary()

    count = write_lines_atomic(out_path, acc.records())
    logging.info(f"Wrote {count} records to {out_path}")
    return out_path
