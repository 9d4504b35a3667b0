"""Header resolution for the raw CSV exports."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence


# Semantic field -> accepted header labels (compared lowercased and trimmed)
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "insertionOrder": ["insertion order"],
    "date": ["date"],
    "category": ["category"],
    "appUrl": ["app/url"],
    "gender": ["gender"],
    "age": ["age"],
    "deviceType": ["device type"],
    "impressions": ["impressions"],
    "clicks": ["clicks"],
    "viewableImpressions": ["viewable impressions"],
    "uniqueImpressions": ["unique impression", "unique impressions"],
    "videoStarts": ["video_starts"],
    "videoViews25": ["video_views25"],
    "videoViews50": ["video_views50"],
    "videoViews75": ["video_views75"],
    "videoViews100": ["video_views100"],
}

# File kind -> semantic field -> positional default
COLUMN_DEFAULTS: Dict[str, Dict[str, int]] = {
    "categories": {
        "insertionOrder": 0,
        "date": 1,
        "category": 2,
        "appUrl": 3,
        "impressions": 4,
        "clicks": 5,
        "viewableImpressions": 6,
    },
    "genders": {
        "insertionOrder": 0,
        "date": 1,
        "gender": 2,
        "age": 3,
        "impressions": 4,
        "clicks": 5,
    },
    "device": {
        "insertionOrder": 0,
        "date": 1,
        "deviceType": 2,
        "impressions": 3,
        "clicks": 4,
        "viewableImpressions": 5,
    },
    "unique": {
        "insertionOrder": 0,
        "date": 1,
        "impressions": 2,
        "clicks": 3,
        "viewableImpressions": 4,
        "uniqueImpressions": 5,
        "videoStarts": 6,
        "videoViews25": 7,
        "videoViews50": 8,
        "videoViews75": 9,
        "videoViews100": 10,
    },
}

# File kind -> field whose value equals its own label on a header row
HEADER_PROBES: Dict[str, str] = {
    "categories": "category",
    "genders": "age",
    "device": "deviceType",
    "unique": "date",
}


def _first_match(headers: Sequence[str], candidates: Iterable[str]) -> Optional[int]:
    for candidate in candidates:
        if candidate in headers:
            return headers.index(candidate)
    return None


def resolve_columns(
    header_fields: Optional[Sequence[str]],
    kind: str,
    overrides: Optional[Dict[str, int]] = None,
) -> Dict[str, int]:
    """
    Map each semantic field of a file kind to a column index.

    Resolution order per field:
    1. explicit override index (never replaced by detection)
    2. case-insensitive exact match of a header label
    3. positional default

    Args:
        header_fields: Decoded fields of the first non-blank line, if any.
        kind: File kind key of COLUMN_DEFAULTS.
        overrides: Optional mapping of semantic field -> explicit index.

    Returns:
        Mapping of semantic field -> 0-based column index.
    """
    overrides = overrides or {}
    headers = [str(h).strip().lower() for h in header_fields] if header_fields else []
    mapping: Dict[str, int] = {}

    for name, default in COLUMN_DEFAULTS[kind].items():
        if name in overrides:
            mapping[name] = overrides[name]
            continue
        detected = _first_match(headers, COLUMN_CANDIDATES[name]) if headers else None
        mapping[name] = default if detected is None else detected

    return mapping


def is_header_row(fields: Sequence[str], columns: Dict[str, int], kind: str) -> bool:
    """True when the probe field's value equals one of its own header labels."""
    probe = HEADER_PROBES[kind]
    index = columns[probe]
    if index >= len(fields):
        return False
    return str(fields[index]).strip().lower() in COLUMN_CANDIDATES[probe]
