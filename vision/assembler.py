"""
Vision document assembly.

Builds processed/<productId>.vision.json for every product found in the raw
exports and intermediates:

1. device.csv                    -> byDevices
2. gender.deaggregated.jsonl     -> demo
3. unique.csv                    -> perDay, totals
4. categories.csv                -> keyProperties
5. categoryscored.jsonl          -> contentTaxonomy

Every pass keeps its aggregates local and returns a mapping productId ->
partial block; merge_products() is the only place they meet. Missing
sources are skipped with a warning.

Output:
    {"data": {"products": {"<productId>": {byDevices, totals, entities,
        keyProperties, demo, contentTaxonomy, perDay}}}}
"""

import json
import logging
import os
from typing import Dict, Iterator, List, Optional

import pandas as pd

from .csv_reader import ScanStats, iter_records
from .devices import DeviceShareAccumulator
from .utils import (
    as_number,
    normalize_date,
    parse_number,
    pct4,
    product_id_from_insertion_order,
    round_half_up,
    write_json_atomic,
)


GENDERS = ["male", "female"]
DEMO_AGE_BINS = ["18-24", "25-34", "35-44", "45-54", "55-64", "+65"]
DEMO_AGE_FIELDS = {
    "18-24": "age_18_24",
    "25-34": "age_25_34",
    "35-44": "age_35_44",
    "45-54": "age_45_54",
    "55-64": "age_55_64",
    "+65": "age_65",
}
ENGAGEMENT_METRICS = [
    "impressions", "clicks", "viewableImpressions",
    "videoStarts", "videoViews25", "videoViews50", "videoViews75", "videoViews100",
]
KEY_PROPERTY_METRICS = ["impressions", "clicks", "viewableImpressions"]


def new_product() -> dict:
    """Empty Vision node for one product."""
    return {
        "byDevices": {},
        "totals": {},
        "entities": [],
        "keyProperties": [],
        "demo": {},
        "contentTaxonomy": {
            "audience_distribution": [],
            "campaign_delivery": [],
            "campaign_interactions": [],
        },
        "perDay": [],
    }


# ============================================================
# Helpers
# ============================================================

def _iter_jsonl(path: str, encoding: str, stats: ScanStats) -> Iterator[dict]:
    stats.source = stats.source or path
    with open(path, "r", encoding=encoding, errors="replace") as handle:
        for line in handle:
            if not line.strip():
                continue
            stats.rows += 1
            try:
                obj = json.loads(line)
            except ValueError:
                stats.record("bad_json")
                continue
            if not isinstance(obj, dict):
                stats.record("bad_json")
                continue
            yield obj


def _optional_source(path: str, label: str) -> Optional[str]:
    if os.path.isfile(path):
        return path
    logging.warning(f"{label}: {path} not found, skipping")
    return None


def _metrics_from_row(row: Dict[str, Optional[str]], names: List[str]) -> Optional[Dict[str, float]]:
    """Parse metric fields; an absent field counts as 0, a malformed one rejects the row."""
    values: Dict[str, float] = {}
    for name in names:
        raw = row.get(name)
        value = 0.0 if raw is None else parse_number(raw)
        if value is None:
            return None
        values[name] = value
    return values


def _count(x) -> float:
    return as_number(float(x))


# ============================================================
# 1. Devices -> byDevices
# ============================================================

def ingest_devices(path: str, config, stats: ScanStats) -> Dict[str, Dict[str, float]]:
    """Device share per product over the whole file, small buckets rolled up."""
    acc = DeviceShareAccumulator()

    for row in iter_records(path, "device", config, stats):
        pid = product_id_from_insertion_order(row["insertionOrder"])
        if not pid:
            stats.record("empty_product")
            continue
        impressions = parse_number(row["impressions"])
        if not impressions:
            stats.record("zero_impressions")
            continue
        acc.add(pid, row["deviceType"], impressions)
        stats.record(None)

    return acc.shares(config.device_min_pct)


# ============================================================
# 2. Demographics -> demo
# ============================================================

def _pivot_sum(frame: pd.DataFrame, column: str, labels: List[str], products: List[str]) -> pd.DataFrame:
    subset = frame[frame[column].isin(labels)]
    if subset.empty:
        return pd.DataFrame(0.0, index=products, columns=labels)
    table = subset.pivot_table(index="productId", columns=column, values="impressions", aggfunc="sum", fill_value=0.0)
    return table.reindex(index=products, columns=labels, fill_value=0.0)


def ingest_demo(path: str, stats: ScanStats, encoding: str = "utf-8") -> Dict[str, Dict[str, float]]:
    """
    Gender and age percentages per product, across all dates.

    Gender shares use male + female as denominator; other gender values are
    ignored. Age shares use the six bins from 18-24 up, so the -18 bin is
    left out of every age percentage.
    """
    rows = []
    for obj in _iter_jsonl(path, encoding, stats):
        pid = product_id_from_insertion_order(obj.get("insertionOrder", obj.get("insertion_order")))
        if not pid:
            stats.record("empty_product")
            continue
        impressions = parse_number(obj.get("impressions"))
        if not impressions:
            stats.record("zero_impressions")
            continue
        age = str(obj.get("age") or "").strip()
        rows.append({
            "productId": pid,
            "gender": str(obj.get("gender") or "").lower(),
            "age": "+65" if age == "65+" else age,
            "impressions": impressions,
        })
        stats.record(None)

    if not rows:
        return {}

    frame = pd.DataFrame(rows)
    products = list(frame["productId"].unique())
    genders = _pivot_sum(frame, "gender", GENDERS, products)
    ages = _pivot_sum(frame, "age", DEMO_AGE_BINS, products)

    demo: Dict[str, Dict[str, float]] = {}
    for pid in products:
        male = float(genders.at[pid, "male"])
        female = float(genders.at[pid, "female"])
        age_values = {label: float(ages.at[pid, label]) for label in DEMO_AGE_BINS}
        gender_den = male + female
        age_den = sum(age_values.values())

        block = {
            "gender_male": pct4(male, gender_den),
            "gender_female": pct4(female, gender_den),
        }
        for label in DEMO_AGE_BINS:
            block[DEMO_AGE_FIELDS[label]] = pct4(age_values[label], age_den)
        demo[pid] = block

    return demo


# ============================================================
# 3. Engagement (unique.csv) -> perDay, totals
# ============================================================

def _engagement_block(m: Dict[str, float], date: Optional[str] = None) -> dict:
    block = {"analytic_engagements": 0, "analytic_engagementsPercent": 0}
    if date is not None:
        block["analytic_date"] = date
    block.update({
        "analytic_viewability": pct4(m["viewableImpressions"], m["impressions"]),
        "analytic_uniqueUsers": 0,
        "analytic_views": _count(m["videoViews100"]),
        "analytic_views25": _count(m["videoViews25"]),
        "analytic_views50": _count(m["videoViews50"]),
        "analytic_views75": _count(m["videoViews75"]),
        "analytic_vtr": pct4(m["videoViews100"], m["videoStarts"]),
        "analytic_ctr": pct4(m["clicks"], m["impressions"]),
        "analytic_impressions": _count(m["impressions"]),
        "analytic_clicks": _count(m["clicks"]),
    })
    return block


def ingest_engagement(path: str, config, stats: ScanStats) -> Dict[str, dict]:
    """
    Per-day and total engagement metrics per product.

    Raw counts are summed per (product, date) before percentages are taken;
    totals are recomputed from summed counts, never averaged from days.

    Returns:
        productId -> {"perDay": [...sorted by date], "totals": {...}}
    """
    rows = []
    for row in iter_records(path, "unique", config, stats):
        pid = product_id_from_insertion_order(row["insertionOrder"])
        if not pid:
            stats.record("empty_product")
            continue
        metrics = _metrics_from_row(row, ENGAGEMENT_METRICS)
        if metrics is None:
            stats.record("bad_number")
            continue
        rows.append({"productId": pid, "date": normalize_date(row["date"]), **metrics})
        stats.record(None)

    if not rows:
        return {}

    frame = pd.DataFrame(rows)
    daily = frame.groupby(["productId", "date"], sort=False)[ENGAGEMENT_METRICS].sum().reset_index()
    totals = frame.groupby("productId", sort=False)[ENGAGEMENT_METRICS].sum()

    result: Dict[str, dict] = {}
    for pid, days in daily.groupby("productId", sort=False):
        days = days.sort_values("date", kind="stable")
        result[pid] = {
            "perDay": [_engagement_block(r, r["date"]) for r in days.to_dict("records")],
            "totals": _engagement_block(totals.loc[pid].to_dict()),
        }
    return result


# ============================================================
# 4. Categories -> keyProperties
# ============================================================

def ingest_key_properties(path: str, config, stats: ScanStats) -> Dict[str, List[dict]]:
    """Impressions, clicks and viewable impressions summed per App/URL, first-seen order."""
    rows = []
    for row in iter_records(path, "categories", config, stats):
        pid = product_id_from_insertion_order(row["insertionOrder"])
        if not pid:
            stats.record("empty_product")
            continue
        app = str(row["appUrl"] or "").strip()
        if not app:
            stats.record("empty_app_url")
            continue
        metrics = _metrics_from_row(row, KEY_PROPERTY_METRICS)
        if metrics is None:
            stats.record("bad_number")
            continue
        rows.append({"productId": pid, "placement_domain": app, **metrics})
        stats.record(None)

    if not rows:
        return {}

    frame = pd.DataFrame(rows)
    grouped = frame.groupby(["productId", "placement_domain"], sort=False)[KEY_PROPERTY_METRICS].sum().reset_index()

    result: Dict[str, List[dict]] = {}
    for record in grouped.to_dict("records"):
        result.setdefault(record["productId"], []).append({
            "placement_domain": record["placement_domain"],
            "impressions": _count(record["impressions"]),
            "clicks": _count(record["clicks"]),
            "viewability": _count(record["viewableImpressions"]),
        })
    return result


# ============================================================
# 5. IAB scored taxonomy -> contentTaxonomy
# ============================================================

def _last_name(name) -> str:
    return name if isinstance(name, str) else ""


def ingest_taxonomy(path: str, stats: ScanStats, encoding: str = "utf-8") -> Dict[str, dict]:
    """
    campaign_delivery and audience_distribution per product.

    Scores are summed per (product, date, id) and per (product, id); the
    name kept is the last non-empty one seen, so it depends on file order.

    Returns:
        productId -> {"campaign_delivery": [...], "audience_distribution": [...]}
    """
    rows = []
    for obj in _iter_jsonl(path, encoding, stats):
        pid = product_id_from_insertion_order(obj.get("insertionOrder", obj.get("insertion_order")))
        if not pid:
            stats.record("empty_product")
            continue
        date = normalize_date(obj.get("date"))
        iab_id = obj.get("iabId", obj.get("iab_id"))
        iab_id = "" if iab_id is None else str(iab_id)
        score = parse_number(obj.get("iabscore"))
        if not date or not iab_id or not score:
            stats.record("incomplete_record")
            continue
        name = str(obj.get("iabcategoryName") or obj.get("name") or "")
        rows.append({"productId": pid, "date": date, "id": iab_id, "name": name or None, "value": score})
        stats.record(None)

    if not rows:
        return {}

    frame = pd.DataFrame(rows)
    daily = frame.groupby(["productId", "date", "id"], sort=False).agg(
        name=("name", "last"),
        value=("value", "sum"),
    ).reset_index()
    daily["day_total"] = daily.groupby(["productId", "date"])["value"].transform("sum")

    totals = frame.groupby(["productId", "id"], sort=False).agg(
        name=("name", "last"),
        value=("value", "sum"),
    ).reset_index()

    result: Dict[str, dict] = {}

    for pid, days in daily.groupby("productId", sort=False):
        deliveries = [
            {
                "id": r["id"],
                "date": r["date"],
                "name": _last_name(r["name"]),
                "value": round_half_up(r["value"]),
                "percent": pct4(r["value"], r["day_total"]),
            }
            for r in days.to_dict("records")
            if r["day_total"] > 0
        ]
        deliveries.sort(key=lambda d: (d["date"], d["id"]))
        result.setdefault(pid, {})["campaign_delivery"] = deliveries

    for pid, ids in totals.groupby("productId", sort=False):
        records = ids.to_dict("records")
        grand = sum(r["value"] for r in records)
        audience = []
        if grand > 0:
            audience = [
                {
                    "id": r["id"],
                    "name": _last_name(r["name"]),
                    "value": round_half_up(r["value"]),
                    "percent": pct4(r["value"], grand),
                }
                for r in records
            ]
        audience.sort(key=lambda a: (-a["value"], a["name"]))
        result.setdefault(pid, {})["audience_distribution"] = audience

    return result


# ============================================================
# Merge and output
# ============================================================

def merge_products(
    devices: Optional[Dict[str, Dict[str, float]]] = None,
    demo: Optional[Dict[str, Dict[str, float]]] = None,
    engagement: Optional[Dict[str, dict]] = None,
    key_properties: Optional[Dict[str, List[dict]]] = None,
    taxonomy: Optional[Dict[str, dict]] = None,
) -> Dict[str, dict]:
    """Join the per-pass blocks by productId. Each pass owns distinct fields."""
    products: Dict[str, dict] = {}

    def ensure(pid: str) -> dict:
        if pid not in products:
            products[pid] = new_product()
        return products[pid]

    for pid, block in (devices or {}).items():
        ensure(pid)["byDevices"] = block
    for pid, block in (demo or {}).items():
        ensure(pid)["demo"] = block
    for pid, block in (engagement or {}).items():
        node = ensure(pid)
        node["perDay"] = block["perDay"]
        node["totals"] = block["totals"]
    for pid, block in (key_properties or {}).items():
        ensure(pid)["keyProperties"] = block
    for pid, block in (taxonomy or {}).items():
        content = ensure(pid)["contentTaxonomy"]
        content["campaign_delivery"] = block.get("campaign_delivery", [])
        content["audience_distribution"] = block.get("audience_distribution", [])

    return products


def build_vision_documents(config, stats: Optional[Dict[str, ScanStats]] = None) -> Dict[str, dict]:
    """
    Run the five ingestion passes and merge them.

    Args:
        config: VisionConfig
        stats: Optional dict that receives the ScanStats of each pass by name.

    Returns:
        productId -> Vision document
    """
    stats = stats if stats is not None else {}
    parts: Dict[str, dict] = {}

    passes = [
        ("devices", config.raw_path("device.csv"),
         lambda p, s: ingest_devices(p, config, s)),
        ("demo", config.intermediate_path("gender.deaggregated.jsonl"),
         lambda p, s: ingest_demo(p, s, config.encoding)),
        ("engagement", config.raw_path("unique.csv"),
         lambda p, s: ingest_engagement(p, config, s)),
        ("key_properties", config.raw_path("categories.csv"),
         lambda p, s: ingest_key_properties(p, config, s)),
        ("taxonomy", config.intermediate_path("categoryscored.jsonl"),
         lambda p, s: ingest_taxonomy(p, s, config.encoding)),
    ]

    for name, path, ingest in passes:
        source = _optional_source(path, name)
        if source is None:
            continue
        pass_stats = stats[name] = ScanStats(source=source)
        parts[name] = ingest(source, pass_stats)
        pass_stats.log_summary()

    products = merge_products(**parts)
    return {pid: {"data": {"products": {pid: node}}} for pid, node in products.items()}


def write_vision_documents(documents: Dict[str, dict], processed_dir: str) -> List[str]:
    written = []
    for pid, document in documents.items():
        path = os.path.join(processed_dir, f"{pid}.vision.json")
        write_json_atomic(path, document)
        logging.info(f"Wrote {path}")
        written.append(path)
    return written


def run_generate_vision(config) -> List[str]:
    """
    Build and write one Vision document per product.

    Returns:
        Paths of the documents written.
    """
    logging.info(f"Generating Vision documents (provider={config.provider}, device_min_pct={config.device_min_pct})")
    documents = build_vision_documents(config)
    if not documents:
        logging.warning("No products found in any source; nothing written")
    return write_vision_documents(documents, config.processed_dir)
