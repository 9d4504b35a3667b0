"""
Device bucketing for the byDevices block.

Free-text device labels are normalized, Tablet and Smart Phone are folded
into Mobile, and each product's impression share is computed over the whole
file (not per date). Buckets below the configured minimum are rolled into
the largest bucket.
"""

import re
from typing import Dict, Optional

import pandas as pd

from .utils import round4


MERGED_INTO_MOBILE = ("Tablet", "Smart Phone")


def normalize_device_type(raw: Optional[str]) -> str:
    """Map a device label to CTV/Tablet/Smart Phone/Mobile/Desktop/Other, or return it unchanged."""
    s = str(raw or "").strip().lower()
    if not s:
        return "Other"
    if "ctv" in s or ("connected" in s and "tv" in s):
        return "CTV"
    if "tablet" in s:
        return "Tablet"
    if "smartphone" in re.sub(r"\s+", "", s) or ("smart" in s and "phone" in s):
        return "Smart Phone"
    if s == "mobile":
        return "Mobile"
    if "desktop" in s:
        return "Desktop"
    if "phone" in s:
        return "Smart Phone"
    return raw


def merge_device_bucket(label: str) -> str:
    return "Mobile" if label in MERGED_INTO_MOBILE else label


class DeviceShareAccumulator:
    """Impressions per product per device bucket, plus a running total."""

    def __init__(self):
        self.buckets: Dict[str, Dict[str, float]] = {}
        self.totals: Dict[str, float] = {}

    def add(self, product_id: str, device_label: Optional[str], impressions: float) -> None:
        bucket = merge_device_bucket(normalize_device_type(device_label))
        per_product = self.buckets.setdefault(product_id, {})
        per_product[bucket] = per_product.get(bucket, 0.0) + impressions
        self.totals[product_id] = self.totals.get(product_id, 0.0) + impressions

    def shares(self, min_pct: float) -> Dict[str, Dict[str, float]]:
        return {
            pid: compute_device_shares(buckets, min_pct, total=self.totals.get(pid, 0.0))
            for pid, buckets in self.buckets.items()
        }


def compute_device_shares(buckets: Dict[str, float], min_pct: float, total: Optional[float] = None) -> Dict[str, float]:
    """
    Percentage of impressions per bucket with small buckets rolled up.

    The largest bucket is the first one (in insertion order) holding the
    strictly largest share. Every other bucket under min_pct percentage
    points is added to it and dropped. Rounding to 4 decimals happens after
    the roll-up.

    Args:
        buckets: Device bucket -> impressions, in first-seen order.
        min_pct: Roll-up threshold in percentage points.
        total: Denominator; defaults to the sum of the buckets.

    Returns:
        Device bucket -> percentage; empty when the total is not positive.
    """
    if not buckets:
        return {}
    series = pd.Series(buckets, dtype="float64")
    if total is None:
        total = float(series.sum())
    if total <= 0:
        return {}

    pct = series / total * 100
    largest = pct.idxmax()  # first occurrence on ties

    small = (pct < min_pct) & (pct.index != largest)
    if small.any():
        pct[largest] += pct[small].sum()
        pct = pct[~small]

    return {str(device): round4(float(value)) for device, value in pct.items()}
