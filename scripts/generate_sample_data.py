#!/usr/bin/env python3
"""
Sample Data Generator for the Campaign Vision Pipeline

This script generates sample raw exports and an IAB dictionary to test the
pipeline end-to-end.

Usage:
    python scripts/generate_sample_data.py --output-dir ./sample

Output:
    - sample/rawData/categories.csv
    - sample/rawData/genders.csv
    - sample/rawData/device.csv
    - sample/rawData/unique.csv
    - sample/dictionary/tier1_iab_mapping_top10_unique.jsonl
"""

import argparse
import json
import os
import random
from datetime import datetime, timedelta

import pandas as pd
import numpy as np


CATEGORY_TREE = {
    "Sports": ["Soccer", "Basketball", "Tennis"],
    "News": ["Politics", "Business", "Weather"],
    "Entertainment": ["Movies", "Music", "Celebrity"],
    "Automotive": ["Cars", "Motorcycles"],
    "Travel": ["Hotels", "Flights"],
}
APP_URLS = ["espn.com", "cnn.com", "imdb.com", "caranddriver.com", "tripadvisor.com", "com.example.game"]
DEVICE_LABELS = ["Desktop", "Smart Phone", "Tablet", "Connected TV", "Mobile", "Unknown"]
AGE_TOKENS = ["-21", "18-24", "25-34", "35-44", "45-54", "55-64", "65+", "21+"]
GENDERS = ["Male", "Female", "Unknown"]
IAB_CANDIDATES = {
    "Sports": [("483", "Sports", 0.93), ("484", "American Football", 0.41), ("1", "Attractions", 0.22)],
    "News": [("379", "News and Politics", 0.88), ("52", "Business and Finance", 0.47)],
    "Entertainment": [("324", "Pop Culture", 0.71), ("640", "Movies", 0.66), ("338", "Music", 0.38)],
    "Automotive": [("1", "Automotive", 0.95), ("2", "Auto Body Styles", 0.44)],
    "Travel": [("653", "Travel", 0.97), ("680", "Travel Locations", 0.35)],
}
FOOTER = ["Report Time:", "2025-10-31 06:00", "", "", "", "", ""]


def _write_csv(df: pd.DataFrame, path: str, footer: bool) -> None:
    df.to_csv(path, index=False)
    if footer:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(",".join(FOOTER[: len(df.columns)]) + "\n")
            handle.write(",".join(["Filters applied"] + [""] * (len(df.columns) - 1)) + "\n")


def generate_sample_data(
    output_dir: str = "./sample",
    num_products: int = 3,
    num_days: int = 7,
    provider: str = "dv",
    seed: int = 42,
):
    """Generate sample raw CSV exports and the tier1 -> IAB dictionary."""
    random.seed(seed)
    np.random.seed(seed)

    raw_dir = os.path.join(output_dir, "rawData")
    dictionary_dir = os.path.join(output_dir, "dictionary")
    os.makedirs(raw_dir, exist_ok=True)
    os.makedirs(dictionary_dir, exist_ok=True)

    footer = provider == "dv"
    start_date = datetime(2025, 10, 1)
    dates = [(start_date + timedelta(days=d)).strftime("%Y-%m-%d") for d in range(num_days)]
    insertion_orders = [f"{1000 + i}_Campaign_{i + 1}_Display" for i in range(num_products)]

    # ============================================================
    # Categories
    # ============================================================
    categories = []
    for io in insertion_orders:
        for date in dates:
            for _ in range(random.randint(2, 5)):
                tier1 = random.choice(list(CATEGORY_TREE))
                tier2 = random.choice(CATEGORY_TREE[tier1])
                path = f"{tier1}/{tier2}"
                if footer:
                    path = "/" + path
                impressions = int(np.random.randint(100, 5000))
                categories.append({
                    "Insertion Order": io,
                    "Date": date,
                    "Category": path,
                    "App/URL": random.choice(APP_URLS),
                    "Impressions": impressions,
                    "Clicks": int(impressions * random.uniform(0.001, 0.02)),
                    "Viewable Impressions": int(impressions * random.uniform(0.4, 0.9)),
                })
    categories_df = pd.DataFrame(categories)
    _write_csv(categories_df, os.path.join(raw_dir, "categories.csv"), footer)
    print(f"Generated {len(categories_df)} category rows")

    # ============================================================
    # Demographics
    # ============================================================
    genders = []
    for io in insertion_orders:
        for date in dates:
            for gender in GENDERS:
                for age in AGE_TOKENS:
                    impressions = int(np.random.randint(0, 2000))
                    genders.append({
                        "Insertion Order": io,
                        "Date": date,
                        "Gender": gender,
                        "Age": age,
                        "Impressions": impressions,
                        "Clicks": int(impressions * random.uniform(0.001, 0.02)),
                    })
    genders_df = pd.DataFrame(genders)
    _write_csv(genders_df, os.path.join(raw_dir, "genders.csv"), footer)
    print(f"Generated {len(genders_df)} demographic rows")

    # ============================================================
    # Devices
    # ============================================================
    devices = []
    for io in insertion_orders:
        for date in dates:
            for label in DEVICE_LABELS:
                weight = 20 if label == "Desktop" else 1
                impressions = int(np.random.randint(10, 500)) * weight
                devices.append({
                    "Insertion Order": io,
                    "Date": date,
                    "Device Type": label,
                    "Impressions": impressions,
                    "Clicks": int(impressions * random.uniform(0.001, 0.02)),
                    "Viewable Impressions": int(impressions * random.uniform(0.4, 0.9)),
                })
    devices_df = pd.DataFrame(devices)
    _write_csv(devices_df, os.path.join(raw_dir, "device.csv"), footer)
    print(f"Generated {len(devices_df)} device rows")

    # ============================================================
    # Engagement
    # ============================================================
    unique = []
    for io in insertion_orders:
        for date in dates:
            impressions = int(np.random.randint(5000, 50000))
            starts = int(impressions * random.uniform(0.3, 0.6))
            v25 = int(starts * random.uniform(0.7, 0.9))
            v50 = int(v25 * random.uniform(0.7, 0.9))
            v75 = int(v50 * random.uniform(0.7, 0.9))
            unique.append({
                "Insertion Order": io,
                "Date": date,
                "Impressions": impressions,
                "Clicks": int(impressions * random.uniform(0.001, 0.02)),
                "Viewable Impressions": int(impressions * random.uniform(0.4, 0.9)),
                "Unique Impression": int(impressions * random.uniform(0.2, 0.5)),
                "video_starts": starts,
                "video_views25": v25,
                "video_views50": v50,
                "video_views75": v75,
                "video_views100": int(v75 * random.uniform(0.7, 0.9)),
            })
    unique_df = pd.DataFrame(unique)
    _write_csv(unique_df, os.path.join(raw_dir, "unique.csv"), footer)
    print(f"Generated {len(unique_df)} engagement rows")

    # ============================================================
    # Dictionary
    # ============================================================
    dictionary_path = os.path.join(dictionary_dir, "tier1_iab_mapping_top10_unique.jsonl")
    with open(dictionary_path, "w", encoding="utf-8") as handle:
        for tier1, candidates in IAB_CANDIDATES.items():
            entry = {"tier1": tier1, "iab": [{"id": i, "name": n, "score": s} for i, n, s in candidates]}
            handle.write(json.dumps(entry) + "\n")
    print(f"Generated {len(IAB_CANDIDATES)} dictionary entries -> {dictionary_path}")

    # ============================================================
    # Summary
    # ============================================================
    print("\n" + "=" * 60)
    print("SAMPLE DATA GENERATED SUCCESSFULLY")
    print("=" * 60)
    print(f"\nNext steps:")
    print(f"  python -m vision.run_pipeline all --provider {provider} \\")
    print(f"      --raw-dir {raw_dir} --dictionary-dir {dictionary_dir} \\")
    print(f"      --intermediate-dir {output_dir}/intermediate --processed-dir {output_dir}/processed")

    return {"raw_dir": raw_dir, "dictionary_dir": dictionary_dir, "product_ids": [io.split("_", 1)[0] for io in insertion_orders]}


def main():
    parser = argparse.ArgumentParser(
        description="Generate sample data for the Campaign Vision Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default sample data (DV exports, with footers):
  python scripts/generate_sample_data.py --output-dir ./sample

  # Larger TTD-style dataset:
  python scripts/generate_sample_data.py --output-dir ./sample --provider ttd --num-products 10 --num-days 30
        """
    )

    parser.add_argument("--output-dir", "-o", default="./sample",
                        help="Output directory for generated files")
    parser.add_argument("--num-products", type=int, default=3,
                        help="Number of products (insertion orders) to generate")
    parser.add_argument("--num-days", type=int, default=7,
                        help="Number of days of data")
    parser.add_argument("--provider", choices=["dv", "ttd", "zed"], default="dv",
                        help="Provider style (dv adds the footer and leading separator)")
    parser.add_argument("--seed", type=int, default=42,
                        help="Random seed for reproducibility")

    args = parser.parse_args()

    generate_sample_data(
        output_dir=args.output_dir,
        num_products=args.num_products,
        num_days=args.num_days,
        provider=args.provider,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
