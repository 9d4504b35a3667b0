"""
Campaign Vision Pipeline

Aggregates advertising-campaign CSV exports (categories, demographics,
devices, engagement) into one normalized Vision analytics document per
product.

Main components:
- csv_reader.py / schema.py / provider.py: streaming CSV scan, header
  detection, DV footer and category-path rules
- categories.py: unique category tiers
- age_gender.py: age-range redistribution into fixed bins
- iab.py: tier1 -> IAB taxonomy scoring
- devices.py: device bucketing and share roll-up
- assembler.py: per-product Vision documents
- run_pipeline.py: CLI entry point

Quick start:
    from vision import VisionConfig, run_extract_categories, run_generate_vision

    config = VisionConfig(raw_dir="./rawData", provider="dv").validate()
    run_extract_categories(config)
    run_generate_vision(config)
"""

from .config import ConfigError, VisionConfig
from .csv_reader import ScanStats, split_csv_line
from .categories import extract_tiers, run_extract_categories
from .age_gender import AgeBinAccumulator, expand_age, parse_age_token, run_infer_age_gender
from .devices import compute_device_shares, normalize_device_type
from .iab import load_dictionary, run_infer_iab
from .assembler import build_vision_documents, run_generate_vision
from .utils import MissingInputError, setup_logging

__all__ = [
    # Config
    "VisionConfig",
    "ConfigError",
    # Scanning
    "ScanStats",
    "split_csv_line",
    # Tasks
    "extract_tiers",
    "run_extract_categories",
    "AgeBinAccumulator",
    "parse_age_token",
    "expand_age",
    "run_infer_age_gender",
    "compute_device_shares",
    "normalize_device_type",
    "load_dictionary",
    "run_infer_iab",
    "build_vision_documents",
    "run_generate_vision",
    # Utils
    "MissingInputError",
    "setup_logging",
]

__version__ = "1.0.0"
