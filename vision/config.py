"""
Configuration for the campaign Vision pipeline.

Edit the defaults here or override them through VISION_* environment
variables and CLI flags.
"""

import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .schema import COLUMN_DEFAULTS


PROVIDERS = ("dv", "ttd", "zed")
TIER_CHOICES = (1, 2, 3, 4)


class ConfigError(ValueError):
    """An option value is out of range or malformed."""


@dataclass
class VisionConfig:
    """
    Main configuration for the Vision pipeline.

    Key concepts:
    - provider: source system; "dv" enables footer truncation and the
      category path correction
    - tiers: how many category levels the tier extractor keeps
    - min_score: lowest dictionary score an IAB candidate needs to count
    - device_min_pct: device buckets under this many percentage points are
      rolled into the largest bucket
    """

    # === Paths ===
    raw_dir: str = "./rawData"
    intermediate_dir: str = "./intermediate"
    processed_dir: str = "./processed"
    dictionary_dir: str = "./dictionary"
    dictionary_file: str = "tier1_iab_mapping_top10_unique.jsonl"

    # === CSV ===
    delimiter: str = ","
    encoding: str = "utf-8"

    # === Behaviour ===
    provider: str = "dv"
    tiers: int = 1
    splitval: str = "/"
    min_score: float = 0.4
    device_min_pct: float = 1.0  # percentage points, not a fraction

    # === Column overrides: file kind -> field -> 0-based index ===
    column_overrides: Dict[str, Dict[str, int]] = field(default_factory=dict)

    # === Logging ===
    log_level: str = "INFO"

    def validate(self) -> "VisionConfig":
        """Reject malformed values before any file is read."""
        if self.provider not in PROVIDERS:
            raise ConfigError(f"provider must be one of {list(PROVIDERS)}, got {self.provider!r}")
        if isinstance(self.tiers, bool) or self.tiers not in TIER_CHOICES:
            raise ConfigError(f"tiers must be one of {list(TIER_CHOICES)}, got {self.tiers!r}")
        if not isinstance(self.splitval, str) or len(self.splitval) != 1:
            raise ConfigError("splitval must be a single character")
        if not isinstance(self.delimiter, str) or len(self.delimiter) != 1:
            raise ConfigError("delimiter must be a single character")
        if not (0 <= self.min_score <= 1):
            raise ConfigError(f"minscore must be between 0 and 1, got {self.min_score}")
        if self.device_min_pct < 0:
            raise ConfigError(f"device_min_pct must be >= 0, got {self.device_min_pct}")

        if not isinstance(self.column_overrides, dict):
            raise ConfigError("column overrides must map file kind -> {field: index}")
        for kind, overrides in self.column_overrides.items():
            if kind not in COLUMN_DEFAULTS:
                raise ConfigError(f"Unknown file kind in column overrides: {kind!r}")
            if not isinstance(overrides, dict):
                raise ConfigError(f"Column overrides for {kind!r} must map field -> index")
            for name, index in overrides.items():
                if name not in COLUMN_DEFAULTS[kind]:
                    raise ConfigError(f"Unknown column {name!r} for {kind!r}")
                if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                    raise ConfigError(f"Column index for {kind}.{name} must be a non-negative integer, got {index!r}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> "VisionConfig":
        """Build a config from VISION_* environment variables; keyword overrides win."""
        values: Dict[str, Any] = {}
        for name, env_var, converter in _ENV_VARS:
            raw = os.getenv(env_var)
            if raw is None:
                continue
            try:
                values[name] = converter(raw)
            except ValueError as exc:
                raise ConfigError(f"Invalid {env_var}: {raw!r}") from exc
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    # === Paths ===

    def raw_path(self, name: str) -> str:
        return os.path.join(self.raw_dir, name)

    def intermediate_path(self, name: str) -> str:
        return os.path.join(self.intermediate_dir, name)

    def dictionary_path(self) -> str:
        return os.path.join(self.dictionary_dir, self.dictionary_file)

    def overrides_for(self, kind: str) -> Optional[Dict[str, int]]:
        return self.column_overrides.get(kind)

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


_ENV_VARS = [
    ("raw_dir", "VISION_RAW_DIR", str),
    ("intermediate_dir", "VISION_INTERMEDIATE_DIR", str),
    ("processed_dir", "VISION_PROCESSED_DIR", str),
    ("dictionary_dir", "VISION_DICTIONARY_DIR", str),
    ("delimiter", "VISION_DELIMITER", str),
    ("encoding", "VISION_ENCODING", str),
    ("provider", "VISION_PROVIDER", str),
    ("tiers", "VISION_TIERS", int),
    ("splitval", "VISION_SPLITVAL", str),
    ("min_score", "VISION_MIN_SCORE", float),
    ("device_min_pct", "VISION_DEVICE_MIN_PCT", float),
    ("column_overrides", "VISION_COLUMN_OVERRIDES", json.loads),
    ("log_level", "LOG_LEVEL", str),
]
