"""
Shared helpers: logging setup, numeric parsing/rounding, date and product-key
normalization, and atomic file output.
"""

import json
import logging
import math
import os
import re
import tempfile
from typing import Any, Iterable, Optional


def setup_logging(level: str = "INFO", log_format: Optional[str] = None, enable_file_logging: bool = False, log_file: str = "vision.log"):
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        enable_file_logging: Whether to also log to a file
        log_file: Path to the log file
    """
    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    level = level.upper()
    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    if enable_file_logging:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level),
        handlers=handlers,
        force=True  # Overwrite any existing configuration
    )


# ============================================================
# Numbers
# ============================================================

def parse_number(value: Any) -> Optional[float]:
    """
    Parse a CSV numeric field.

    Thousands separators and surrounding whitespace are removed. An empty
    field counts as 0; anything non-numeric or non-finite returns None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    text = str(value).replace(",", "").strip()
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def round4(x: float) -> float:
    """Round to 4 decimals; non-finite input becomes 0."""
    return round(float(x), 4) if math.isfinite(x) else 0.0


def pct4(numerator: float, denominator: float) -> float:
    """Percentage of numerator over denominator, 4 decimals, 0 when denominator <= 0."""
    return round4(numerator / denominator * 100) if denominator > 0 else 0.0


def round_half_up(x: float) -> int:
    """Nearest integer, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(x + 0.5))


def as_number(x: float):
    """Return an int for integral floats so JSON shows 1200 rather than 1200.0."""
    if isinstance(x, float) and x.is_integer():
        return int(x)
    return x


# ============================================================
# Keys and dates
# ============================================================

_YMD = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_MDY = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")


def normalize_date(value: Any) -> str:
    """Rewrite YYYY-MM-DD / MM-DD-YYYY (either separator) to YYYY-MM-DD; pass anything else through."""
    text = str(value or "").strip()
    m = _YMD.match(text)
    if m:
        y, mo, d = m.groups()
        return f"{y}-{mo.zfill(2)}-{d.zfill(2)}"
    m = _MDY.match(text)
    if m:
        mo, d, y = m.groups()
        return f"{y}-{mo.zfill(2)}-{d.zfill(2)}"
    return text


def product_id_from_insertion_order(insertion_order: Any) -> str:
    """Product key: the part of the Insertion Order before its first underscore."""
    text = str(insertion_order or "")
    return text.split("_", 1)[0]


# ============================================================
# Files
# ============================================================

class MissingInputError(FileNotFoundError):
    """A required source file is absent."""


def require_file(*candidates: str) -> str:
    """Return the first existing path among candidates, or raise MissingInputError."""
    for path in candidates:
        if os.path.isfile(path):
            return path
    message = f"Missing input file: {candidates[0]}"
    if len(candidates) > 1:
        message += f" (or {', '.join(candidates[1:])})"
    raise MissingInputError(message)


def _write_text_atomic(path: str, text: str) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


def dump_json_line(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def write_lines_atomic(path: str, records: Iterable[Any]) -> int:
    """
    Write records as JSON-Lines via a temp file renamed into place.

    Returns:
        Number of lines written.
    """
    lines = [dump_json_line(r) for r in records]
    _write_text_atomic(path, "".join(line + "\n" for line in lines))
    return len(lines)


def write_json_atomic(path: str, obj: Any, indent: int = 2) -> None:
    """Write a pretty-printed JSON document via a temp file renamed into place."""
    _write_text_atomic(path, json.dumps(obj, ensure_ascii=False, indent=indent))
