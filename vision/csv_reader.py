"""
Single-pass CSV scanning.

Lines are decoded with a small quote-aware splitter rather than the csv
module: exports are line-oriented (no embedded newlines) and the DV footer
has to be detected on the raw line before any decoding.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .provider import is_footer_line
from .schema import is_header_row, resolve_columns


def split_csv_line(line: str, delimiter: str = ",") -> List[str]:
    """
    Split one CSV line into fields.

    A doubled quote inside a quoted section is a literal quote. Unbalanced
    quotes are not an error: an unterminated quote runs to the end of line.
    """
    if '"' not in line:
        return line.split(delimiter)

    out: List[str] = []
    cur: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                cur.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            out.append("".join(cur))
            cur = []
        else:
            cur.append(ch)
        i += 1
    out.append("".join(cur))
    return out


@dataclass
class ScanStats:
    """Per-file outcome counts: accepted rows and skipped rows by reason."""
    source: str = ""
    rows: int = 0
    accepted: int = 0
    skipped: Counter = field(default_factory=Counter)
    header_skipped: bool = False
    footer_line: Optional[int] = None
    columns: Dict[str, int] = field(default_factory=dict)

    def record(self, skip_reason: Optional[str]) -> bool:
        """Record one row outcome; None means accepted. Returns True if accepted."""
        if skip_reason is None:
            self.accepted += 1
            return True
        self.skipped[skip_reason] += 1
        return False

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def log_summary(self) -> None:
        logging.info(f"{self.source}: {self.rows} rows, {self.accepted} accepted, {self.total_skipped} skipped")
        for reason, count in sorted(self.skipped.items()):
            logging.debug(f"  skipped {count} ({reason})")


def iter_lines(path: str, encoding: str = "utf-8", provider: str = "", stats: Optional[ScanStats] = None) -> Iterator[str]:
    """
    Yield the lines of a text file without line terminators.

    For the DV provider the scan stops (without error) at the first
    "Report Time" footer line; nothing after it is read.
    """
    with open(path, "r", encoding=encoding, errors="replace") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.rstrip("\r\n")
            if line_no == 1 and line.startswith("\ufeff"):
                line = line[1:]
            if is_footer_line(line, provider):
                logging.warning(f"Detected DV summary footer at {path}:{line_no}; stopping further processing.")
                if stats is not None:
                    stats.footer_line = line_no
                return
            yield line


def iter_records(path: str, kind: str, config, stats: ScanStats) -> Iterator[Dict[str, Optional[str]]]:
    """
    Yield one dict per data row, keyed by semantic field name.

    Columns are resolved from the first non-blank line, which is dropped when
    it turns out to be a header row. Fields beyond the end of a short row are
    None.
    """
    stats.source = stats.source or path
    columns: Optional[Dict[str, int]] = None

    for line in iter_lines(path, config.encoding, config.provider, stats):
        if not line.strip():
            continue
        fields = split_csv_line(line, config.delimiter)

        if columns is None:
            columns = resolve_columns(fields, kind, config.overrides_for(kind))
            stats.columns = columns
            if is_header_row(fields, columns, kind):
                stats.header_skipped = True
                continue

        stats.rows += 1
        yield {name: (fields[idx] if idx < len(fields) else None) for name, idx in columns.items()}
