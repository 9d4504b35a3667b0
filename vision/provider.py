"""Provider-specific rules. Both apply only to the "dv" provider."""

import re
from typing import List


FOOTER_PROVIDER = "dv"
_FOOTER = re.compile(r"^\s*report time\b", re.IGNORECASE)


def is_footer_line(line: str, provider: str) -> bool:
    """A DV export ends with a summary block starting at a "Report Time" line."""
    if provider != FOOTER_PROVIDER:
        return False
    return bool(_FOOTER.match(line))


def correct_category_path(raw: str, provider: str, separator: str) -> str:
    """Drop the first occurrence of the separator (DV paths carry a spurious leading one)."""
    if provider != FOOTER_PROVIDER:
        return raw
    return raw.replace(separator, "", 1)


def split_category_path(raw: str, provider: str, separator: str) -> List[str]:
    """Corrected path split on the separator, parts trimmed, empty parts dropped."""
    parts = correct_category_path(str(raw), provider, separator).split(separator)
    return [p.strip() for p in parts if p.strip()]
