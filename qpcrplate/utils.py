"""Utility functions for well identifiers and plate row naming.

Contains sorting helpers, well id construction/parsing, and the row label
conventions used by 1536-well instruments.
"""

import re
import string
from typing import List, Tuple

_WELL_ID_RE = re.compile(r"^([A-Za-z]+)(\d+)$")


def natural_sort_key(sample_name):
    """Extract numbers from sample name for natural sorting (e.g., Sample2 < Sample10)"""
    parts = re.split(r"(\d+)", str(sample_name))
    return [int(part) if part.isdigit() else part.lower() for part in parts]


def row_labels(n: int) -> List[str]:
    """Spreadsheet-style row labels: A..Z, then AA, AB, ..."""
    if n < 0:
        raise ValueError(f"Number of rows must be >= 0, got {n}")
    labels = []
    for i in range(n):
        label = ""
        i += 1
        while i > 0:
            i, rem = divmod(i - 1, 26)
            label = string.ascii_uppercase[rem] + label
        labels.append(label)
    return labels


def make_well_id(row: str, col) -> str:
    """Generate well identifier from row label and column number (e.g., "B", 2 -> "B2")."""
    return f"{row}{int(col)}"


def split_well_id(well: str) -> Tuple[str, int]:
    """Split a well identifier into (row label, column number).

    Raises:
        ValueError: If the identifier is not letters followed by digits.
    """
    match = _WELL_ID_RE.match(str(well).strip())
    if not match:
        raise ValueError(f"Malformed well identifier: {well!r}")
    return match.group(1), int(match.group(2))


def make_row_names_lc1536() -> List[str]:
    """Row names for LightCycler 1536-well plates: Aa, Ab, Ba, Bb, ..., Pb."""
    return [f"{r}{s}" for r in string.ascii_uppercase[:16] for s in "ab"]


def make_row_names_echo1536() -> List[str]:
    """Row names for Echo 1536-well source/destination plates: A..Z, AA..AF."""
    return row_labels(32)
