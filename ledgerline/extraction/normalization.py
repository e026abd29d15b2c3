"""
Text normalization applied before heuristic extraction.

Folds Unicode compatibility forms, unifies line endings and dash characters,
and collapses horizontal whitespace, so the pattern rules only need to
recognize one spelling of each convention.
"""

import re
import unicodedata
from typing import List

# Unicode minus, hyphen variants, en dash, em dash
_DASHES = re.compile(r"[‐‑‒–—−﹣－]")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")


def normalize_text(text: str) -> str:
    """
    Normalize raw statement text.

    Args:
        text: Raw input as submitted.

    Returns:
        Text with one space between tokens, stripped lines and no outer blank lines.
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _DASHES.sub("-", text)

    lines = [_HORIZONTAL_WS.sub(" ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip("\n")


def non_empty_lines(text: str) -> List[str]:
    """Stripped, non-empty lines of ``text``."""
    return [line.strip() for line in text.split("\n") if line.strip()]
