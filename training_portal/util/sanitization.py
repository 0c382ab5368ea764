"""Sanitisation helpers.

Free-text fields (session focus and notes, client notes, referral
sources, PD descriptions) are stored after stripping HTML tags and
surrounding whitespace, since dashboards render them back verbatim.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional

TAG_RE = re.compile(r"<[^>]+>")


def strip_tags(text: str) -> str:
    """Remove HTML tags from the given string.

    Parameters
    ----------
    text: str
        The input string that may contain HTML tags.

    Returns
    -------
    str
        The cleaned string with tags removed and whitespace trimmed.
    """
    if not text:
        return ""
    no_tags = TAG_RE.sub("", text)
    return no_tags.strip()


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Like ``strip_tags`` but maps empty results to ``None``."""
    cleaned = strip_tags(text or "")
    return cleaned or None


def clean_tags(values: Optional[Iterable[str]]) -> Optional[list[str]]:
    """Clean a list of characteristic labels, dropping blanks and duplicates."""
    if not values:
        return None
    seen: list[str] = []
    for value in values:
        cleaned = strip_tags(value)
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen or None
