"""Text helpers for ordering and displaying item titles."""

import html as htmllib
import unicodedata
from typing import Iterable, List, Tuple


def strip_accents(text: str) -> str:
    """Return text with accent marks removed via Unicode normalization.

    Examples:
        >>> strip_accents("Café Noir")
        'Cafe Noir'
        >>> strip_accents("Müller")
        'Muller'
    """
    return "".join(
        c for c in unicodedata.normalize("NFKD", text)
        if not unicodedata.combining(c)
    )


def collation_key(text: str) -> Tuple[str, str]:
    """Sort key approximating a locale-aware comparison.

    Accents and case are ignored on the first level so that "apple" sorts
    before "Banana" and "Émile" next to "Emile"; the raw string breaks ties so
    the ordering stays total and deterministic.
    """
    return (strip_accents(text).casefold(), text)


def sort_titles(titles: Iterable[str]) -> List[str]:
    """Return *titles* sorted ascending by :func:`collation_key`."""
    return sorted(titles, key=collation_key)


def escape_html(text: str) -> str:
    """Escape text for Telegram's HTML parse mode."""
    return htmllib.escape(text, quote=False)


def truncate(text: str, limit: int, marker: str = "\n…") -> str:
    """Cut *text* to at most *limit* characters, ending on a line boundary.

    Text without any line break in budget is cut mid-line, but never inside an
    HTML entity or tag, which Telegram would reject.
    """
    if len(text) <= limit:
        return text
    budget = max(limit - len(marker), 0)
    cut = text.rfind("\n", 0, budget + 1)
    if cut <= 0:
        cut = budget
        entity = text.rfind("&", 0, cut)
        if entity != -1 and text.find(";", entity, cut) == -1:
            cut = entity
        tag = text.rfind("<", 0, cut)
        if tag != -1 and text.find(">", tag, cut) == -1:
            cut = tag
    return text[:cut].rstrip() + marker


def clean_title(title: str) -> str:
    """Trim surrounding whitespace and fold line breaks into spaces.

    The ledger stores one title per line and trims it on read, so a title is
    only stable across runs in this form.
    """
    return " ".join(part.strip() for part in title.strip().splitlines() if part.strip())
