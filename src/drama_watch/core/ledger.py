"""
The known-items ledger: a Markdown file that is only ever extended.

Format::


    ## 19.10.2026 09:30
    ### Source name
    - Item A
    - Item B

Parsing and rendering are pure functions over text; :class:`LedgerStore`
owns the file I/O.
"""

from __future__ import annotations

import datetime
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Mapping, Optional, Sequence, Set, Union

from .errors import LedgerReadError, LedgerWriteError
from .text_utils import sort_titles

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M"
_HEADING_RE = re.compile(r"^#{1,6}(?:\s|$)")
_LIST_MARKER = "- "


def format_timestamp(moment: Optional[datetime.datetime] = None) -> str:
    """Return ``DD.MM.YYYY HH:MM`` for *moment* (defaults to local now)."""
    moment = moment or datetime.datetime.now()
    return moment.strftime(TIMESTAMP_FORMAT)


def read_known_items(ledger_text: str) -> Set[str]:
    """Return every item name recorded anywhere in *ledger_text*.

    Headings of any level (timestamps, source names) are not data. A single
    leading list marker is stripped from the remaining lines.
    """
    known: Set[str] = set()
    for raw_line in ledger_text.splitlines():
        line = raw_line.strip()
        if not line or _HEADING_RE.match(line):
            continue
        if line.startswith(_LIST_MARKER):
            line = line[len(_LIST_MARKER):].strip()
        if line:
            known.add(line)
    return known


def render_section(new_items_by_source: Mapping[str, Sequence[str]], timestamp: str) -> str:
    """Render one timestamped section.

    Sources keep their insertion order; items within a source are sorted.
    """
    parts = [f"\n## {timestamp}\n"]
    for source_name, items in new_items_by_source.items():
        parts.append(f"### {source_name}\n")
        for item in sort_titles(items):
            parts.append(f"{_LIST_MARKER}{item}\n")
    return "".join(parts)


class LedgerStore:
    """Reads and extends the ledger file at *path*."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        """Return the ledger content, or ``""`` when the file does not exist yet.

        Raises:
            LedgerReadError: The file exists but cannot be read or decoded.
        """
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            raise LedgerReadError(f"Cannot read ledger: {e}", ledger_path=str(self.path)) from e

    def load_known_items(self) -> Set[str]:
        """Return the known-items set; never fails."""
        if not self.exists():
            logger.info("Ledger %s not found; it will be created on the first write", self.path)
            return set()
        try:
            known = read_known_items(self.read_text())
        except LedgerReadError as e:
            logger.warning("Treating ledger as empty: %s", e)
            return set()
        logger.debug("Loaded %d known items from %s", len(known), self.path)
        return known

    def append(self, new_items_by_source: Mapping[str, Sequence[str]], timestamp: str) -> str:
        """Append a new section and persist the whole ledger in one write.

        Returns the rendered section.

        Raises:
            LedgerWriteError: The existing ledger could not be read or the new
                content could not be written. The file is left untouched.
        """
        try:
            existing = self.read_text()
        except LedgerReadError as e:
            raise LedgerWriteError(
                f"Refusing to rewrite unreadable ledger: {e.message}", ledger_path=str(self.path)
            ) from e

        section = render_section(new_items_by_source, timestamp)
        self._write_atomic(existing + section)
        logger.info("Appended section '%s' to %s", timestamp, self.path)
        return section

    def _write_atomic(self, content: str) -> None:
        """Replace the ledger with *content* via a temp file in the same directory."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise LedgerWriteError(f"Cannot write ledger: {e}", ledger_path=str(self.path)) from e


__all__ = [
    "TIMESTAMP_FORMAT",
    "format_timestamp",
    "read_known_items",
    "render_section",
    "LedgerStore",
]
