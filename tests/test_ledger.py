"""Tests for ledger parsing, rendering and persistence."""

from __future__ import annotations

import datetime
import os
from pathlib import Path
import sys

import pytest

# Ensure the repository's src/ directory is importable without installation.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from drama_watch.core.errors import LedgerWriteError  # noqa: E402
from drama_watch.core.ledger import (  # noqa: E402
    LedgerStore,
    format_timestamp,
    read_known_items,
    render_section,
)


SAMPLE_LEDGER = """# Drama list

## 01.02.2026 10:05
### Site A
- Drama A
- Drama B
### Site B
-   Drama C

## 02.02.2026 08:00
### Site A
- Drama D
Loose line
"""


def test_read_known_items_ignores_headings_and_markers():
    assert read_known_items(SAMPLE_LEDGER) == {"Drama A", "Drama B", "Drama C", "Drama D", "Loose line"}


def test_read_known_items_empty_text():
    assert read_known_items("") == set()
    assert read_known_items("\n\n   \n") == set()


def test_heading_marker_requires_space():
    """Only real Markdown headings are skipped; '#1 Hits' is data."""
    text = "#1 Hits\n- #hashtag show\n#### Deep heading\n#\n"
    assert read_known_items(text) == {"#1 Hits", "#hashtag show"}


def test_only_one_list_marker_is_stripped():
    assert read_known_items("- - Dash Drama\n") == {"- Dash Drama"}


def test_render_section_layout_and_sorting():
    section = render_section(
        {"Site B": ["Drama B", "drama a", "Émile"], "Site A": ["Zeta", "Alpha"]},
        "19.10.2026 09:30",
    )
    assert section == (
        "\n## 19.10.2026 09:30\n"
        "### Site B\n"
        "- drama a\n"
        "- Drama B\n"
        "- Émile\n"
        "### Site A\n"
        "- Alpha\n"
        "- Zeta\n"
    )


def test_round_trip_unions_known_items():
    existing = "\n## 01.01.2026 00:00\n### S\n- Old\n"
    new_items = {"S1": ["New 1", "Old"], "S2": ["New 1", "New 2"]}
    combined = existing + render_section(new_items, "02.01.2026 00:00")
    assert read_known_items(combined) == {"Old", "New 1", "New 2"}


def test_format_timestamp_zero_pads():
    moment = datetime.datetime(2026, 3, 4, 5, 6)
    assert format_timestamp(moment) == "04.03.2026 05:06"


def test_missing_ledger_is_empty(tmp_path):
    store = LedgerStore(tmp_path / "drama-list.md")
    assert store.load_known_items() == set()
    assert store.read_text() == ""


def test_append_creates_then_extends(tmp_path):
    path = tmp_path / "nested" / "drama-list.md"
    store = LedgerStore(path)

    store.append({"Site": ["Drama B", "Drama A"]}, "01.01.2026 12:00")
    assert path.read_text(encoding="utf-8") == "\n## 01.01.2026 12:00\n### Site\n- Drama A\n- Drama B\n"

    store.append({"Site": ["Drama C"]}, "02.01.2026 12:00")
    content = path.read_text(encoding="utf-8")
    assert content.startswith("\n## 01.01.2026 12:00\n")
    assert content.endswith("\n## 02.01.2026 12:00\n### Site\n- Drama C\n")
    assert store.load_known_items() == {"Drama A", "Drama B", "Drama C"}

    leftovers = [p.name for p in path.parent.iterdir() if p.name != path.name]
    assert leftovers == []


def test_append_preserves_existing_text_verbatim(tmp_path):
    path = tmp_path / "drama-list.md"
    original = "# My list\n\nSome notes without trailing newline"
    path.write_text(original, encoding="utf-8")

    LedgerStore(path).append({"S": ["X"]}, "01.01.2026 00:00")

    assert path.read_text(encoding="utf-8") == original + "\n## 01.01.2026 00:00\n### S\n- X\n"


def test_unreadable_ledger_reads_as_empty_but_refuses_write(tmp_path):
    path = tmp_path / "drama-list.md"
    path.write_bytes(b"- Drama A\n\xff\xfe broken utf-8\n")
    store = LedgerStore(path)

    assert store.load_known_items() == set()

    with pytest.raises(LedgerWriteError):
        store.append({"S": ["X"]}, "01.01.2026 00:00")
    assert path.read_bytes() == b"- Drama A\n\xff\xfe broken utf-8\n"


def test_write_failure_raises_ledger_write_error(tmp_path, monkeypatch):
    store = LedgerStore(tmp_path / "drama-list.md")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(LedgerWriteError):
        store.append({"S": ["X"]}, "01.01.2026 00:00")
    assert not (tmp_path / "drama-list.md").exists()
    assert list(tmp_path.iterdir()) == []
