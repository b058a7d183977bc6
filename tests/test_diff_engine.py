"""Tests for the per-source diff against the known-items set."""

from __future__ import annotations

from pathlib import Path
import random
import sys

# Ensure the repository's src/ directory is importable without installation.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from drama_watch.core.ledger import read_known_items, render_section  # noqa: E402
from drama_watch.core.models import FetchResult, SourceDescriptor  # noqa: E402
from drama_watch.processors.diff_engine import count_new, diff  # noqa: E402


def _result(name, titles, url=None, error=None):
    source = SourceDescriptor(url=url or f"https://example.com/{name}", extraction_path="$.*", name=name)
    return FetchResult(source=source, titles=list(titles), error=error)


def test_only_unknown_titles_are_new():
    results = [_result("Site", ["Drama A", "Drama C"])]
    assert diff({"Drama A"}, results) == {"Site": ["Drama C"]}


def test_exact_case_sensitive_matching():
    results = [_result("Site", ["drama a", "Drama A ", "Drama A"])]
    assert diff({"Drama A"}, results) == {"Site": ["drama a", "Drama A "]}


def test_sources_without_new_items_are_omitted():
    results = [_result("Old", ["Known"]), _result("Empty", []), _result("New", ["Fresh"])]
    assert diff({"Known"}, results) == {"New": ["Fresh"]}


def test_same_title_new_for_two_sources_is_listed_twice():
    results = [_result("A", ["Drama Z"]), _result("B", ["Drama Z"])]
    new_items = diff(set(), results)
    assert new_items == {"A": ["Drama Z"], "B": ["Drama Z"]}
    assert count_new(new_items) == 2


def test_discovery_order_is_kept():
    results = [_result("Second", ["b", "a"]), _result("First", ["c"])]
    new_items = diff(set(), results)
    assert list(new_items) == ["Second", "First"]
    assert new_items["Second"] == ["b", "a"]


def test_url_used_when_name_missing():
    source = SourceDescriptor(url="https://example.com/api", extraction_path="$.*")
    assert diff(set(), [FetchResult(source=source, titles=["T"])]) == {"https://example.com/api": ["T"]}


def test_duplicate_display_keys_are_merged():
    results = [_result("Same", ["x", "y"]), _result("Same", ["y", "z"], url="https://other.example.com")]
    assert diff(set(), results) == {"Same": ["x", "y", "z"]}


def test_repeated_titles_within_a_source_listed_once():
    assert diff(set(), [_result("S", ["x", "x", "y"])]) == {"S": ["x", "y"]}


def test_failed_source_does_not_affect_others():
    healthy = _result("Healthy", ["One", "Two"])
    alone = diff({"One"}, [healthy])
    with_failure = diff({"One"}, [_result("Broken", [], error="HTTP 500"), healthy])
    assert alone == with_failure == {"Healthy": ["Two"]}


def test_soundness_completeness_and_idempotence():
    rng = random.Random(1234)
    pool = [f"Title {i}" for i in range(40)]
    for _ in range(50):
        known = set(rng.sample(pool, rng.randint(0, 20)))
        results = [
            _result(f"S{j}", rng.choices(pool, k=rng.randint(0, 15)))
            for j in range(rng.randint(1, 4))
        ]
        new_items = diff(known, results)
        by_name = {r.source.display_name: r.titles for r in results}

        for source_name, titles in new_items.items():
            assert titles
            assert not set(titles) & known
            assert set(titles) <= set(by_name[source_name])

        ledger_text = render_section(new_items, "01.01.2026 00:00") if new_items else ""
        updated_known = known | read_known_items(ledger_text)
        assert diff(updated_known, results) == {}
