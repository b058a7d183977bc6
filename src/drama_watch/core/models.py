"""
Data models shared by the fetch/diff/ledger pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

ChatId = Union[str, int]

# Source display key -> newly discovered titles, in discovery order.
NewItemsBySource = Dict[str, List[str]]

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_LEDGER_FILENAME = "drama-list.md"


@dataclass(frozen=True)
class SourceDescriptor:
    """One configured endpoint plus its title extraction rule."""

    url: str
    extraction_path: str
    name: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    type: str = "api"

    @property
    def display_name(self) -> str:
        """Grouping key used in the ledger and notifications."""
        return self.name or self.url


@dataclass
class FetchResult:
    """Titles obtained from one source during one run.

    ``titles`` is always a list; ``error`` is set when the fetch degraded to an
    empty result.
    """

    source: SourceDescriptor
    titles: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TelegramSettings:
    bot_token: str
    chat_ids: List[ChatId] = field(default_factory=list)


@dataclass
class WatchConfig:
    """Validated configuration for a single run."""

    sources: List[SourceDescriptor]
    telegram: Optional[TelegramSettings] = None
    user_agent: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    ledger_path: str = DEFAULT_LEDGER_FILENAME


@dataclass
class RunSummary:
    """Outcome of one check run, returned to the CLI and programmatic callers."""

    sources_checked: int = 0
    failed_sources: List[str] = field(default_factory=list)
    known_before: int = 0
    new_items: NewItemsBySource = field(default_factory=dict)
    ledger_written: bool = False
    ledger_path: Optional[str] = None
    notifications: Dict[str, bool] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def total_new(self) -> int:
        return sum(len(titles) for titles in self.new_items.values())


__all__ = [
    "ChatId",
    "NewItemsBySource",
    "SourceDescriptor",
    "FetchResult",
    "TelegramSettings",
    "WatchConfig",
    "RunSummary",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_LEDGER_FILENAME",
]
