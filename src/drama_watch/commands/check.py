"""
Check command implementation.
Fetches every source, diffs against the ledger, appends new items and notifies.
"""

import datetime
import logging
from typing import Dict, Optional

import httpx

from ..core.config import ConfigManager
from ..core.ledger import LedgerStore, format_timestamp
from ..core.models import NewItemsBySource, RunSummary, WatchConfig
from ..core.paths import resolve_data_file
from ..processors.diff_engine import count_new, diff
from ..processors.notifier import TelegramNotifier
from ..processors.source_fetcher import fetch_all_sync

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str] = None,
    *,
    ledger_path: Optional[str] = None,
    dry_run: bool = False,
    notify: bool = True,
    now: Optional[datetime.datetime] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    notifier: Optional[TelegramNotifier] = None,
) -> RunSummary:
    """Run one check over all configured sources.

    Workflow:
    1. Load and validate configuration (fatal on failure).
    2. Read the known items from the ledger (a missing or unreadable ledger counts as empty).
    3. Fetch every source concurrently; failing sources contribute no titles.
    4. Diff each source against the known items.
    5. If anything is new, append one section to the ledger, then notify.

    Args:
        config_path: Path to the configuration file (defaults to the data dir config)
        ledger_path: Override for the configured ledger path
        dry_run: Compute and log the diff without writing or notifying
        notify: When False, skip Telegram even if configured
        now: Timestamp for the new section (defaults to local now)
        transport: Optional httpx transport for source requests
        notifier: Optional pre-built notifier (otherwise built from config)

    Raises:
        ConfigurationError: Configuration is missing or invalid.
        LedgerWriteError: New items were found but could not be persisted.
    """
    logger.info("🔍 Starting check for new items")

    config_manager = ConfigManager(config_path)
    watch_config = config_manager.get_watch_config()
    logger.info("📂 Configuration loaded; %d sources to check", len(watch_config.sources))

    target = ledger_path or watch_config.ledger_path
    ledger = LedgerStore(resolve_data_file(target))
    known_items = ledger.load_known_items()
    logger.info("📝 %d items already recorded in %s", len(known_items), ledger.path)

    summary = RunSummary(
        sources_checked=len(watch_config.sources),
        known_before=len(known_items),
        ledger_path=str(ledger.path),
        dry_run=dry_run,
    )

    results = fetch_all_sync(
        watch_config.sources,
        user_agent=watch_config.user_agent,
        timeout=watch_config.timeout,
        transport=transport,
    )
    summary.failed_sources = [r.source.display_name for r in results if not r.ok]

    new_items = diff(known_items, results)
    summary.new_items = new_items
    total_new = count_new(new_items)
    logger.info("📥 %d new items found", total_new)

    if not total_new:
        logger.info("✅ No new items")
        return summary

    for source_name, titles in new_items.items():
        logger.info("  - %s: %d new", source_name, len(titles))

    if dry_run:
        logger.info("Dry run: ledger and notifications left untouched")
        return summary

    ledger.append(new_items, format_timestamp(now))
    summary.ledger_written = True
    logger.info("✨ Recorded %d new items from %d sources", total_new, len(new_items))

    if notify:
        summary.notifications = _notify(watch_config, new_items, notifier)

    logger.info("🏁 Check completed")
    return summary


def _notify(
    watch_config: WatchConfig,
    new_items: NewItemsBySource,
    notifier: Optional[TelegramNotifier],
) -> Dict[str, bool]:
    """Deliver notifications; failures are logged, never raised."""
    if notifier is None:
        if watch_config.telegram is None:
            logger.info("🔔 Telegram not configured; notification skipped")
            return {}
        notifier = TelegramNotifier.from_settings(watch_config.telegram)
    try:
        with notifier:
            return notifier.notify(new_items)
    except Exception as e:
        logger.error(f"Notification step failed: {e}")
        return {}
