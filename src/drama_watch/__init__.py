from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .commands import check as check_cmd
from .commands import init_config as init_cmd
from .commands import schema as schema_cmd
from .commands import status as status_cmd
from .core.extractor import extract
from .core.ledger import read_known_items, render_section
from .core.models import RunSummary
from .processors.diff_engine import diff

__all__ = [
    'check',
    'status',
    'init',
    'schema',
    'extract',
    'diff',
    'read_known_items',
    'render_section',
]


def check(
    config_path: Optional[str] = None,
    *,
    ledger_path: Optional[str] = None,
    dry_run: bool = False,
    notify: bool = True,
    now: Optional[datetime.datetime] = None,
) -> RunSummary:
    """Run one check programmatically.

    Args:
        config_path: Path to the config file; defaults to the data dir config.
        ledger_path: Optional ledger override.
        dry_run: Report without writing or notifying.
        notify: Set False to skip Telegram.
        now: Timestamp for the new ledger section.
    """
    return check_cmd.run(config_path, ledger_path=ledger_path, dry_run=dry_run, notify=notify, now=now)


def status(config_path: Optional[str] = None, ledger_path: Optional[str] = None) -> Dict[str, Any]:
    """Return configuration and ledger status for programmatic use."""
    return status_cmd.run(config_path, ledger_path)


def init(config_path: Optional[str] = None, force: bool = False) -> Path:
    """Write a starter config file and return its path."""
    return init_cmd.run(config_path, force=force)


def schema(output_path: str = schema_cmd.DEFAULT_SCHEMA_FILENAME) -> Path:
    """Write the configuration JSON Schema and return its path."""
    return schema_cmd.run(output_path)
