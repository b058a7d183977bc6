"""Status command: report configuration validity and ledger state."""

import logging
from typing import Any, Dict, Optional

from ..core.config import ConfigManager
from ..core.ledger import LedgerStore
from ..core.paths import resolve_data_file

logger = logging.getLogger(__name__)


def run(config_path: Optional[str] = None, ledger_path: Optional[str] = None) -> Dict[str, Any]:
    """Return a status mapping for the CLI and programmatic callers.

    Never raises for configuration problems; they are reported under ``error``
    and ``problems``.
    """
    config_manager = ConfigManager(config_path)
    info: Dict[str, Any] = {'config_path': config_manager.config_path}

    if not config_manager.exists():
        info.update({'valid': False, 'error': f'Config file not found: {config_manager.config_path}'})
        return info

    if not config_manager.validate_config():
        info.update({
            'valid': False,
            'error': 'Configuration validation failed',
            'problems': list(config_manager.problems),
        })
        return info

    watch_config = config_manager.get_watch_config()
    ledger = LedgerStore(resolve_data_file(ledger_path or watch_config.ledger_path))
    info.update({
        'valid': True,
        'sources': [s.display_name for s in watch_config.sources],
        'telegram_chats': len(watch_config.telegram.chat_ids) if watch_config.telegram else 0,
        'user_agent': watch_config.user_agent,
        'timeout': watch_config.timeout,
        'ledger_path': str(ledger.path),
        'ledger_exists': ledger.exists(),
        'known_items': len(ledger.load_known_items()),
    })
    return info
