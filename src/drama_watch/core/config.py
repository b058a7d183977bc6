"""Configuration management for YAML (or JSON) config files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml

from .errors import ConfigurationError, ExtractionError
from .extractor import compile_path
from .models import (
    DEFAULT_LEDGER_FILENAME,
    DEFAULT_TIMEOUT_SECONDS,
    SourceDescriptor,
    TelegramSettings,
    WatchConfig,
)
from .paths import default_config_path

logger = logging.getLogger(__name__)

_KNOWN_TOP_LEVEL_KEYS = {"$schema", "sources", "telegram", "userAgent", "timeout", "ledger"}

DEFAULT_CONFIG_TEMPLATE = """# drama-watch configuration
# Each source is fetched once per run; extractionPath selects the titles.
sources:
  - name: "Example API"
    url: "https://example.com/api/dramas.json"
    type: "api"
    extractionPath: "result.*.title"
    # headers:
    #   Authorization: "Bearer <token>"

# userAgent: "drama-watch/1.0 (+https://example.com)"
timeout: 20

ledger:
  path: "drama-list.md"

# telegram:
#   botToken: "123456:ABC"
#   chatId: [123456789]
"""

CONFIG_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "drama-watch configuration",
    "type": "object",
    "properties": {
        "$schema": {"type": "string"},
        "sources": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "url": {"type": "string", "format": "uri"},
                    "type": {"const": "api"},
                    "extractionPath": {"type": "string"},
                    "jsonPath": {"type": "string"},
                    "headers": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                    },
                },
                "required": ["url"],
                "anyOf": [
                    {"required": ["extractionPath"]},
                    {"required": ["jsonPath"]},
                ],
                "additionalProperties": False,
            },
        },
        "telegram": {
            "type": "object",
            "properties": {
                "botToken": {"type": "string"},
                "chatId": {
                    "anyOf": [
                        {"type": ["string", "number"]},
                        {"type": "array", "items": {"type": ["string", "number"]}},
                    ]
                },
            },
            "required": ["botToken", "chatId"],
            "additionalProperties": False,
        },
        "userAgent": {"type": "string"},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "ledger": {
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "additionalProperties": False,
        },
    },
    "required": ["sources"],
}


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _is_chat_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


class ConfigManager:
    """Loads and validates the watch configuration file."""

    def __init__(self, config_path: Optional[str] = None):
        path = Path(config_path or default_config_path()).expanduser()
        if not path.is_absolute():
            path = path.resolve()
        self.config_path = str(path)
        self.base_dir = str(path.parent)
        self._config: Optional[Dict[str, Any]] = None
        self.problems: List[str] = []

    def exists(self) -> bool:
        return Path(self.config_path).is_file()

    def load_config(self) -> Dict[str, Any]:
        """Load the raw configuration mapping.

        Raises:
            ConfigurationError: The file is missing, unparseable or not a mapping.
        """
        if self._config is None:
            if not self.exists():
                raise ConfigurationError(
                    f"Configuration file {self.config_path} not found", config_path=self.config_path
                )
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    if self.config_path.lower().endswith('.json'):
                        data = json.load(f)
                    else:
                        data = yaml.safe_load(f)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Failed to load config from {self.config_path}: {e}")
                raise ConfigurationError(
                    f"Failed to parse {self.config_path}: {e}", config_path=self.config_path
                ) from e

            if not isinstance(data, dict):
                raise ConfigurationError(
                    "Configuration root must be a mapping", config_path=self.config_path
                )
            self._config = data
            logger.info(f"Loaded configuration from {self.config_path}")

        return self._config

    def _collect_problems(self, config: Dict[str, Any]) -> List[str]:
        problems: List[str] = []

        for key in config:
            if key not in _KNOWN_TOP_LEVEL_KEYS:
                logger.warning("Ignoring unknown configuration key '%s'", key)

        sources = config.get('sources')
        if not isinstance(sources, list):
            problems.append("'sources' must be a list")
            sources = []

        for i, source in enumerate(sources):
            where = f"sources[{i}]"
            if not isinstance(source, dict):
                problems.append(f"{where} must be a mapping")
                continue
            name = source.get('name')
            if name is not None and not isinstance(name, str):
                problems.append(f"{where}.name must be a string")
            if not _is_http_url(source.get('url')):
                problems.append(f"{where}.url must be a well-formed http(s) URL")
            source_type = source.get('type', 'api')
            if source_type != 'api':
                problems.append(f"{where}.type must be 'api' (got {source_type!r})")

            path = source.get('extractionPath', source.get('jsonPath'))
            if not isinstance(path, str) or not path.strip():
                problems.append(f"{where}.extractionPath must be a non-empty string")
            else:
                try:
                    compile_path(path)
                except ExtractionError as e:
                    problems.append(f"{where}.extractionPath is invalid: {e.message}")

            headers = source.get('headers')
            if headers is not None:
                if not isinstance(headers, dict) or not all(
                    isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
                ):
                    problems.append(f"{where}.headers must map strings to strings")

        telegram = config.get('telegram')
        if telegram is not None:
            if not isinstance(telegram, dict):
                problems.append("'telegram' must be a mapping")
            else:
                if not isinstance(telegram.get('botToken'), str):
                    problems.append("telegram.botToken must be a string")
                chat_id = telegram.get('chatId')
                if isinstance(chat_id, list):
                    if not all(_is_chat_id(c) for c in chat_id):
                        problems.append("telegram.chatId list entries must be strings or integers")
                elif not _is_chat_id(chat_id):
                    problems.append("telegram.chatId must be a string, an integer or a list of them")

        user_agent = config.get('userAgent')
        if user_agent is not None and not isinstance(user_agent, str):
            problems.append("'userAgent' must be a string")

        timeout = config.get('timeout')
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                problems.append("'timeout' must be a positive number of seconds")

        ledger = config.get('ledger')
        if ledger is not None:
            if not isinstance(ledger, dict) or not isinstance(ledger.get('path', ''), str):
                problems.append("'ledger' must be a mapping with a string 'path'")

        return problems

    def validate_config(self) -> bool:
        """Validate the configuration file, logging every problem found."""
        try:
            config = self.load_config()
        except ConfigurationError as e:
            logger.error(f"Configuration validation failed: {e.message}")
            self.problems = [e.message]
            return False

        self.problems = self._collect_problems(config)
        for problem in self.problems:
            logger.error("Invalid configuration: %s", problem)
        if self.problems:
            return False

        logger.info("Configuration validation passed")
        return True

    def get_watch_config(self) -> WatchConfig:
        """Return the validated configuration as typed objects.

        Raises:
            ConfigurationError: If the file is missing or invalid.
        """
        if not self.validate_config():
            raise ConfigurationError(
                f"Invalid configuration in {self.config_path}: " + "; ".join(self.problems),
                config_path=self.config_path,
                problems=self.problems,
            )
        config = self.load_config()

        sources = [
            SourceDescriptor(
                url=s['url'].strip(),
                extraction_path=s.get('extractionPath', s.get('jsonPath')),
                name=s.get('name') or None,
                headers=dict(s.get('headers') or {}),
                type=s.get('type', 'api'),
            )
            for s in config['sources']
        ]

        telegram = None
        tg = config.get('telegram')
        if tg:
            chat_ids = tg['chatId'] if isinstance(tg['chatId'], list) else [tg['chatId']]
            telegram = TelegramSettings(bot_token=tg['botToken'], chat_ids=list(chat_ids))

        ledger_cfg = config.get('ledger') or {}
        return WatchConfig(
            sources=sources,
            telegram=telegram,
            user_agent=config.get('userAgent') or None,
            timeout=float(config.get('timeout') or DEFAULT_TIMEOUT_SECONDS),
            ledger_path=ledger_cfg.get('path') or DEFAULT_LEDGER_FILENAME,
        )


def write_default_config(path: str, force: bool = False) -> Path:
    """Write the starter configuration to *path*.

    Raises:
        FileExistsError: If the file exists and *force* is False.
    """
    target = Path(path).expanduser()
    if target.exists() and not force:
        raise FileExistsError(f"{target} already exists (use --force to overwrite)")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG_TEMPLATE.strip() + "\n", encoding="utf-8")
    logger.info("Created default config at %s", target)
    return target


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_TEMPLATE",
    "CONFIG_JSON_SCHEMA",
    "write_default_config",
]
