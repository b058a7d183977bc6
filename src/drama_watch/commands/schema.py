"""Schema command: write the configuration JSON Schema for editor validation."""

import json
import logging
from pathlib import Path

from ..core.config import CONFIG_JSON_SCHEMA

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_FILENAME = "config.schema.json"


def run(output_path: str = DEFAULT_SCHEMA_FILENAME) -> Path:
    """Write the JSON Schema describing the config format to *output_path*."""
    target = Path(output_path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(CONFIG_JSON_SCHEMA, indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote configuration schema to %s", target)
    return target
