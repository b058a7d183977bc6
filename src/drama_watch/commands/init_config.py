"""Init command: write a starter configuration file."""

from pathlib import Path
from typing import Optional

from ..core.config import write_default_config
from ..core.paths import default_config_path


def run(config_path: Optional[str] = None, force: bool = False) -> Path:
    """Create the starter config at *config_path* (or the data dir default)."""
    target = config_path or str(default_config_path())
    return write_default_config(target, force=force)
