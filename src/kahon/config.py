"""Project-level configuration (``kahon.yaml``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "kahon.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "default_columns": 10,
    "quick_formula_count": 2,
    "bulk_source_offset": 2,
    "format_mode": None,  # None: derive from the sheet type
    "logs_dir": "logs",
    "logging_fsync": False,
}


def load_config(project_dir: Path) -> dict[str, Any]:
    """Load configuration from ``kahon.yaml``, with defaults.

    Args:
        project_dir: Directory that may contain ``kahon.yaml``.

    Returns:
        Merged configuration dict.  Unknown keys are kept.

    Raises:
        ValueError: If the file does not hold a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config
