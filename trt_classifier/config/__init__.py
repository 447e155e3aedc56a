from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from env_utils import env_path


_CONFIG_FILE = Path(__file__).parent / "sample.yaml"
CONFIG_ENV_VAR = "TRT_CLASSIFIER_CONFIG"


def config_path() -> Path:
    """Return the YAML file holding the sample defaults, honouring TRT_CLASSIFIER_CONFIG."""
    override = env_path(CONFIG_ENV_VAR)
    return Path(override) if override else _CONFIG_FILE


def load_sample_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load the sample configuration (engine cache path, tensor names, input geometry).

    Malformed YAML, or a document that is not a mapping, raises ValueError.
    """
    config_file = Path(path) if path is not None else config_path()
    if not config_file.exists():
        raise FileNotFoundError(f"Missing sample config: {config_file}")
    with config_file.open("r", encoding="utf-8") as stream:
        try:
            config = yaml.safe_load(stream) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed sample config {config_file}: {exc}") from exc
    if not isinstance(config, dict):
        raise ValueError(f"Sample config {config_file} must be a mapping")
    return config
