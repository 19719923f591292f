"""Karmic dice settings (history window, trigger threshold, bias strength, affinity)."""

import json
from pathlib import Path
from typing import Any

from karmic_dice.models import KarmicSettings

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = KarmicSettings().model_dump(mode="json")

_SCALAR_KEYS = tuple(k for k in _CONFIG_DEFAULTS if k != "affinity_map")


def _config_path() -> Path:
    return data_dir() / "config.json"


def _read_stored() -> dict[str, Any]:
    path = _config_path()
    if not path.is_file():
        return {}
    try:
        stored = json.loads(path.read_text())
    except json.JSONDecodeError:
        return {}
    return stored if isinstance(stored, dict) else {}


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values.

    Stored values are returned as written; `get_settings()` validates them.
    """
    config: dict[str, Any] = json.loads(json.dumps(_CONFIG_DEFAULTS))
    stored = _read_stored()
    for key in _SCALAR_KEYS:
        if key in stored:
            config[key] = stored[key]
    if isinstance(stored.get("affinity_map"), dict):
        config["affinity_map"].update(stored["affinity_map"])
    return config


def get_settings() -> KarmicSettings:
    """Validated settings; invalid stored values fall back to defaults."""
    return KarmicSettings.model_validate(get_config())


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    `affinity_map` is merged per actor; an actor set to "default" (or null)
    loses its override. Unknown keys are ignored.
    """
    config = get_config()
    for key in _SCALAR_KEYS:
        if key in fields:
            config[key] = fields[key]
    if isinstance(fields.get("affinity_map"), dict):
        for actor_id, value in fields["affinity_map"].items():
            if value in (None, "", "default"):
                config["affinity_map"].pop(actor_id, None)
            else:
                config["affinity_map"][actor_id] = value
    _config_path().write_text(json.dumps(config, indent=2))
    return config
