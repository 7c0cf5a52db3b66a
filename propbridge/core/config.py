"""
Runtime settings for the property codec.

Settings come from an optional YAML or JSON mapping, then from environment
overrides:

    unsupported_shapes: raise        # raise | ignore
    namespace_collisions: warn       # overwrite | warn | error
    dedupe_base_labels: false
    default_label_title: Info
    default_weight: 100

Environment variables:
    PROPBRIDGE_CONFIG_FILE             path to the settings file (optional)
    PROPBRIDGE_UNSUPPORTED_SHAPES
    PROPBRIDGE_NAMESPACE_COLLISIONS
    PROPBRIDGE_DEDUPE_BASE_LABELS
    PROPBRIDGE_DEFAULT_WEIGHT
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError

_log = logging.getLogger("propbridge.config")

_ENV_KEYS = {
    "unsupported_shapes": "PROPBRIDGE_UNSUPPORTED_SHAPES",
    "namespace_collisions": "PROPBRIDGE_NAMESPACE_COLLISIONS",
    "dedupe_base_labels": "PROPBRIDGE_DEDUPE_BASE_LABELS",
    "default_weight": "PROPBRIDGE_DEFAULT_WEIGHT",
}


class Settings(BaseModel):
    unsupported_shapes: Literal["raise", "ignore"] = "raise"
    namespace_collisions: Literal["overwrite", "warn", "error"] = "warn"
    dedupe_base_labels: bool = False
    default_label_title: str = "Info"
    default_weight: int = 100


_SETTINGS: Optional[Settings] = None
_SETTINGS_LOCK = threading.Lock()


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read settings file %s: %s", path, exc)
        return {}

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse settings file %s as JSON or YAML: %s", path, exc)
            return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        _log.warning("Settings file %s must be a mapping, got %s", path, type(data).__name__)
        return {}

    _log.info("Loaded settings from %s", path)
    return data


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, env_key in _ENV_KEYS.items():
        v = (os.getenv(env_key) or "").strip()
        if not v:
            continue
        if key == "dedupe_base_labels":
            out[key] = v.lower() in ("1", "true", "yes")
        else:
            out[key] = v.lower() if key != "default_weight" else v
    return out


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("PROPBRIDGE_CONFIG_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Build Settings from the file (if any) and the environment.

    Unknown keys and values that fail validation are skipped with a warning,
    the remaining ones still apply.
    """
    raw: Dict[str, Any] = {}
    resolved = _resolve_path(path)
    if resolved is not None:
        if resolved.exists():
            raw.update(_read_file(resolved))
        else:
            _log.warning("Settings file %s does not exist, using defaults", resolved)
    raw.update(_env_overrides())

    accepted: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in Settings.model_fields:
            _log.warning("Ignoring unknown setting %r", key)
            continue
        try:
            Settings(**{key: value})
        except ValidationError as exc:
            _log.warning("Ignoring invalid value for setting %r: %s", key, exc.errors()[0].get("msg"))
            continue
        accepted[key] = value

    return Settings(**accepted)


def get_settings() -> Settings:
    global _SETTINGS
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            _SETTINGS = load_settings()
        return _SETTINGS


def reset_settings() -> None:
    """Test helper: forget cached settings so the next call reloads them."""
    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
