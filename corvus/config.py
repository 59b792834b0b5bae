"""
Configuration management for Corvus.
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG = {
    "llm": {
        "provider": None,  # anthropic, openai, google, groq, ollama (None = auto-detect)
        "model": None,
        "temperature": 0.7,
    },
    "chat": {
        "max_turns": 15,
        "max_cost": 0.50,
        "save_history": True,
    },
    "ui": {
        "colors": True,
        "privacy_warning": True,
    },
}

CONFIG_DIR = Path.home() / ".corvus"


class ConfigError(Exception):
    """Unreadable config file or a key that does not exist."""


def _merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def coerce_value(raw: str) -> Any:
    """Turn a command-line string into a bool, int, float, None or str."""
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "none"):
        return None
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            pass
    return raw


class ConfigManager:
    """YAML config file deep-merged over DEFAULT_CONFIG, addressed by dotted keys."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else CONFIG_DIR / "config.yaml"
        self._data = self._load()

    def _load(self) -> Dict:
        if not self.path.exists():
            return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(self.path) as f:
                user_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigError(f"Could not read {self.path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigError(f"{self.path} must contain a mapping")
        return _merge(DEFAULT_CONFIG, user_config)

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.dump(self._data, f, default_flow_style=False, sort_keys=False)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(f"'{part}' in '{key}' is not a section")
            node = child
        node[parts[-1]] = value
        self.save()

    def delete(self, key: str):
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            node = node.get(part)
            if not isinstance(node, dict):
                raise ConfigError(f"No such key: {key}")
        if parts[-1] not in node:
            raise ConfigError(f"No such key: {key}")
        del node[parts[-1]]
        self.save()

    def all(self) -> Dict:
        return copy.deepcopy(self._data)

    def reset(self):
        self._data = copy.deepcopy(DEFAULT_CONFIG)
        self.save()
