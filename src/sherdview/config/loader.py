from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml

from ..query.engine import MAX_IN_VALUES, MAX_PAGE_SIZE, UNIVERSAL_COLLECTION

DEFAULT_CONFIG_PATH = Path("sherdview.config.yaml")

ALLOWED_BACKENDS = ("sqlite", "firestore", "memory")

BASE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "storage": {
        "backend": "sqlite",
        "sqlite_path": "sherdview.db",
    },
    "firestore": {
        "project_id": None,
        "database": "(default)",
        "api_key": None,
        "access_token": None,
        "timeout_seconds": 20,
    },
    "query": {
        "universal_collection": UNIVERSAL_COLLECTION,
        "page_size": MAX_PAGE_SIZE,
        "max_in_values": MAX_IN_VALUES,
    },
    "logging": {
        "level": "INFO",
    },
}


def load_config(path: Path | None = None) -> Dict[str, Any]:
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    return config


def _positive_int(value: Any, name: str, ceiling: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{name}' must be an integer")
    if value < 1 or value > ceiling:
        raise ValueError(f"'{name}' must be between 1 and {ceiling}, got {value}")
    return value


def resolve_settings(config: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """
    Merge a raw config dict over the built-in defaults and validate it.
    
    Every section in BASE_DEFAULTS is always present in the result, so
    callers can index settings["query"]["page_size"] etc. without guards.
    
    Args:
        config: Raw config (e.g. from load_config). None means defaults only.
        
    Returns:
        Settings dict
        
    Raises:
        ValueError: If a section is not a mapping, the backend is unknown, or
            query limits fall outside what the backend accepts
    """
    config = config or {}
    settings: Dict[str, Any] = deepcopy(BASE_DEFAULTS)
    for section, defaults in BASE_DEFAULTS.items():
        user_section = config.get(section)
        if user_section is None:
            continue
        if not isinstance(user_section, dict):
            raise ValueError(f"Config section '{section}' must be a dictionary")
        settings[section] = {**defaults, **user_section}
    
    backend = settings["storage"]["backend"]
    if backend not in ALLOWED_BACKENDS:
        raise ValueError(f"Unknown storage backend '{backend}' (allowed: {', '.join(ALLOWED_BACKENDS)})")
    if backend == "firestore" and not settings["firestore"].get("project_id"):
        raise ValueError("Firestore backend requires 'firestore.project_id'")
    
    query = settings["query"]
    query["page_size"] = _positive_int(query["page_size"], "query.page_size", MAX_PAGE_SIZE)
    query["max_in_values"] = _positive_int(query["max_in_values"], "query.max_in_values", MAX_IN_VALUES)
    if not query.get("universal_collection"):
        raise ValueError("'query.universal_collection' must not be empty")
    
    return settings


def load_settings(path: Path | None = None) -> Dict[str, Any]:
    """
    Load and resolve settings.
    
    An explicit path must exist. Without one, the default config file is used
    when present and built-in defaults otherwise.
    """
    if path is not None:
        return resolve_settings(load_config(path))
    if DEFAULT_CONFIG_PATH.exists():
        return resolve_settings(load_config(DEFAULT_CONFIG_PATH))
    return resolve_settings(None)
