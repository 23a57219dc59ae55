from __future__ import annotations

import configparser
import json
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from platformdirs import user_config_path


APP_NAME = "pydepot"
CONFIG_SECTION = "python"
CONFIG_EXTRA_PATHS_KEY = "extra_paths"
CONFIG_CACHED_INTERPRETERS_KEY = "cached_interpreters"


def _config_file() -> Path:
    directory = Path(user_config_path(APP_NAME, ensure_exists=True))
    directory.mkdir(parents=True, exist_ok=True)
    return directory / "settings.ini"


def load_python_search_paths() -> List[str]:
    config = _read_config()
    if config is None or CONFIG_SECTION not in config:
        return []
    section = config[CONFIG_SECTION]
    raw_value = section.get(CONFIG_EXTRA_PATHS_KEY, "")
    if not raw_value:
        return []
    return [item for item in (part.strip() for part in raw_value.split(os.pathsep)) if item]


def save_python_search_paths(paths: Iterable[str]) -> None:
    normalized = []
    for path in paths:
        if not path:
            continue
        stripped = str(path).strip()
        if not stripped:
            continue
        normalized.append(stripped)
    config = _load_or_create()
    if normalized:
        config[CONFIG_SECTION][CONFIG_EXTRA_PATHS_KEY] = os.pathsep.join(normalized)
    elif CONFIG_EXTRA_PATHS_KEY in config[CONFIG_SECTION]:
        del config[CONFIG_SECTION][CONFIG_EXTRA_PATHS_KEY]
    _write_config(config)


def add_python_search_path(path: str) -> None:
    current = load_python_search_paths()
    normalized = str(path).strip()
    if not normalized or normalized in current:
        return
    current.append(normalized)
    save_python_search_paths(current)


def load_cached_interpreters() -> List[Tuple[str, str]]:
    config = _read_config()
    if config is None or CONFIG_SECTION not in config:
        return []
    raw_value = config[CONFIG_SECTION].get(CONFIG_CACHED_INTERPRETERS_KEY)
    if not raw_value:
        return []
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError:
        return []
    interpreters: List[Tuple[str, str]] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        version = item.get("version")
        path = item.get("path")
        if isinstance(version, str) and isinstance(path, str) and version.strip() and path.strip():
            interpreters.append((version.strip(), path.strip()))
    return interpreters


def save_cached_interpreters(items: Sequence[Tuple[str, str]]) -> None:
    normalized: List[dict] = []
    seen: set[str] = set()
    for version, path in items:
        clean_version = str(version).strip()
        clean_path = str(path).strip()
        if not clean_version or not clean_path or clean_path in seen:
            continue
        seen.add(clean_path)
        normalized.append({"version": clean_version, "path": clean_path})
    config = _load_or_create()
    if normalized:
        config[CONFIG_SECTION][CONFIG_CACHED_INTERPRETERS_KEY] = json.dumps(normalized)
    elif CONFIG_CACHED_INTERPRETERS_KEY in config[CONFIG_SECTION]:
        del config[CONFIG_SECTION][CONFIG_CACHED_INTERPRETERS_KEY]
    _write_config(config)


def _load_or_create() -> configparser.ConfigParser:
    config = _read_config()
    if config is None:
        config = configparser.ConfigParser()
    if CONFIG_SECTION not in config:
        config[CONFIG_SECTION] = {}
    return config


def _read_config() -> Optional[configparser.ConfigParser]:
    file_path = _config_file()
    if not file_path.exists():
        return None
    config = configparser.ConfigParser()
    config.read(file_path)
    return config


def _write_config(config: configparser.ConfigParser) -> None:
    file_path = _config_file()
    with file_path.open("w", encoding="utf-8") as handle:
        config.write(handle)
