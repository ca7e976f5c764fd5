"""Runtime configuration for Anchor - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

import yaml

from anchor.utils.constants import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_WORKERS, ENV_PREFIX
from anchor.utils.logging import logger

CONFIG_FILE_NAMES = (
    ".anchor.yml",
    ".anchor.yaml",
    "anchor.config.yml",
    "anchor.config.yaml",
    ".anchor.json",
    "anchor.config.json",
)

SCANNER_NAMES = ("secrets", "sast", "dependencies", "iac", "dockerfile")

DEFAULTS = {
    "scan": {
        "severity": "low",
        "fail_on": "high",
        "ignore": [],
    },
    "scanners": {name: True for name in SCANNER_NAMES},
    "limits": {
        "max_file_size": DEFAULT_MAX_FILE_SIZE,
        "max_workers": DEFAULT_MAX_WORKERS,
    },
    # rule id -> "off" | "warning" | "error"
    "rules": {},
}

# Flat keys accepted at the top level of a config file
_FLAT_SCAN_KEYS = {
    "severity": "severity",
    "failOn": "fail_on",
    "fail_on": "fail_on",
    "ignore": "ignore",
}

# Scanner aliases used by older config files and CLI flags
_SCANNER_ALIASES = {
    "deps": "dependencies",
    "docker": "dockerfile",
}


def find_config_file(root: str | Path = ".", explicit: str | Path | None = None) -> Path | None:
    """Locate the config file: the explicit path, else the first known name in root."""
    if explicit:
        path = Path(explicit)
        if not path.is_absolute() and not path.exists():
            path = Path(root) / path
        return path if path.is_file() else None

    for name in CONFIG_FILE_NAMES:
        candidate = Path(root) / name
        if candidate.is_file():
            return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping at the top level, got {type(data).__name__}")
    return data


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def _merge_user_config(cfg: dict[str, Any], user: dict[str, Any]) -> None:
    """Fold a parsed config file into cfg, accepting flat and sectioned keys."""
    for key, target in _FLAT_SCAN_KEYS.items():
        if key in user:
            value = user[key]
            cfg["scan"][target] = _as_list(value) if target == "ignore" else str(value)

    scan = user.get("scan")
    if isinstance(scan, dict):
        for key, value in scan.items():
            target = _FLAT_SCAN_KEYS.get(key, key)
            if target == "ignore":
                cfg["scan"]["ignore"] = _as_list(value)
            elif target in cfg["scan"]:
                cfg["scan"][target] = str(value)

    scanners = user.get("scanners")
    if isinstance(scanners, dict):
        for key, value in scanners.items():
            name = _SCANNER_ALIASES.get(key, key)
            if name in cfg["scanners"] and isinstance(value, bool):
                cfg["scanners"][name] = value

    limits = user.get("limits")
    if isinstance(limits, dict):
        for key, value in limits.items():
            if key in cfg["limits"] and isinstance(value, int) and not isinstance(value, bool):
                cfg["limits"][key] = value

    rules = user.get("rules")
    if isinstance(rules, dict):
        for rule_id, level in rules.items():
            if isinstance(level, bool):
                # YAML 1.1 reads a bare `off` as False
                level = "error" if level else "off"
            cfg["rules"][str(rule_id)] = str(level).lower()


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    for section in ("scan", "scanners", "limits"):
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            if env_var not in os.environ:
                continue

            value = os.environ[env_var]
            default_value = cfg[section][key]
            try:
                if isinstance(default_value, bool):
                    cfg[section][key] = value.strip().lower() in ("1", "true", "yes", "on")
                elif isinstance(default_value, int):
                    cfg[section][key] = int(value)
                elif isinstance(default_value, list):
                    cfg[section][key] = _as_list(value)
                else:
                    cfg[section][key] = value
            except ValueError as e:
                logger.warning(f"Invalid value for environment variable {env_var}: '{value}' - {e}")
                logger.info(f"Using default value: {cfg[section][key]}")


def load_runtime_config(root: str | Path = ".", config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load runtime configuration from the project config file and environment.

    Config priority (highest to lowest):
    1. Environment variables (ANCHOR_<SECTION>_<KEY>)
    2. Config file (explicit path, or the first of CONFIG_FILE_NAMES in root)
    3. Built-in defaults

    Args:
        root: Directory to look for a config file in
        config_path: Explicit config file path (overrides discovery)

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = find_config_file(root, config_path)
    if config_path and path is None:
        logger.warning(f"Config file not found: {config_path}")

    if path is not None:
        try:
            _merge_user_config(cfg, _read_config_file(path))
            logger.debug(f"Loaded config from {path}")
        except (json.JSONDecodeError, yaml.YAMLError, OSError, ValueError) as e:
            logger.warning(f"Could not load config file from {path}: {e}")
            logger.info("Continuing with default configuration")
            cfg = copy.deepcopy(DEFAULTS)

    _apply_env_overrides(cfg)

    return cfg


def disabled_rules(cfg: dict[str, Any]) -> set[str]:
    """Rule ids switched off in the config."""
    return {rule_id for rule_id, level in cfg.get("rules", {}).items() if level == "off"}
