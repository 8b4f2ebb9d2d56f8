"""
Configuration Management Module

Reads config.yaml once and hands the same dict to every caller. Each
screen and service reads its own top-level section through the small
get_*_config() accessors below.

Usage:
    from core.config import get_config
    config = get_config()
    threshold = config["matching"]["distance_threshold"]
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional


CONFIG_FILENAME = "config.yaml"

# Module-level singleton, filled on first get_config()
_config_instance: Optional[Dict[str, Any]] = None


def get_project_root() -> Path:
    """
    Locate the directory holding config.yaml.

    Starts at this package and checks each parent in turn.

    Raises:
        FileNotFoundError: If no parent directory contains config.yaml.
    """
    here = Path(__file__).resolve().parent

    for directory in (here, *here.parents):
        if (directory / CONFIG_FILENAME).exists():
            return directory

    raise FileNotFoundError(
        f"No {CONFIG_FILENAME} found above {here}. "
        "Run from inside the project checkout."
    )


def resolve_path(path: str) -> Path:
    """
    Resolve a config path against the project root.

    Absolute paths are returned unchanged. Relative paths are anchored at the
    project root when one can be found, otherwise at the working directory.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    try:
        return get_project_root() / candidate
    except FileNotFoundError:
        return Path.cwd() / candidate


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse a YAML configuration file.

    Args:
        config_path: File to read. Defaults to config.yaml at the project root.

    Returns:
        The parsed mapping (an empty dict for an empty file).

    Raises:
        FileNotFoundError: The file does not exist.
        yaml.YAMLError: The file is not valid YAML.
    """
    path = Path(config_path) if config_path is not None else get_project_root() / CONFIG_FILENAME

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Return the shared configuration dict, loading it on first use.

    Args:
        reload: Re-read config.yaml even if it was already loaded.

    Example:
        timeout = get_config()["enrollment"]["smile_timeout_sec"]
    """
    global _config_instance

    if reload or _config_instance is None:
        _config_instance = load_config()

    return _config_instance


def get_section(section_name: str) -> Dict[str, Any]:
    """
    Return one top-level section, e.g. "analyzer", "storage" or "scan".

    Raises:
        KeyError: If config.yaml has no such section.
    """
    config = get_config()
    try:
        return config[section_name]
    except KeyError:
        raise KeyError(
            f"Configuration section '{section_name}' not found. "
            f"Available sections: {sorted(config)}"
        ) from None


# Per-section accessors
def get_models_config() -> Dict[str, Any]:
    """Pretrained-model asset settings."""
    return get_section("models")


def get_analyzer_config() -> Dict[str, Any]:
    return get_section("analyzer")


def get_embedder_config() -> Dict[str, Any]:
    return get_section("embedder")


def get_matching_config() -> Dict[str, Any]:
    """Distance threshold and unknown label."""
    return get_section("matching")


def get_storage_config() -> Dict[str, Any]:
    """Face store location and key."""
    return get_section("storage")


def get_enrollment_config() -> Dict[str, Any]:
    return get_section("enrollment")


def get_detection_config() -> Dict[str, Any]:
    return get_section("detection")


def get_scan_config() -> Dict[str, Any]:
    return get_section("scan")


def get_ui_config() -> Dict[str, Any]:
    """Gradio server settings."""
    return get_section("ui")
