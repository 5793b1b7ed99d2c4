"""Configuration loader with YAML merging and hashing."""

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger
from pydantic import ValidationError
from ruamel.yaml import YAML

from .schema import EngineConfig

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries (override takes precedence).

    Examples:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})
        {'a': {'b': 1, 'c': 3}}
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping (empty file yields an empty dict).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If the document is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = YAML(typ="safe").load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at top level of {path}, got {type(data).__name__}")
    return data


def load_config(
    path: Optional[Union[Path, str]] = None,
    use_defaults: bool = True,
) -> EngineConfig:
    """Load engine configuration, merged over the packaged defaults.

    Args:
        path: User configuration file. If None, defaults only.
        use_defaults: Whether to merge with defaults.yaml.

    Returns:
        Validated EngineConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    raw_config: Dict[str, Any] = {}
    if use_defaults and DEFAULTS_PATH.exists():
        raw_config = load_yaml(DEFAULTS_PATH)
        logger.debug("Loaded defaults configuration")

    if path is not None:
        path = Path(path)
        raw_config = deep_merge(raw_config, load_yaml(path))
        logger.debug(f"Merged user configuration from {path}")

    try:
        config = EngineConfig(**raw_config)
    except ValidationError as e:
        raise ValueError(f"Config validation failed: {e}") from e

    logger.info(f"Loaded configuration: {config.name} v{config.version} ({len(config.symbols)} symbols)")
    return config


def get_default_config() -> Path:
    """Path to the packaged defaults.yaml.

    Raises:
        FileNotFoundError: If defaults.yaml not found.
    """
    if not DEFAULTS_PATH.exists():
        raise FileNotFoundError(f"Default config not found: {DEFAULTS_PATH}")
    return DEFAULTS_PATH


def resolved_config_hash(config: EngineConfig) -> str:
    """Stable hash of a configuration (first 16 hex chars of SHA256)."""
    canonical = json.dumps(config.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
    logger.debug(f"Config hash: {digest}")
    return digest


def save_config(config: EngineConfig, path: Union[Path, str]) -> None:
    """Write configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    yaml = YAML()
    yaml.default_flow_style = False
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(config.model_dump(mode="json"), f)

    logger.info(f"Saved configuration to {path}")
