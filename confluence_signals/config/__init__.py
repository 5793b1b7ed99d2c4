"""Configuration management for the signal engine.

Handles loading, validation, merging, and hashing of engine parameters.
"""

from .schema import (
    EngineConfig,
    SchedulerConfig,
    ScoringConfig,
    LevelsConfig,
    ResolutionConfig,
    PriceSourceConfig,
    IndicatorSourceConfig,
    StorageConfig,
    ApiConfig,
    ResolutionPolicyKind,
    PriceSourceKind,
    IndicatorSourceKind,
    StorageKind,
)
from .loader import (
    load_config,
    get_default_config,
    resolved_config_hash,
    save_config,
    deep_merge,
)

__all__ = [
    # Main config
    "EngineConfig",
    # Component configs
    "SchedulerConfig",
    "ScoringConfig",
    "LevelsConfig",
    "ResolutionConfig",
    "PriceSourceConfig",
    "IndicatorSourceConfig",
    "StorageConfig",
    "ApiConfig",
    # Enums
    "ResolutionPolicyKind",
    "PriceSourceKind",
    "IndicatorSourceKind",
    "StorageKind",
    # Loader functions
    "load_config",
    "get_default_config",
    "resolved_config_hash",
    "save_config",
    "deep_merge",
]
