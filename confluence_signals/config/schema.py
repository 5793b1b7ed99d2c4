"""Pydantic configuration schemas with validation.

All engine parameters are defined here with cross-field validation rules.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ResolutionPolicyKind(str, Enum):
    """Pending signal resolution policy."""

    LEVELS = "levels"  # Signal's own stop-loss / take-profit
    AGE_THRESHOLD = "age_threshold"  # Fixed % moves on aged signals


class PriceSourceKind(str, Enum):
    """Price feed."""

    BINANCE = "binance"
    SYNTHETIC = "synthetic"
    STATIC = "static"


class IndicatorSourceKind(str, Enum):
    """Indicator producer."""

    TECHNICAL = "technical"
    FIXTURE = "fixture"


class StorageKind(str, Enum):
    """Signal store backend."""

    SQLITE = "sqlite"
    MEMORY = "memory"


class SchedulerConfig(BaseModel):
    """Cycle cadence and cooldown."""

    interval_seconds: float = Field(3600, ge=1, description="Seconds between cycles")
    cooldown_hours: float = Field(4.0, ge=0, description="Per-symbol cooldown after a pending signal")
    run_on_start: bool = Field(True, description="Run a cycle immediately on start")


class ScoringConfig(BaseModel):
    """Confluence gates and confidence tiers."""

    min_confluence: int = Field(5, ge=1, description="Minimum aligned indicators")
    dominance_ratio: float = Field(1.8, gt=1.0, description="Winning/losing weight ratio")
    very_high_confluence: int = Field(7, ge=1, description="Count for VERY_HIGH confidence")
    very_high_ratio: float = Field(2.5, gt=1.0, description="Ratio for VERY_HIGH confidence")
    high_confluence: int = Field(6, ge=1, description="Count for HIGH confidence")
    high_ratio: float = Field(2.2, gt=1.0, description="Ratio for HIGH confidence")
    max_strength: int = Field(95, ge=1, le=100, description="Strength cap")

    @model_validator(mode="after")
    def validate_tiers(self) -> "ScoringConfig":
        """Tiers must be ordered from strictest to loosest."""
        if not self.very_high_confluence >= self.high_confluence >= self.min_confluence:
            raise ValueError(
                "Confluence tiers must satisfy very_high_confluence >= high_confluence >= min_confluence"
            )
        if not self.very_high_ratio >= self.high_ratio >= self.dominance_ratio:
            raise ValueError("Ratio tiers must satisfy very_high_ratio >= high_ratio >= dominance_ratio")
        return self


class LevelsConfig(BaseModel):
    """Stop-loss and take-profit distance ranges (percent of entry)."""

    stop_loss_pct_min: float = Field(1.5, gt=0, le=50)
    stop_loss_pct_max: float = Field(2.5, gt=0, le=50)
    take_profit_pct_min: float = Field(3.5, gt=0, le=100)
    take_profit_pct_max: float = Field(5.5, gt=0, le=100)

    @model_validator(mode="after")
    def validate_ranges(self) -> "LevelsConfig":
        """Ensure each range is well-formed."""
        if self.stop_loss_pct_min > self.stop_loss_pct_max:
            raise ValueError("stop_loss_pct_min must be <= stop_loss_pct_max")
        if self.take_profit_pct_min > self.take_profit_pct_max:
            raise ValueError("take_profit_pct_min must be <= take_profit_pct_max")
        return self


class ResolutionConfig(BaseModel):
    """Pending signal resolution."""

    policy: ResolutionPolicyKind = Field(ResolutionPolicyKind.LEVELS)
    min_age_minutes: float = Field(60, ge=0, description="Age gate for age_threshold policy")
    target_pct: float = Field(5.0, gt=0, description="Favourable move for age_threshold win")
    stop_pct: float = Field(3.0, gt=0, description="Adverse move for age_threshold loss")
    breakeven_tolerance_pct: float = Field(0.1, ge=0, description="Manual close breakeven band")


class PriceSourceConfig(BaseModel):
    """Price feed configuration."""

    kind: PriceSourceKind = Field(PriceSourceKind.BINANCE)
    quote_asset: str = Field("USDT", description="Quote asset appended to symbols")
    base_url: str = Field("https://api.binance.com")
    max_retries: int = Field(3, ge=1, le=10)
    timeout_seconds: float = Field(10.0, gt=0)
    static_prices: Dict[str, float] = Field(default_factory=dict, description="Prices for kind=static")

    @field_validator("quote_asset")
    @classmethod
    def upper_quote(cls, v: str) -> str:
        return v.upper().strip()

    @field_validator("static_prices")
    @classmethod
    def upper_static(cls, v: Dict[str, float]) -> Dict[str, float]:
        return {k.upper().strip(): p for k, p in v.items()}


class IndicatorSourceConfig(BaseModel):
    """Indicator producer configuration."""

    kind: IndicatorSourceKind = Field(IndicatorSourceKind.TECHNICAL)
    history_bars: int = Field(250, ge=200, le=1000, description="Bars fetched per evaluation")
    interval: str = Field("1h", description="Bar interval")
    fixtures_path: Optional[str] = Field(None, description="YAML indicator fixtures (kind: fixture)")


class StorageConfig(BaseModel):
    """Signal store configuration."""

    kind: StorageKind = Field(StorageKind.SQLITE)
    db_path: str = Field("data/signals.db")


class ApiConfig(BaseModel):
    """HTTP query surface."""

    host: str = Field("127.0.0.1")
    port: int = Field(8000, ge=1, le=65535)


class EngineConfig(BaseModel):
    """Root engine configuration."""

    name: str = Field("Confluence_Signals", description="Engine name")
    version: str = Field("1.0", description="Configuration version")

    symbols: List[str] = Field(..., description="Monitored base assets")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    levels: LevelsConfig = Field(default_factory=LevelsConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    price_source: PriceSourceConfig = Field(default_factory=PriceSourceConfig)
    indicator_source: IndicatorSourceConfig = Field(default_factory=IndicatorSourceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    random_seed: int = Field(42, description="Seed for level draws and synthetic data")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_to_file: bool = Field(True, description="Write logs to file")
    log_dir: str = Field("logs", description="Log directory")

    @field_validator("symbols")
    @classmethod
    def normalize_symbols(cls, v: List[str]) -> List[str]:
        """Uppercase, strip and deduplicate (order preserved)."""
        symbols: List[str] = []
        for raw in v:
            symbol = raw.upper().strip()
            if not symbol:
                raise ValueError("Symbol cannot be empty")
            if symbol not in symbols:
                symbols.append(symbol)
        if not symbols:
            raise ValueError("At least one symbol must be configured")
        return symbols

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @model_validator(mode="after")
    def validate_engine(self) -> "EngineConfig":
        """Cross-field validation."""
        if self.price_source.kind == PriceSourceKind.STATIC:
            missing = [s for s in self.symbols if s not in self.price_source.static_prices]
            if missing:
                raise ValueError(f"price_source.static_prices missing symbols: {missing}")

        if self.indicator_source.kind == IndicatorSourceKind.TECHNICAL and (
            self.price_source.kind == PriceSourceKind.STATIC
        ):
            raise ValueError("Technical indicators need a history provider (binance or synthetic)")

        if self.indicator_source.kind == IndicatorSourceKind.FIXTURE and not self.indicator_source.fixtures_path:
            raise ValueError("Fixture indicators need indicator_source.fixtures_path")

        return self
