"""Build engine components from an EngineConfig."""

from dataclasses import dataclass
from datetime import timedelta

from loguru import logger

from ..config.schema import (
    EngineConfig,
    IndicatorSourceKind,
    PriceSourceKind,
    ResolutionPolicyKind,
    StorageKind,
)
from ..data import BinancePriceSource, StaticPriceSource, SyntheticMarket
from ..errors import ConfigurationError
from ..indicators import FixtureIndicatorSource, TechnicalIndicatorSource
from ..storage import InMemorySignalStore, SQLiteSignalStore
from ..storage.base import SignalStore
from ..strategy.lifecycle import (
    AgeThresholdResolutionPolicy,
    LevelResolutionPolicy,
    LifecycleManager,
    ResolutionPolicy,
)
from ..strategy.scoring import ScoringThresholds
from ..strategy.synthesizer import SignalSynthesizer
from .cycle import SignalCycle
from .scheduler import CycleScheduler


@dataclass
class Engine:
    """Wired components sharing one store."""

    config: EngineConfig
    store: SignalStore
    lifecycle: LifecycleManager
    cycle: SignalCycle
    scheduler: CycleScheduler

    def close(self) -> None:
        self.scheduler.stop()
        self.store.close()


def build_store(config: EngineConfig) -> SignalStore:
    if config.storage.kind == StorageKind.MEMORY:
        return InMemorySignalStore()
    return SQLiteSignalStore(config.storage.db_path)


def build_policy(config: EngineConfig) -> ResolutionPolicy:
    resolution = config.resolution
    if resolution.policy == ResolutionPolicyKind.AGE_THRESHOLD:
        return AgeThresholdResolutionPolicy(
            min_age=timedelta(minutes=resolution.min_age_minutes),
            target_pct=resolution.target_pct,
            stop_pct=resolution.stop_pct,
        )
    return LevelResolutionPolicy()


def build_thresholds(config: EngineConfig) -> ScoringThresholds:
    return ScoringThresholds(**config.scoring.model_dump())


def build_sources(config: EngineConfig):
    """Return (price_source, indicator_source)."""
    ps = config.price_source
    if ps.kind == PriceSourceKind.BINANCE:
        price_source = BinancePriceSource(
            quote_asset=ps.quote_asset,
            base_url=ps.base_url,
            max_retries=ps.max_retries,
            timeout=ps.timeout_seconds,
            interval=config.indicator_source.interval,
        )
    elif ps.kind == PriceSourceKind.SYNTHETIC:
        price_source = SyntheticMarket(seed=config.random_seed)
    else:
        price_source = StaticPriceSource(ps.static_prices)

    if config.indicator_source.kind == IndicatorSourceKind.TECHNICAL:
        if isinstance(price_source, StaticPriceSource):
            raise ConfigurationError("Technical indicators need a history provider")
        indicator_source = TechnicalIndicatorSource(
            price_source, bars=config.indicator_source.history_bars
        )
    else:
        indicator_source = FixtureIndicatorSource.from_yaml(config.indicator_source.fixtures_path)

    return price_source, indicator_source


def build_engine(config: EngineConfig, store: SignalStore = None) -> Engine:
    """Wire store, sources, synthesizer, lifecycle, cycle and scheduler."""
    store = store if store is not None else build_store(config)
    price_source, indicator_source = build_sources(config)

    lifecycle = LifecycleManager(
        store,
        policy=build_policy(config),
        breakeven_tolerance_pct=config.resolution.breakeven_tolerance_pct,
    )
    levels = config.levels
    synthesizer = SignalSynthesizer(
        stop_loss_pct=(levels.stop_loss_pct_min, levels.stop_loss_pct_max),
        take_profit_pct=(levels.take_profit_pct_min, levels.take_profit_pct_max),
        seed=config.random_seed,
    )
    cycle = SignalCycle(
        symbols=config.symbols,
        price_source=price_source,
        indicator_source=indicator_source,
        store=store,
        synthesizer=synthesizer,
        lifecycle=lifecycle,
        cooldown=timedelta(hours=config.scheduler.cooldown_hours),
        thresholds=build_thresholds(config),
    )
    scheduler = CycleScheduler(
        cycle,
        interval_seconds=config.scheduler.interval_seconds,
        run_on_start=config.scheduler.run_on_start,
    )

    logger.info(
        f"Engine built: {len(config.symbols)} symbols, price={config.price_source.kind.value}, "
        f"indicators={config.indicator_source.kind.value}, store={config.storage.kind.value}, "
        f"policy={lifecycle.policy.name}"
    )
    return Engine(config, store, lifecycle, cycle, scheduler)
