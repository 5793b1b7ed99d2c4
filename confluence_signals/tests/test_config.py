"""Test configuration loading and validation."""

import pytest
from pydantic import ValidationError

from confluence_signals.config import (
    EngineConfig,
    LevelsConfig,
    PriceSourceKind,
    ResolutionPolicyKind,
    ScoringConfig,
    deep_merge,
    get_default_config,
    load_config,
    resolved_config_hash,
    save_config,
)


class TestScoringConfig:
    """Test scoring threshold validation."""

    def test_defaults(self):
        config = ScoringConfig()
        assert config.min_confluence == 5
        assert config.dominance_ratio == 1.8
        assert config.max_strength == 95

    def test_tier_order_enforced(self):
        with pytest.raises(ValidationError, match="very_high_confluence >= high_confluence"):
            ScoringConfig(high_confluence=8)

    def test_ratio_order_enforced(self):
        with pytest.raises(ValidationError, match="very_high_ratio >= high_ratio"):
            ScoringConfig(high_ratio=1.5)


class TestLevelsConfig:
    def test_range_order(self):
        with pytest.raises(ValidationError, match="stop_loss_pct_min"):
            LevelsConfig(stop_loss_pct_min=3.0, stop_loss_pct_max=2.0)

    def test_degenerate_range_allowed(self):
        config = LevelsConfig(take_profit_pct_min=4.0, take_profit_pct_max=4.0)
        assert config.take_profit_pct_min == config.take_profit_pct_max


class TestEngineConfig:
    """Test root configuration validation."""

    def test_symbols_normalized(self):
        config = EngineConfig(symbols=["btc", " ETH ", "BTC"])
        assert config.symbols == ["BTC", "ETH"]

    def test_empty_symbols_rejected(self):
        with pytest.raises(ValidationError, match="At least one symbol"):
            EngineConfig(symbols=[])

    def test_log_level(self):
        assert EngineConfig(symbols=["BTC"], log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            EngineConfig(symbols=["BTC"], log_level="verbose")

    def test_static_prices_must_cover_symbols(self):
        with pytest.raises(ValidationError, match="missing symbols"):
            EngineConfig(
                symbols=["BTC", "ETH"],
                price_source={"kind": "static", "static_prices": {"btc": 1.0}},
                indicator_source={"kind": "fixture", "fixtures_path": "fixtures.yaml"},
            )

    def test_fixture_needs_path(self):
        with pytest.raises(ValidationError, match="fixtures_path"):
            EngineConfig(symbols=["BTC"], price_source={"kind": "synthetic"}, indicator_source={"kind": "fixture"})

    def test_technical_needs_history(self):
        with pytest.raises(ValidationError, match="history provider"):
            EngineConfig(
                symbols=["BTC"],
                price_source={"kind": "static", "static_prices": {"BTC": 1.0}},
            )


class TestLoader:
    """Test YAML loading and merging."""

    def test_defaults_load(self):
        config = load_config()

        assert len(config.symbols) == 15
        assert config.symbols[0] == "BTC"
        assert config.scheduler.interval_seconds == 3600
        assert config.scheduler.cooldown_hours == 4
        assert config.resolution.policy == ResolutionPolicyKind.LEVELS
        assert config.price_source.kind == PriceSourceKind.BINANCE

    def test_default_path_exists(self):
        assert get_default_config().name == "defaults.yaml"

    def test_user_override_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "symbols: [SOL]\n"
            "scheduler:\n"
            "  cooldown_hours: 2\n"
            "resolution:\n"
            "  policy: age_threshold\n"
        )

        config = load_config(path)

        assert config.symbols == ["SOL"]
        assert config.scheduler.cooldown_hours == 2
        assert config.scheduler.interval_seconds == 3600
        assert config.resolution.policy == ResolutionPolicyKind.AGE_THRESHOLD

    def test_invalid_raises_value_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("scoring:\n  dominance_ratio: 0.5\n")

        with pytest.raises(ValueError, match="Config validation failed"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_save_roundtrip_hash(self, tmp_path):
        config = load_config()
        path = tmp_path / "saved.yaml"
        save_config(config, path)

        reloaded = load_config(path, use_defaults=False)

        assert resolved_config_hash(reloaded) == resolved_config_hash(config)

    def test_hash_changes_with_config(self):
        base = load_config()
        changed = base.model_copy(update={"random_seed": 7})

        assert len(resolved_config_hash(base)) == 16
        assert resolved_config_hash(base) != resolved_config_hash(changed)


def test_deep_merge():
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = deep_merge(base, {"a": {"c": 4}, "e": 5})

    assert merged == {"a": {"b": 1, "c": 4}, "d": 3, "e": 5}
    assert base["a"]["c"] == 2
