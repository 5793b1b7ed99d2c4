"""Strategy modules for confluence signals.

Includes:
- Signal and indicator state
- Confluence scoring
- Signal synthesis (levels, reasoning)
- Signal lifecycle resolution
"""

from .signal_state import (
    Indicator,
    IndicatorConfidence,
    IndicatorDirection,
    IndicatorSet,
    MarketStructure,
    Resolution,
    Signal,
    SignalConfidence,
    SignalDirection,
    SignalStatus,
    TrendDirection,
)
from .scoring import (
    ConfluenceScore,
    ScoringThresholds,
    classify_trend,
    confidence_multiplier,
    confidence_tier,
    score_confluence,
    weighted_score,
)
from .synthesizer import (
    SignalSynthesizer,
    build_reasoning,
    compute_levels,
    format_risk_reward,
    synthesize_signal,
)
from .lifecycle import (
    AgeThresholdResolutionPolicy,
    LevelResolutionPolicy,
    LifecycleManager,
    ResolutionPolicy,
    directional_pnl_pct,
)

__all__ = [
    # State
    "Indicator",
    "IndicatorConfidence",
    "IndicatorDirection",
    "IndicatorSet",
    "MarketStructure",
    "Resolution",
    "Signal",
    "SignalConfidence",
    "SignalDirection",
    "SignalStatus",
    "TrendDirection",
    # Scoring
    "ConfluenceScore",
    "ScoringThresholds",
    "classify_trend",
    "confidence_multiplier",
    "confidence_tier",
    "score_confluence",
    "weighted_score",
    # Synthesis
    "SignalSynthesizer",
    "build_reasoning",
    "compute_levels",
    "format_risk_reward",
    "synthesize_signal",
    # Lifecycle
    "AgeThresholdResolutionPolicy",
    "LevelResolutionPolicy",
    "LifecycleManager",
    "ResolutionPolicy",
    "directional_pnl_pct",
]
