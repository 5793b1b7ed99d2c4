"""Confluence scoring engine for indicator judgments.

Aggregates bullish and bearish indicators into confidence-weighted totals
and applies count and dominance thresholds to decide whether a BUY or
SELL signal fires.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from loguru import logger

from .signal_state import (
    Indicator,
    IndicatorConfidence,
    IndicatorSet,
    MarketStructure,
    SignalConfidence,
    SignalDirection,
    TrendDirection,
)


CONFIDENCE_MULTIPLIERS = {
    IndicatorConfidence.HIGH: 1.2,
    IndicatorConfidence.MEDIUM: 1.0,
    IndicatorConfidence.LOW: 0.7,
}


@dataclass(frozen=True)
class ScoringThresholds:
    """Confluence gates and confidence tier cut-offs.

    Attributes:
        min_confluence: Minimum indicator count on the winning side
        dominance_ratio: Winning weight must exceed losing weight times this
        very_high_confluence: Count required for VERY_HIGH confidence
        very_high_ratio: Weight ratio required for VERY_HIGH confidence
        high_confluence: Count required for HIGH confidence
        high_ratio: Weight ratio required for HIGH confidence
        max_strength: Cap applied to the strength score
    """

    min_confluence: int = 5
    dominance_ratio: float = 1.8
    very_high_confluence: int = 7
    very_high_ratio: float = 2.5
    high_confluence: int = 6
    high_ratio: float = 2.2
    max_strength: int = 95


@dataclass(frozen=True)
class ConfluenceScore:
    """Scorer verdict.

    ``direction`` is None when confluence is insufficient; in that case
    ``strength`` is 0 and ``confidence`` is None.
    """

    direction: Optional[SignalDirection]
    strength: int
    confidence: Optional[SignalConfidence]
    bullish_confluence: int
    bearish_confluence: int
    bullish_weight: float
    bearish_weight: float
    trend_direction: TrendDirection
    market_structure: MarketStructure
    indicators: Tuple[Indicator, ...]

    @property
    def fired(self) -> bool:
        return self.direction is not None

    @property
    def total_weight(self) -> float:
        return self.bullish_weight + self.bearish_weight

    @property
    def indicator_count(self) -> int:
        return len(self.indicators)

    @property
    def winning_confluence(self) -> int:
        if self.direction == SignalDirection.SELL:
            return self.bearish_confluence
        return self.bullish_confluence

    @property
    def winning_weight(self) -> float:
        if self.direction == SignalDirection.SELL:
            return self.bearish_weight
        return self.bullish_weight


def confidence_multiplier(confidence: IndicatorConfidence) -> float:
    """Weight multiplier for an indicator confidence tier."""
    return CONFIDENCE_MULTIPLIERS[IndicatorConfidence(confidence)]


def weighted_score(indicators: Iterable[Indicator]) -> float:
    """Sum of weight × confidence multiplier.

    Examples:
        >>> weighted_score([
        ...     Indicator('MACD', 'Bullish Crossover', 'bullish', 20, 'high'),
        ...     Indicator('Volume', 'Above Average', 'bullish', 12, 'medium'),
        ... ])
        36.0
    """
    return sum(i.weight * confidence_multiplier(i.confidence) for i in indicators)


def classify_trend(
    higher_highs_lows: bool,
    lower_highs_lows: bool,
) -> Tuple[TrendDirection, MarketStructure]:
    """Map the two structure judgments to a trend and structure label.

    Higher highs and higher lows take precedence over lower highs and
    lower lows when both are reported.
    """
    if higher_highs_lows:
        return TrendDirection.UPTREND, MarketStructure.BULLISH_STRUCTURE
    if lower_highs_lows:
        return TrendDirection.DOWNTREND, MarketStructure.BEARISH_STRUCTURE
    return TrendDirection.RANGE, MarketStructure.CONSOLIDATION


def round_half_up(value: float) -> int:
    """Round to nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def confidence_tier(
    confluence: int,
    winning_weight: float,
    losing_weight: float,
    thresholds: ScoringThresholds = ScoringThresholds(),
) -> SignalConfidence:
    """Confidence tier for the winning side of a fired verdict.

    Ratios are tested multiplicatively so an empty losing side counts as
    an infinite ratio.
    """
    if (
        confluence >= thresholds.very_high_confluence
        and winning_weight > losing_weight * thresholds.very_high_ratio
    ):
        return SignalConfidence.VERY_HIGH
    if (
        confluence >= thresholds.high_confluence
        and winning_weight > losing_weight * thresholds.high_ratio
    ):
        return SignalConfidence.HIGH
    return SignalConfidence.MEDIUM


def score_confluence(
    indicator_set: IndicatorSet,
    thresholds: ScoringThresholds = ScoringThresholds(),
) -> ConfluenceScore:
    """Score an indicator set and decide the signal direction.

    Args:
        indicator_set: Indicator judgments plus trend booleans.
        thresholds: Confluence gates and tier cut-offs.

    Returns:
        ConfluenceScore; ``direction`` is None when no signal fires.

    Notes:
        - Neutral indicators count toward neither side
        - BUY requires bullish count >= min_confluence and
          bullish_weight > bearish_weight × dominance_ratio; SELL mirrors it
        - BUY is evaluated first and wins if both could hold
        - Zero total weight never fires (no division performed)

    Examples:
        >>> score = score_confluence(IndicatorSet(indicators=five_bullish))
        >>> assert score.direction == SignalDirection.BUY
    """
    bullish = indicator_set.bullish
    bearish = indicator_set.bearish

    bullish_weight = weighted_score(bullish)
    bearish_weight = weighted_score(bearish)
    total_weight = bullish_weight + bearish_weight

    bullish_confluence = len(bullish)
    bearish_confluence = len(bearish)

    trend, structure = classify_trend(
        indicator_set.higher_highs_lows, indicator_set.lower_highs_lows
    )

    direction = None
    if total_weight > 0:
        if (
            bullish_confluence >= thresholds.min_confluence
            and bullish_weight > bearish_weight * thresholds.dominance_ratio
        ):
            direction = SignalDirection.BUY
        elif (
            bearish_confluence >= thresholds.min_confluence
            and bearish_weight > bullish_weight * thresholds.dominance_ratio
        ):
            direction = SignalDirection.SELL

    strength = 0
    confidence = None
    if direction == SignalDirection.BUY:
        confidence = confidence_tier(bullish_confluence, bullish_weight, bearish_weight, thresholds)
        strength = min(thresholds.max_strength, round_half_up(bullish_weight / total_weight * 100))
    elif direction == SignalDirection.SELL:
        confidence = confidence_tier(bearish_confluence, bearish_weight, bullish_weight, thresholds)
        strength = min(thresholds.max_strength, round_half_up(bearish_weight / total_weight * 100))

    logger.debug(
        f"Confluence: bull={bullish_confluence} ({bullish_weight:.1f}), "
        f"bear={bearish_confluence} ({bearish_weight:.1f}), "
        f"direction={direction.value if direction else None}, strength={strength}"
    )

    return ConfluenceScore(
        direction=direction,
        strength=strength,
        confidence=confidence,
        bullish_confluence=bullish_confluence,
        bearish_confluence=bearish_confluence,
        bullish_weight=bullish_weight,
        bearish_weight=bearish_weight,
        trend_direction=trend,
        market_structure=structure,
        indicators=indicator_set.indicators,
    )
