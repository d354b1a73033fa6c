"""
DECISION ENGINE (ENGINE-4)
Map model probabilities + confidence + strategy to buy / sell / wait

RULES:
❌ No validation of probability ranges (done upstream)
✅ Probabilities normalized to sum to 100 first
✅ Unknown strategy uses the simple threshold
"""

from typing import Union

from chartsense.domain.models import Action, AnalysisOutcome, Strategy

CONFIDENCE_THRESHOLDS = {
    Strategy.SIMPLE: 60,
    Strategy.ONE_GALE: 55,
    Strategy.TWO_GALES: 50,
}

DEFAULT_CONFIDENCE_THRESHOLD = CONFIDENCE_THRESHOLDS[Strategy.SIMPLE]

# Bullish minus bearish spread needed to act
DEAD_ZONE = 10


def confidence_threshold(strategy: Union[Strategy, str, None]) -> int:
    """Minimum model confidence required to act under `strategy`"""
    if not isinstance(strategy, Strategy):
        strategy = Strategy.parse(strategy)
    return CONFIDENCE_THRESHOLDS.get(strategy, DEFAULT_CONFIDENCE_THRESHOLD)


def decide(outcome: AnalysisOutcome, strategy: Union[Strategy, str, None]) -> Action:
    """
    Decide on an already-built outcome.

    Low confidence always means WAIT, regardless of the probability spread.
    """
    outcome = outcome.normalized()

    if outcome.model_confidence < confidence_threshold(strategy):
        return Action.WAIT

    diff = outcome.bullish_probability - outcome.bearish_probability
    if diff >= DEAD_ZONE:
        return Action.BUY
    if diff <= -DEAD_ZONE:
        return Action.SELL
    return Action.WAIT


def decide_action(
    bullish_probability: float,
    bearish_probability: float,
    model_confidence: float,
    strategy: Union[Strategy, str, None],
) -> Action:
    """Decide from raw model numbers"""
    return decide(
        AnalysisOutcome(
            bullish_probability=bullish_probability,
            bearish_probability=bearish_probability,
            model_confidence=model_confidence,
        ),
        strategy,
    )
