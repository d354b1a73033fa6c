"""
TIMEFRAME REGISTRY (ENGINE-1)
Resolve a timeframe label to its candle duration

RULES:
❌ Never fails a request on an unknown label
✅ Unknown label -> DEFAULT_DURATION_SECONDS
✅ Catalog order is preserved
"""

import logging
from typing import Dict, Iterable, List, Optional

from chartsense.domain.models import TimeframeSpec

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 60

DEFAULT_TIMEFRAMES = (
    TimeframeSpec(label="15s", duration_seconds=15, description="15 seconds"),
    TimeframeSpec(label="30s", duration_seconds=30, description="30 seconds"),
    TimeframeSpec(label="1m", duration_seconds=60, description="1 minute (M1)"),
    TimeframeSpec(label="2m", duration_seconds=120, description="2 minutes"),
    TimeframeSpec(label="5m", duration_seconds=300, description="5 minutes"),
    TimeframeSpec(label="15m", duration_seconds=900, description="15 minutes"),
)


class TimeframeRegistry:
    """Fixed, ordered catalog of timeframes"""

    def __init__(self, timeframes: Optional[Iterable[TimeframeSpec]] = None):
        specs = list(timeframes) if timeframes is not None else list(DEFAULT_TIMEFRAMES)
        by_label: Dict[str, TimeframeSpec] = {}
        for spec in specs:
            if spec.label in by_label:
                raise ValueError(f"Duplicate timeframe label: {spec.label}")
            by_label[spec.label] = spec
        self._timeframes = specs
        self._by_label = by_label

    @property
    def timeframes(self) -> List[TimeframeSpec]:
        return list(self._timeframes)

    def resolve_duration_seconds(self, label: str) -> int:
        """
        Duration in seconds for `label`.

        Unknown labels resolve to DEFAULT_DURATION_SECONDS so scheduling
        always has a positive duration to work with.
        """
        spec = self._by_label.get(label)
        if spec is None:
            logger.info(
                f"Unknown timeframe {label!r}, using default {DEFAULT_DURATION_SECONDS}s"
            )
            return DEFAULT_DURATION_SECONDS
        return spec.duration_seconds


_default_registry = TimeframeRegistry()


def resolve_duration_seconds(label: str, registry: Optional[TimeframeRegistry] = None) -> int:
    """Resolve against `registry`, or the built-in catalog"""
    return (registry or _default_registry).resolve_duration_seconds(label)
