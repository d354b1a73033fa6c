"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from chartsense.utils.time import to_iso_z


class Strategy(str, Enum):
    """Entry strategy; determines the number of gale legs"""
    SIMPLE = "simple"
    ONE_GALE = "1-gale"
    TWO_GALES = "2-gales"

    @classmethod
    def parse(cls, label: Optional[str]) -> "Strategy":
        """Unknown or missing labels fall back to SIMPLE"""
        try:
            return cls(label)
        except ValueError:
            return cls.SIMPLE

    @property
    def gale_count(self) -> int:
        return _GALE_COUNTS[self]


_GALE_COUNTS = {
    Strategy.SIMPLE: 0,
    Strategy.ONE_GALE: 1,
    Strategy.TWO_GALES: 2,
}


class Action(str, Enum):
    """Trade action derived from model output"""
    BUY = "buy"
    SELL = "sell"
    WAIT = "wait"


class AnalysisStatus(str, Enum):
    """Lifecycle of a persisted analysis"""
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class TimeframeSpec:
    """Named candle duration - Immutable"""
    label: str
    duration_seconds: int
    description: str = ""

    def __post_init__(self):
        if not self.label:
            raise ValueError("Timeframe label cannot be empty")
        if self.duration_seconds <= 0:
            raise ValueError(f"Timeframe {self.label} must have a positive duration")


@dataclass(frozen=True)
class StrategySpec:
    """Catalog entry describing a strategy label"""
    strategy: Strategy
    description: str = ""


@dataclass(frozen=True)
class ScheduleLeg:
    """One entry/expiry window"""
    entry_time: datetime
    expiry_time: datetime


@dataclass(frozen=True)
class Schedule:
    """
    Entry/expiry plan for one analysis - Immutable

    All instants are aware UTC. display_time_zone is carried for
    presentation only.
    """
    reference_time: datetime
    timeframe_seconds: int
    entry_time: datetime
    expiry_time: datetime
    gale_entries: Tuple[ScheduleLeg, ...]
    display_time_zone: str

    @property
    def legs(self) -> Tuple[ScheduleLeg, ...]:
        return (ScheduleLeg(self.entry_time, self.expiry_time),) + self.gale_entries

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the JSON shape consumed by clients"""
        wire: Dict[str, Any] = {
            "server_time_iso": to_iso_z(self.reference_time),
            "timeframe_seconds": self.timeframe_seconds,
            "entry_time_iso": to_iso_z(self.entry_time),
            "expiry_time_iso": to_iso_z(self.expiry_time),
        }
        for index, leg in enumerate(self.gale_entries, start=1):
            wire[f"gale_{index}_entry_iso"] = to_iso_z(leg.entry_time)
            wire[f"gale_{index}_expiry_iso"] = to_iso_z(leg.expiry_time)
        wire["display_tz"] = self.display_time_zone
        return wire


@dataclass(frozen=True)
class AnalysisOutcome:
    """Probabilities and confidence reported by the vision model"""
    bullish_probability: float
    bearish_probability: float
    model_confidence: float

    def normalized(self) -> "AnalysisOutcome":
        """
        Rescale so bullish + bearish == 100.

        A pair that already sums to 100 is returned unchanged; a pair summing
        to zero carries no direction and becomes 50/50.
        """
        total = self.bullish_probability + self.bearish_probability
        if math.isclose(total, 100):
            return self
        if total == 0:
            bullish = 50
        else:
            bullish = _round_half_up(100 * self.bullish_probability / total)
        return AnalysisOutcome(
            bullish_probability=bullish,
            bearish_probability=100 - bullish,
            model_confidence=self.model_confidence,
        )


def _round_half_up(value: float) -> int:
    # half-up: 62.5 -> 63
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


@dataclass(frozen=True)
class ChartAnalysis:
    """Combined result of one chart analysis"""
    asset: str
    timeframe: str
    strategy: str
    outcome: AnalysisOutcome
    action: Action
    summary: str
    signals: List[str]
    schedule: Schedule
    image_quality: str
    notes: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"image_quality": self.image_quality}
        if self.notes:
            meta["notes"] = self.notes
        return {
            "asset": self.asset,
            "timeframe": self.timeframe,
            "strategy": self.strategy,
            "bullish_prob": self.outcome.bullish_probability,
            "bearish_prob": self.outcome.bearish_probability,
            "model_confidence": self.outcome.model_confidence,
            "action": self.action.value,
            "summary": self.summary,
            "signals": list(self.signals),
            "schedule": self.schedule.to_wire(),
            "meta": meta,
        }


@dataclass(frozen=True)
class AnalysisRecord:
    """Persisted analysis - Immutable snapshot"""
    id: str
    asset: str
    timeframe: str
    strategy: str
    image_path: str
    status: AnalysisStatus
    created_at: datetime
    user_id: Optional[str] = None
    result_json: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Feedback:
    """User rating of a completed analysis"""
    analysis_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self):
        if not 1 <= self.rating <= 5:
            raise ValueError("Rating must be between 1 and 5")


@dataclass(frozen=True)
class HistoryFilters:
    """Filters for the analysis history listing"""
    user_id: Optional[str] = None
    asset: Optional[str] = None
    timeframe: Optional[str] = None
    limit: int = 20
