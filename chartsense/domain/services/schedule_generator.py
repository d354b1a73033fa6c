"""
SCHEDULE GENERATOR (ENGINE-3)
Expand an aligned entry into the full entry/expiry plan

RESPONSIBILITIES:
- Align the first entry to the next candle
- Append gale legs for 1-gale / 2-gales strategies

RULES:
❌ No clock reads (caller passes the reference instant)
❌ No failures on unknown strategies (treated as simple)
✅ Deterministic
✅ Every leg lasts exactly one candle
"""

from datetime import datetime, timedelta
from typing import List, Optional, Union

from chartsense.domain.models import Schedule, ScheduleLeg, Strategy
from chartsense.domain.services.candle_aligner import align_to_next_boundary
from chartsense.utils.time import as_utc

DEFAULT_DISPLAY_TIME_ZONE = "UTC"


def build_schedule(
    reference_instant: datetime,
    duration_seconds: int,
    strategy: Union[Strategy, str, None],
    display_time_zone: Optional[str] = None,
) -> Schedule:
    """
    Build the schedule for one analysis.

    Args:
        reference_instant: "Now" as captured by the caller
        duration_seconds: Candle duration for every leg
        strategy: Strategy or its label; unknown labels mean no gale legs
        display_time_zone: Client time zone, carried verbatim for display

    Returns:
        Schedule
    """
    if not isinstance(strategy, Strategy):
        strategy = Strategy.parse(strategy)

    candle = timedelta(seconds=duration_seconds)
    entry_time = align_to_next_boundary(reference_instant, duration_seconds)
    expiry_time = entry_time + candle

    gale_entries: List[ScheduleLeg] = []
    previous_expiry = expiry_time
    for _ in range(strategy.gale_count):
        leg = ScheduleLeg(entry_time=previous_expiry, expiry_time=previous_expiry + candle)
        gale_entries.append(leg)
        previous_expiry = leg.expiry_time

    return Schedule(
        reference_time=as_utc(reference_instant),
        timeframe_seconds=duration_seconds,
        entry_time=entry_time,
        expiry_time=expiry_time,
        gale_entries=tuple(gale_entries),
        display_time_zone=display_time_zone or DEFAULT_DISPLAY_TIME_ZONE,
    )
