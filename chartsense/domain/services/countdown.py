"""
Countdown helpers for schedule consumers.

Pure functions over a schedule's wire form. The ISO instants are treated as
opaque points in time and never re-derived. A caller polls these from its own
timer; nothing here keeps state between calls.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from chartsense.utils.time import as_utc, parse_iso

ZERO = timedelta(0)


class CountdownPhase(str, Enum):
    ENTRY = "entry"
    EXPIRY = "expiry"
    GALE_1 = "gale1"
    GALE_2 = "gale2"
    COMPLETED = "completed"


@dataclass(frozen=True)
class CountdownState:
    phase: CountdownPhase
    remaining: timedelta
    total: timedelta

    @property
    def progress(self) -> float:
        """Elapsed share of the current phase, 0..100"""
        if self.total <= ZERO:
            return 0.0
        elapsed = self.total - self.remaining
        return max(0.0, min(100.0, elapsed / self.total * 100))


def server_offset(server_time: datetime, local_time: datetime) -> timedelta:
    """
    Clock skew between server and client.

    Capture once, when the response carrying `server_time` arrives.
    """
    return as_utc(server_time) - as_utc(local_time)


def remaining(now: datetime, target: datetime, offset: timedelta = ZERO) -> timedelta:
    """Time left until `target` (server clock) as seen from local `now`, never negative"""
    left = (as_utc(target) - offset) - as_utc(now)
    return max(ZERO, left)


def current_phase(
    schedule: Mapping[str, Any],
    now: datetime,
    offset: timedelta = ZERO,
) -> CountdownState:
    """
    Phase of a schedule at local time `now`.

    entry     -> waiting for the first entry
    expiry    -> first leg running
    gale1/2   -> gale leg running
    completed -> every leg has expired
    """
    server_time = parse_iso(schedule["server_time_iso"])
    candle = timedelta(seconds=schedule["timeframe_seconds"])
    entry = parse_iso(schedule["entry_time_iso"])

    until_entry = remaining(now, entry, offset)
    if until_entry > ZERO:
        return CountdownState(CountdownPhase.ENTRY, until_entry, entry - server_time)

    for phase, deadline in _leg_deadlines(schedule):
        left = remaining(now, deadline, offset)
        if left > ZERO:
            return CountdownState(phase, left, candle)

    return CountdownState(CountdownPhase.COMPLETED, ZERO, ZERO)


def _leg_deadlines(schedule: Mapping[str, Any]) -> List[Tuple[CountdownPhase, datetime]]:
    deadlines = [(CountdownPhase.EXPIRY, parse_iso(schedule["expiry_time_iso"]))]
    for phase, key in (
        (CountdownPhase.GALE_1, "gale_1_expiry_iso"),
        (CountdownPhase.GALE_2, "gale_2_expiry_iso"),
    ):
        value: Optional[str] = schedule.get(key)
        if value:
            deadlines.append((phase, parse_iso(value)))
    return deadlines


def format_countdown(delta: timedelta) -> str:
    """'M:SS' from one minute up, otherwise 'Ns'"""
    total_seconds = max(0, int(delta.total_seconds()))
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0:
        return f"{minutes}:{seconds:02d}"
    return f"{seconds}s"
