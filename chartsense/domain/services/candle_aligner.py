"""
CANDLE ALIGNER (ENGINE-2)
Snap a reference instant to the next candle boundary

Boundaries are multiples of the candle duration on the Unix epoch timeline.
Arithmetic is done on integer microseconds so results are exact.
"""

from datetime import datetime, timedelta

from chartsense.utils.time import from_epoch_micros, to_epoch_micros

MIN_LEAD_TIME = timedelta(seconds=5)

_MICROS_PER_SECOND = 1_000_000
_MIN_LEAD_MICROS = MIN_LEAD_TIME // timedelta(microseconds=1)


def align_to_next_boundary(reference_instant: datetime, duration_seconds: int) -> datetime:
    """
    First candle boundary at or after `reference_instant`.

    When that boundary is less than MIN_LEAD_TIME away the next one is used
    instead. A reference sitting exactly on a boundary therefore always moves
    one full candle ahead, and so does every reference when the duration is
    shorter than MIN_LEAD_TIME.

    Args:
        reference_instant: Instant to align (naive values are UTC)
        duration_seconds: Candle duration, must be positive

    Returns:
        Aware UTC datetime of the chosen boundary
    """
    reference = to_epoch_micros(reference_instant)
    duration = duration_seconds * _MICROS_PER_SECOND

    candidate = -(-reference // duration) * duration
    if candidate - reference < _MIN_LEAD_MICROS:
        candidate += duration

    return from_epoch_micros(candidate)
