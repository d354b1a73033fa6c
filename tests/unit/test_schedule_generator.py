from datetime import datetime, timedelta, timezone

import pytest

from chartsense.domain.models import Strategy
from chartsense.domain.services.schedule_generator import build_schedule

REFERENCE = datetime(2024, 1, 1, 0, 0, 3, tzinfo=timezone.utc)


@pytest.mark.unit
def test_simple_schedule_has_single_leg():
    schedule = build_schedule(REFERENCE, 60, Strategy.SIMPLE)

    wire = schedule.to_wire()
    assert wire == {
        "server_time_iso": "2024-01-01T00:00:03.000Z",
        "timeframe_seconds": 60,
        "entry_time_iso": "2024-01-01T00:01:00.000Z",
        "expiry_time_iso": "2024-01-01T00:02:00.000Z",
        "display_tz": "UTC",
    }
    assert len(schedule.legs) == 1


@pytest.mark.unit
def test_two_gales_chain_consecutive_candles():
    schedule = build_schedule(REFERENCE, 60, "2-gales", "America/Sao_Paulo")
    wire = schedule.to_wire()

    assert wire["gale_1_entry_iso"] == "2024-01-01T00:02:00.000Z"
    assert wire["gale_1_expiry_iso"] == "2024-01-01T00:03:00.000Z"
    assert wire["gale_2_entry_iso"] == "2024-01-01T00:03:00.000Z"
    assert wire["gale_2_expiry_iso"] == "2024-01-01T00:04:00.000Z"
    assert wire["display_tz"] == "America/Sao_Paulo"


@pytest.mark.unit
@pytest.mark.parametrize("strategy,gales", [("simple", 0), ("1-gale", 1), ("2-gales", 2), ("martingale", 0), (None, 0)])
def test_gale_count_follows_strategy(strategy, gales):
    schedule = build_schedule(REFERENCE, 300, strategy)
    assert len(schedule.gale_entries) == gales
    assert not any(key.startswith(f"gale_{gales + 1}") for key in schedule.to_wire())


@pytest.mark.unit
def test_every_leg_lasts_one_candle_and_legs_touch():
    schedule = build_schedule(REFERENCE, 120, Strategy.TWO_GALES)
    candle = timedelta(seconds=120)

    previous_expiry = None
    for leg in schedule.legs:
        assert leg.expiry_time - leg.entry_time == candle
        if previous_expiry is not None:
            assert leg.entry_time == previous_expiry
        previous_expiry = leg.expiry_time


@pytest.mark.unit
def test_schedule_is_deterministic():
    assert build_schedule(REFERENCE, 30, "1-gale") == build_schedule(REFERENCE, 30, "1-gale")


@pytest.mark.unit
def test_naive_reference_is_reported_as_utc():
    schedule = build_schedule(datetime(2024, 1, 1, 0, 0, 3), 60, "simple")
    assert schedule.to_wire()["server_time_iso"] == "2024-01-01T00:00:03.000Z"
