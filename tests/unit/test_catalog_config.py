from pathlib import Path

import pytest

from chartsense.domain.models import Strategy, TimeframeSpec
from chartsense.domain.services.config_engine import ConfigEngine
from chartsense.domain.services.timeframe_registry import (
    DEFAULT_DURATION_SECONDS,
    TimeframeRegistry,
    resolve_duration_seconds,
)

CATALOG_FILE = Path(__file__).resolve().parents[2] / "config" / "catalog.yml"


@pytest.mark.unit
@pytest.mark.parametrize("label,seconds", [
    ("15s", 15), ("30s", 30), ("1m", 60), ("2m", 120), ("5m", 300), ("15m", 900),
])
def test_builtin_timeframes(label, seconds):
    assert resolve_duration_seconds(label) == seconds


@pytest.mark.unit
@pytest.mark.parametrize("label", ["4h", "", "1M", "60"])
def test_unknown_timeframe_uses_default(label):
    assert resolve_duration_seconds(label) == DEFAULT_DURATION_SECONDS == 60


@pytest.mark.unit
def test_registry_rejects_duplicate_labels():
    with pytest.raises(ValueError):
        TimeframeRegistry([
            TimeframeSpec(label="1m", duration_seconds=60),
            TimeframeSpec(label="1m", duration_seconds=61),
        ])


@pytest.mark.unit
def test_timeframe_requires_positive_duration():
    with pytest.raises(ValueError):
        TimeframeSpec(label="bad", duration_seconds=0)


@pytest.mark.unit
def test_config_engine_loads_catalog():
    engine = ConfigEngine(CATALOG_FILE)
    engine.load_all()

    labels = [tf.label for tf in engine.timeframe_registry.timeframes]
    assert labels == ["15s", "30s", "1m", "2m", "5m", "15m"]
    assert [s.strategy for s in engine.strategies] == list(Strategy)
    assert "EUR/USD" in engine.assets


@pytest.mark.unit
def test_config_engine_requires_load():
    engine = ConfigEngine(CATALOG_FILE)
    with pytest.raises(RuntimeError):
        engine.timeframe_registry


@pytest.mark.unit
def test_config_engine_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigEngine(tmp_path / "missing.yml").load_all()


@pytest.mark.unit
@pytest.mark.parametrize("body", [
    "timeframes: []\n",
    "timeframes:\n  - {label: '1m', seconds: 60}\n  - {label: '1m', seconds: 60}\n",
    "timeframes:\n  - {label: '1m', seconds: 60}\nstrategies:\n  - {label: 'martingale'}\n",
    "timeframes:\n  - {label: '1m', seconds: 60}\nassets: ['EUR/USD', 'EUR/USD']\n",
])
def test_config_engine_fails_fast_on_invalid_catalog(tmp_path, body):
    catalog = tmp_path / "catalog.yml"
    catalog.write_text(body)

    with pytest.raises(ValueError):
        ConfigEngine(catalog).load_all()


@pytest.mark.unit
def test_strategies_default_to_all(tmp_path):
    catalog = tmp_path / "catalog.yml"
    catalog.write_text("timeframes:\n  - {label: '1m', seconds: 60}\n")

    engine = ConfigEngine(catalog)
    engine.load_all()
    assert [s.strategy for s in engine.strategies] == list(Strategy)
    assert engine.assets == []
