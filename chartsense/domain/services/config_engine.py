"""
CONFIG ENGINE (ENGINE-0)
Load, validate, and expose the analysis catalog

RESPONSIBILITIES:
- Load catalog.yml (timeframes, strategies, assets)
- Validate catalog integrity
- Expose read-only typed objects

RULES:
✅ Fail fast on invalid config
✅ Deterministic output
"""

import yaml
from pathlib import Path
from typing import Dict, List, Any

from chartsense.domain.models import Strategy, StrategySpec, TimeframeSpec
from chartsense.domain.services.timeframe_registry import TimeframeRegistry


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for the analysis catalog
    """

    def __init__(self, catalog_file: Path):
        """Initialize with path to catalog.yml"""
        self.catalog_file = Path(catalog_file)
        self._timeframe_registry: TimeframeRegistry = None
        self._strategies: List[StrategySpec] = None
        self._assets: List[str] = None

    def load_all(self) -> None:
        """Load and validate the catalog"""
        if not self.catalog_file.exists():
            raise FileNotFoundError(f"Catalog config not found: {self.catalog_file}")

        with open(self.catalog_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        self._load_timeframes(data)
        self._load_strategies(data)
        self._load_assets(data)

    def _load_timeframes(self, data: Dict[str, Any]) -> None:
        entries = data.get('timeframes') or []
        if not entries:
            raise ValueError("Catalog must define at least one timeframe")

        timeframes = [
            TimeframeSpec(
                label=str(entry['label']),
                duration_seconds=int(entry['seconds']),
                description=entry.get('description', ''),
            )
            for entry in entries
        ]
        # Duplicate labels raise inside the registry
        self._timeframe_registry = TimeframeRegistry(timeframes)

    def _load_strategies(self, data: Dict[str, Any]) -> None:
        strategies = []
        for entry in data.get('strategies') or []:
            try:
                strategy = Strategy(entry['label'])
            except ValueError:
                raise ValueError(f"Unknown strategy in catalog: {entry['label']}")
            strategies.append(StrategySpec(strategy=strategy, description=entry.get('description', '')))

        labels = [s.strategy for s in strategies]
        if len(labels) != len(set(labels)):
            raise ValueError("Duplicate strategies found in catalog")

        self._strategies = strategies or [StrategySpec(strategy=s) for s in Strategy]

    def _load_assets(self, data: Dict[str, Any]) -> None:
        assets = [str(a) for a in data.get('assets') or []]
        if len(assets) != len(set(assets)):
            raise ValueError("Duplicate assets found in catalog")
        self._assets = assets

    # Public getters

    @property
    def timeframe_registry(self) -> TimeframeRegistry:
        if self._timeframe_registry is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._timeframe_registry

    @property
    def strategies(self) -> List[StrategySpec]:
        if self._strategies is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return list(self._strategies)

    @property
    def assets(self) -> List[str]:
        if self._assets is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return list(self._assets)
