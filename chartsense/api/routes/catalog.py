"""
Catalog API Routes
Expose the timeframes, strategies and assets clients can choose from
"""

from fastapi import APIRouter, Depends
from typing import List
from pydantic import BaseModel

from chartsense.api.dependencies import get_config_engine
from chartsense.domain.services.config_engine import ConfigEngine
from chartsense.domain.services.decision_engine import confidence_threshold

router = APIRouter()


# Response models
class TimeframeInfo(BaseModel):
    value: str
    label: str
    seconds: int


class StrategyInfo(BaseModel):
    value: str
    label: str
    gale_legs: int
    min_confidence: int


@router.get("/timeframes", response_model=List[TimeframeInfo])
async def get_timeframes(config_engine: ConfigEngine = Depends(get_config_engine)):
    """Timeframes in catalog order"""
    return [
        TimeframeInfo(value=tf.label, label=tf.description or tf.label, seconds=tf.duration_seconds)
        for tf in config_engine.timeframe_registry.timeframes
    ]


@router.get("/strategies", response_model=List[StrategyInfo])
async def get_strategies(config_engine: ConfigEngine = Depends(get_config_engine)):
    return [
        StrategyInfo(
            value=spec.strategy.value,
            label=spec.description or spec.strategy.value,
            gale_legs=spec.strategy.gale_count,
            min_confidence=confidence_threshold(spec.strategy),
        )
        for spec in config_engine.strategies
    ]


@router.get("/assets", response_model=List[str])
async def get_assets(config_engine: ConfigEngine = Depends(get_config_engine)):
    return config_engine.assets
