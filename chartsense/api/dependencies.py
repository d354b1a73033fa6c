"""
Shared FastAPI dependencies
Services are built once in the app lifespan and kept on app.state
"""

from fastapi import HTTPException, Request

from chartsense.domain.services.analysis_service import ChartAnalysisService
from chartsense.domain.services.config_engine import ConfigEngine
from chartsense.infrastructure.storage.chart_storage import ChartStorage


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not initialized")
    return value


def get_config_engine(request: Request) -> ConfigEngine:
    return _state(request, "config_engine")


def get_analysis_service(request: Request) -> ChartAnalysisService:
    return _state(request, "analysis_service")


def get_chart_storage(request: Request) -> ChartStorage:
    return _state(request, "chart_storage")
