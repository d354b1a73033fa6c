"""
Analyze API Route
Single-request chart analysis, nothing is persisted
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from typing import Optional
import logging

from chartsense.api.dependencies import get_analysis_service
from chartsense.api.errors import ANALYSIS_ERRORS, analysis_error_status
from chartsense.domain.schemas.analysis import AnalysisResponse
from chartsense.domain.services.analysis_service import ChartAnalysisService

logger = logging.getLogger(__name__)
router = APIRouter()


def require_fields(**fields: str) -> None:
    """400 when any text field is blank"""
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Required fields: image, asset, timeframe, strategy (missing: {', '.join(missing)})"
        )


@router.post("", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_chart(
    image: UploadFile = File(...),
    asset: str = Form(...),
    timeframe: str = Form(...),
    strategy: str = Form(...),
    display_tz: Optional[str] = Form(None),
    service: ChartAnalysisService = Depends(get_analysis_service),
):
    """
    Analyze a chart screenshot

    Returns the model verdict, the derived action and the entry/expiry
    schedule aligned to the next candle of `timeframe`.
    """
    require_fields(asset=asset, timeframe=timeframe, strategy=strategy)
    image_bytes = await image.read()

    logger.info(f"Analyze request: {asset} {timeframe} {strategy} ({len(image_bytes)} bytes)")

    try:
        result = await service.analyze(
            image_bytes=image_bytes,
            mime_type=image.content_type,
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            display_tz=display_tz,
        )
    except ANALYSIS_ERRORS as exc:
        status_code, message = analysis_error_status(exc)
        logger.error(f"Analysis failed for {asset} {timeframe}: {exc}")
        raise HTTPException(status_code=status_code, detail=message)
    except Exception as exc:
        logger.error(f"❌ Unexpected error analyzing {asset} {timeframe}: {exc}")
        raise HTTPException(status_code=500, detail="Chart analysis failed unexpectedly")

    return result.to_wire()
