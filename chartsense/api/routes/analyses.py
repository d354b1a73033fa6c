"""
Analyses API Routes
Persisted chart analyses: submit, fetch, history
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID
import logging

from chartsense.api.dependencies import get_analysis_service, get_chart_storage
from chartsense.api.errors import ANALYSIS_ERRORS, analysis_error_status
from chartsense.api.routes.analyze import require_fields
from chartsense.config import settings
from chartsense.domain.models import AnalysisRecord, AnalysisStatus, HistoryFilters
from chartsense.domain.schemas.analysis import (
    AnalysisRecordResponse,
    CountdownResponse,
    HistoryItem,
    HistoryResponse,
    SubmissionResponse,
)
from chartsense.domain.services.analysis_service import ChartAnalysisService
from chartsense.domain.services.countdown import current_phase, format_countdown
from chartsense.infrastructure.db.database import get_db
from chartsense.infrastructure.db.repositories.analysis_repository import AnalysisRepository
from chartsense.infrastructure.llm.vision_client import InvalidChartImageError, decode_chart_image
from chartsense.infrastructure.storage.chart_storage import ChartStorage
from chartsense.utils.time import now_utc

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=SubmissionResponse, response_model_exclude_none=True)
async def submit_analysis(
    image: UploadFile = File(...),
    asset: str = Form(...),
    timeframe: str = Form(...),
    strategy: str = Form(...),
    user_id: Optional[UUID] = Form(None),
    display_tz: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    service: ChartAnalysisService = Depends(get_analysis_service),
    storage: ChartStorage = Depends(get_chart_storage),
):
    """
    Store a chart and analyze it

    The record is created as `processing` and ends as `done` (with the
    result) or `error` (with a truncated message).
    """
    require_fields(asset=asset, timeframe=timeframe, strategy=strategy)
    image_bytes = await image.read()

    try:
        decode_chart_image(image_bytes, image.content_type)
    except InvalidChartImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    owner = str(user_id) if user_id else None
    image_path = await storage.save(image_bytes, image.content_type, owner=owner)

    repo = AnalysisRepository(db)
    try:
        record = await repo.create(
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            image_path=image_path,
            user_id=owner,
        )
        await db.commit()
    except Exception:
        logger.error(f"❌ Could not record analysis, removing chart {image_path}")
        await storage.delete(image_path)
        raise
    logger.info(f"Analysis {record.id} created for {asset} {timeframe} {strategy}")

    try:
        result = await service.analyze(
            image_bytes=image_bytes,
            mime_type=image.content_type,
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            display_tz=display_tz,
        )
    except Exception as exc:
        logger.error(f"Analysis {record.id} failed: {exc}")
        await repo.mark_error(record.id, str(exc))
        await db.commit()

        if isinstance(exc, ANALYSIS_ERRORS):
            status_code, message = analysis_error_status(exc)
        else:
            status_code, message = 500, "Chart analysis failed unexpectedly"
        raise HTTPException(
            status_code=status_code,
            detail={
                "id": record.id,
                "error": message,
                "status": AnalysisStatus.ERROR.value,
            },
        )

    record = await repo.mark_done(record.id, result.to_wire())
    logger.info(f"Analysis {record.id} done: {result.action.value}")

    return SubmissionResponse(
        id=record.id,
        status=record.status.value,
        result=result.to_wire(),
        created_at=record.created_at,
    )


@router.get("/{analysis_id}", response_model=AnalysisRecordResponse)
async def get_analysis(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    storage: ChartStorage = Depends(get_chart_storage),
):
    """
    Get a single analysis with a short-lived link to its chart
    """
    record = await AnalysisRepository(db).get(str(analysis_id))
    if record is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    return _to_record_response(record, storage)


@router.get("", response_model=HistoryResponse)
async def get_history(
    user_id: Optional[UUID] = None,
    asset: Optional[str] = None,
    timeframe: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Analysis history, newest first

    Results are only included for finished analyses and error messages only
    for failed ones.
    """
    filters = HistoryFilters(
        user_id=str(user_id) if user_id else None,
        asset=asset,
        timeframe=timeframe,
        limit=limit,
    )
    records = await AnalysisRepository(db).list_history(filters)
    logger.info(f"History lookup returned {len(records)} analyses")

    return HistoryResponse(
        analyses=[
            HistoryItem(
                id=r.id,
                asset=r.asset,
                timeframe=r.timeframe,
                strategy=r.strategy,
                status=r.status.value,
                created_at=r.created_at,
                result_json=r.result_json if r.status == AnalysisStatus.DONE else None,
                error=r.error if r.status == AnalysisStatus.ERROR else None,
            )
            for r in records
        ],
        total=len(records),
        filters={
            "user_id": filters.user_id,
            "asset": filters.asset,
            "timeframe": filters.timeframe,
            "limit": filters.limit,
        },
    )


def _countdown(record: AnalysisRecord) -> Optional[CountdownResponse]:
    """Countdown of a finished analysis as seen from the server clock"""
    schedule = (record.result_json or {}).get("schedule")
    if record.status != AnalysisStatus.DONE or not schedule:
        return None

    state = current_phase(schedule, now_utc())
    return CountdownResponse(
        phase=state.phase.value,
        remaining_seconds=int(state.remaining.total_seconds()),
        progress=round(state.progress, 1),
        display=format_countdown(state.remaining),
    )


def _to_record_response(record: AnalysisRecord, storage: ChartStorage) -> AnalysisRecordResponse:
    image_url = None
    if storage.exists(record.image_path):
        image_url = storage.create_signed_url(record.image_path, settings.SIGNED_URL_TTL_SECONDS)

    return AnalysisRecordResponse(
        id=record.id,
        user_id=record.user_id,
        asset=record.asset,
        timeframe=record.timeframe,
        strategy=record.strategy,
        image_path=record.image_path,
        image_url=image_url,
        status=record.status.value,
        result_json=record.result_json,
        error=record.error,
        created_at=record.created_at,
        countdown=_countdown(record),
    )
