"""
Feedback API Route
Ratings for finished analyses
"""

from fastapi import APIRouter, Depends, HTTPException
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from chartsense.domain.models import AnalysisStatus, Feedback
from chartsense.domain.schemas.analysis import (
    FeedbackItem,
    FeedbackListResponse,
    FeedbackRequest,
    FeedbackResponse,
)
from chartsense.infrastructure.db.database import get_db
from chartsense.infrastructure.db.repositories.analysis_repository import AnalysisRepository
from chartsense.infrastructure.db.repositories.feedback_repository import FeedbackRepository

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=FeedbackResponse)
async def create_feedback(
    request: FeedbackRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Rate an analysis (1-5)

    Rules:
    - Analysis must exist (404)
    - Analysis must be `done` (400)
    """
    analysis_id = str(request.analysis_id)
    logger.info(f"Feedback for {analysis_id}: rating={request.rating} comment={bool(request.comment)}")

    analysis = await AnalysisRepository(db).get(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    if analysis.status != AnalysisStatus.DONE:
        raise HTTPException(
            status_code=400,
            detail="Only finished analyses can be rated"
        )

    await FeedbackRepository(db).create(
        Feedback(analysis_id=analysis_id, rating=request.rating, comment=request.comment)
    )

    return FeedbackResponse(
        message="Feedback recorded",
        analysis_id=analysis_id,
        rating=request.rating,
        comment=request.comment,
    )


@router.get("/{analysis_id}", response_model=FeedbackListResponse)
async def list_feedback(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Ratings left for one analysis, oldest first"""
    key = str(analysis_id)
    if await AnalysisRepository(db).get(key) is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    entries = await FeedbackRepository(db).list_for_analysis(key)
    average = round(sum(f.rating for f in entries) / len(entries), 2) if entries else None

    return FeedbackListResponse(
        analysis_id=key,
        feedback=[
            FeedbackItem(id=f.id, rating=f.rating, comment=f.comment, created_at=f.created_at)
            for f in entries
        ],
        total=len(entries),
        average_rating=average,
    )
