"""
Feedback Repository
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from chartsense.infrastructure.db.models import FeedbackModel
from chartsense.domain.models import Feedback
from chartsense.utils.time import now_utc_naive


class FeedbackRepository:
    """Repository for Feedback"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, feedback: Feedback) -> Feedback:
        model = FeedbackModel(
            analysis_id=feedback.analysis_id,
            rating=feedback.rating,
            comment=feedback.comment,
            created_at=feedback.created_at or now_utc_naive(),
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def list_for_analysis(self, analysis_id: str) -> List[Feedback]:
        result = await self.session.execute(
            select(FeedbackModel)
            .where(FeedbackModel.analysis_id == analysis_id)
            .order_by(FeedbackModel.created_at.asc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _to_domain(model: FeedbackModel) -> Feedback:
        return Feedback(
            id=model.id,
            analysis_id=model.analysis_id,
            rating=model.rating,
            comment=model.comment,
            created_at=model.created_at,
        )
