"""
Analysis Repository
CRUD operations for persisted chart analyses
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Any, Dict, Optional, List

from chartsense.infrastructure.db.models import AnalysisModel, AnalysisStatusEnum
from chartsense.domain.models import AnalysisRecord, AnalysisStatus, HistoryFilters
from chartsense.utils.time import now_utc_naive

MAX_ERROR_LENGTH = 400


class AnalysisRepository:
    """Repository for AnalysisRecord"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def create(
        self,
        asset: str,
        timeframe: str,
        strategy: str,
        image_path: str,
        user_id: Optional[str] = None,
    ) -> AnalysisRecord:
        """
        Create a new analysis in `processing` state

        Returns:
            Created AnalysisRecord
        """
        model = AnalysisModel(
            user_id=user_id,
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            image_path=image_path,
            status=AnalysisStatusEnum.PROCESSING,
            created_at=now_utc_naive(),
        )

        self.session.add(model)
        await self.session.flush()

        return self._to_domain(model)

    async def get(self, analysis_id: str) -> Optional[AnalysisRecord]:
        """
        Get analysis by ID

        Returns:
            AnalysisRecord or None
        """
        model = await self.session.get(AnalysisModel, analysis_id)
        return self._to_domain(model) if model else None

    async def mark_done(self, analysis_id: str, result_json: Dict[str, Any]) -> AnalysisRecord:
        """Store the result and move the analysis to `done`"""
        model = await self._require(analysis_id)
        model.result_json = result_json
        model.status = AnalysisStatusEnum.DONE
        model.error = None
        await self.session.flush()
        return self._to_domain(model)

    async def mark_error(self, analysis_id: str, error: str) -> AnalysisRecord:
        """Move the analysis to `error`, keeping a truncated message"""
        model = await self._require(analysis_id)
        model.status = AnalysisStatusEnum.ERROR
        model.error = (error or "Unknown analysis error")[:MAX_ERROR_LENGTH]
        await self.session.flush()
        return self._to_domain(model)

    async def list_history(self, filters: HistoryFilters) -> List[AnalysisRecord]:
        """
        Recent analyses, newest first

        Args:
            filters: Optional user / asset / timeframe filters and a limit
        """
        query = select(AnalysisModel).order_by(AnalysisModel.created_at.desc())

        if filters.user_id:
            query = query.where(AnalysisModel.user_id == filters.user_id)
        if filters.asset:
            query = query.where(AnalysisModel.asset == filters.asset)
        if filters.timeframe:
            query = query.where(AnalysisModel.timeframe == filters.timeframe)

        result = await self.session.execute(query.limit(filters.limit))
        return [self._to_domain(m) for m in result.scalars().all()]

    async def _require(self, analysis_id: str) -> AnalysisModel:
        model = await self.session.get(AnalysisModel, analysis_id)
        if model is None:
            raise ValueError(f"Analysis not found: {analysis_id}")
        return model

    @staticmethod
    def _to_domain(model: AnalysisModel) -> AnalysisRecord:
        """Convert database model to domain entity"""
        return AnalysisRecord(
            id=model.id,
            user_id=model.user_id,
            asset=model.asset,
            timeframe=model.timeframe,
            strategy=model.strategy,
            image_path=model.image_path,
            status=AnalysisStatus(model.status.value),
            result_json=model.result_json,
            error=model.error,
            created_at=model.created_at,
        )
