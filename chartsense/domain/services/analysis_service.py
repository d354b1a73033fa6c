"""
Chart Analysis Service
Combines the vision verdict with the decision engine and the schedule

Both HTTP adapters (ephemeral /analyze and persisted /analyses) go through
this service, so the action and the schedule are derived in one place.
"""

from datetime import datetime
from typing import Optional
import logging

from chartsense.domain.models import ChartAnalysis, Strategy
from chartsense.domain.services.decision_engine import decide
from chartsense.domain.services.schedule_generator import build_schedule
from chartsense.domain.services.timeframe_registry import TimeframeRegistry
from chartsense.infrastructure.llm.vision_client import VisionClient, VisionResult
from chartsense.utils.time import now_utc, resolve_zone_name

logger = logging.getLogger(__name__)

GALE_RISK_NOTE = "Remember: always manage your risk when using gale strategies."


class ChartAnalysisService:
    """
    Chart Analysis Service
    Vision verdict -> action + schedule
    """

    def __init__(
        self,
        vision_client: VisionClient,
        timeframe_registry: TimeframeRegistry,
        default_display_tz: str = "UTC",
    ):
        self.vision_client = vision_client
        self.timeframe_registry = timeframe_registry
        self.default_display_tz = default_display_tz

    async def analyze(
        self,
        image_bytes: bytes,
        mime_type: Optional[str],
        asset: str,
        timeframe: str,
        strategy: str,
        display_tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ChartAnalysis:
        """
        Run the full analysis for one chart.

        The schedule reference is captured after the vision call returns, so
        the entry window is aligned to when the client actually receives it.

        Raises:
            InvalidChartImageError, VisionAnalysisError (and subclasses)
        """
        vision_result = await self.vision_client.analyze_chart(
            image_bytes=image_bytes,
            mime_type=mime_type,
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
        )
        return self.build_result(
            vision_result,
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            reference_time=now or now_utc(),
            display_tz=display_tz,
        )

    def build_result(
        self,
        vision_result: VisionResult,
        asset: str,
        timeframe: str,
        strategy: str,
        reference_time: datetime,
        display_tz: Optional[str] = None,
    ) -> ChartAnalysis:
        """
        Combine a vision verdict into the final result. No I/O.
        """
        parsed_strategy = Strategy.parse(strategy)
        outcome = vision_result.to_outcome().normalized()
        action = decide(outcome, parsed_strategy)

        duration = self.timeframe_registry.resolve_duration_seconds(timeframe)
        schedule = build_schedule(
            reference_time,
            duration,
            parsed_strategy,
            resolve_zone_name(display_tz, self.default_display_tz),
        )

        summary = vision_result.summary
        if parsed_strategy.gale_count > 0:
            summary = f"{summary} {GALE_RISK_NOTE}".strip()

        logger.info(
            f"Analysis {asset} {timeframe} {strategy}: action={action.value} "
            f"entry={schedule.entry_time.isoformat()}"
        )

        return ChartAnalysis(
            asset=asset,
            timeframe=timeframe,
            strategy=strategy,
            outcome=outcome,
            action=action,
            summary=summary,
            signals=list(vision_result.signals),
            schedule=schedule,
            image_quality=vision_result.image_quality,
            notes=vision_result.notes,
        )
