"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    Action,
    AnalysisStatus,
    Strategy,

    # Entities
    AnalysisOutcome,
    AnalysisRecord,
    ChartAnalysis,
    Feedback,
    HistoryFilters,
    Schedule,
    ScheduleLeg,
    StrategySpec,
    TimeframeSpec,
)

__all__ = [
    # Enums
    "Action",
    "AnalysisStatus",
    "Strategy",

    # Entities
    "AnalysisOutcome",
    "AnalysisRecord",
    "ChartAnalysis",
    "Feedback",
    "HistoryFilters",
    "Schedule",
    "ScheduleLeg",
    "StrategySpec",
    "TimeframeSpec",
]
