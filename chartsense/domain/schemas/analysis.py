from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ScheduleResponse(BaseModel):
    server_time_iso: str
    timeframe_seconds: int
    entry_time_iso: str
    expiry_time_iso: str
    gale_1_entry_iso: Optional[str] = None
    gale_1_expiry_iso: Optional[str] = None
    gale_2_entry_iso: Optional[str] = None
    gale_2_expiry_iso: Optional[str] = None
    display_tz: str


class AnalysisMeta(BaseModel):
    image_quality: Literal["low", "medium", "high"]
    notes: Optional[str] = None


class AnalysisResponse(BaseModel):
    asset: str
    timeframe: str
    strategy: str
    bullish_prob: float
    bearish_prob: float
    model_confidence: float
    action: Literal["buy", "sell", "wait"]
    summary: str
    signals: List[str]
    schedule: ScheduleResponse
    meta: AnalysisMeta


class SubmissionResponse(BaseModel):
    id: str
    status: str
    result: Optional[AnalysisResponse] = None
    created_at: datetime


class CountdownResponse(BaseModel):
    phase: Literal["entry", "expiry", "gale1", "gale2", "completed"]
    remaining_seconds: int
    progress: float
    display: str


class AnalysisRecordResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    asset: str
    timeframe: str
    strategy: str
    image_path: str
    image_url: Optional[str] = None
    status: str
    result_json: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime
    countdown: Optional[CountdownResponse] = None


class HistoryItem(BaseModel):
    id: str
    asset: str
    timeframe: str
    strategy: str
    status: str
    created_at: datetime
    result_json: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class HistoryResponse(BaseModel):
    analyses: List[HistoryItem]
    total: int
    filters: Dict[str, Any]


class FeedbackRequest(BaseModel):
    analysis_id: UUID
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class FeedbackResponse(BaseModel):
    message: str
    analysis_id: str
    rating: int
    comment: Optional[str] = None


class FeedbackItem(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class FeedbackListResponse(BaseModel):
    analysis_id: str
    feedback: List[FeedbackItem]
    total: int
    average_rating: Optional[float] = None
