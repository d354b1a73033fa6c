"""
Database Models (SQLAlchemy ORM)
Analyses and their feedback
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum, Index, JSON
)
from sqlalchemy.orm import relationship
import enum
import uuid

from chartsense.infrastructure.db.database import Base
from chartsense.utils.time import now_utc_naive


# Enums
class AnalysisStatusEnum(str, enum.Enum):
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


def _new_id() -> str:
    return str(uuid.uuid4())


# Tables

class AnalysisModel(Base):
    """Chart analysis request and its result"""
    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=True, index=True)

    asset = Column(Text, nullable=False)
    timeframe = Column(Text, nullable=False)
    strategy = Column(Text, nullable=False)
    image_path = Column(String(512), nullable=False)

    result_json = Column(JSON, nullable=True)
    status = Column(SQLEnum(AnalysisStatusEnum), nullable=False, default=AnalysisStatusEnum.PROCESSING)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    # Relationships
    feedback = relationship("FeedbackModel", back_populates="analysis")

    # Indexes
    __table_args__ = (
        Index('ix_analyses_created_at', 'created_at'),
        Index('ix_analyses_asset_timeframe', 'asset', 'timeframe'),
    )


class FeedbackModel(Base):
    """User rating of a finished analysis"""
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(String(36), ForeignKey("analyses.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    # Relationships
    analysis = relationship("AnalysisModel", back_populates="feedback")
