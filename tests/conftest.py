import io
from pathlib import Path
from typing import AsyncGenerator, List

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from chartsense.infrastructure.db.database import Base, get_db
from chartsense.infrastructure.db import models  # noqa: F401
from chartsense.api.routes import analyze, analyses, feedback, catalog, charts
from chartsense.domain.services.analysis_service import ChartAnalysisService
from chartsense.domain.services.config_engine import ConfigEngine
from chartsense.infrastructure.llm.vision_client import VisionClient
from chartsense.infrastructure.storage.chart_storage import ChartStorage

CATALOG_FILE = Path(__file__).resolve().parents[1] / "config" / "catalog.yml"

VERDICT_JSON = """```json
{
  "direction": "up",
  "bullish_prob": 70,
  "bearish_prob": 30,
  "model_confidence": 65,
  "summary": "Higher lows above support.",
  "signals": ["higher lows", "breakout above resistance"],
  "notes": "Low volume",
  "image_quality": "high"
}
```"""


class FakeResponse:
    def __init__(self, text: str):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel; replies are consumed in order"""

    def __init__(self, replies=None):
        self.replies: List = list(replies or [VERDICT_JSON])
        self.calls = 0

    async def generate_content_async(self, contents, generation_config=None):
        self.calls += 1
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return FakeResponse(reply)


async def _no_sleep(_seconds: float) -> None:
    return None


def make_png(width: int = 32, height: int = 24) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(20, 120, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture()
def fake_model() -> FakeModel:
    return FakeModel()


@pytest.fixture()
def vision_client(fake_model) -> VisionClient:
    return VisionClient(model=fake_model, max_retries=2, backoff_seconds=0.01, sleep=_no_sleep)


@pytest.fixture()
def config_engine() -> ConfigEngine:
    engine = ConfigEngine(CATALOG_FILE)
    engine.load_all()
    return engine


@pytest.fixture()
def chart_storage(tmp_path) -> ChartStorage:
    return ChartStorage(tmp_path / "charts", "test-secret")


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        future=True,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def app(db_session, config_engine, chart_storage, vision_client) -> FastAPI:
    app = FastAPI()
    app.include_router(analyze.router, prefix="/api/v1/analyze", tags=["Analyze"])
    app.include_router(analyses.router, prefix="/api/v1/analyses", tags=["Analyses"])
    app.include_router(feedback.router, prefix="/api/v1/feedback", tags=["Feedback"])
    app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["Catalog"])
    app.include_router(charts.router, prefix="/api/v1/charts", tags=["Charts"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    app.state.config_engine = config_engine
    app.state.chart_storage = chart_storage
    app.state.analysis_service = ChartAnalysisService(
        vision_client=vision_client,
        timeframe_registry=config_engine.timeframe_registry,
        default_display_tz="UTC",
    )

    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
