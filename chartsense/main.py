"""
FastAPI Main Application
Chart analysis API: vision verdict, trade action and candle-aligned schedule
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging
from typing import AsyncGenerator
from sqlalchemy import text

from chartsense import __version__
from chartsense.config import settings
from chartsense.core.logging import setup_logging
from chartsense.infrastructure.db.database import init_db, close_db
from chartsense.domain.services.config_engine import ConfigEngine
from chartsense.domain.services.analysis_service import ChartAnalysisService
from chartsense.infrastructure.llm.vision_client import VisionClient
from chartsense.infrastructure.storage.chart_storage import ChartStorage
from chartsense.utils.time import now_utc, to_iso_z

# Configure logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _resolve(path: str) -> Path:
    candidate = Path(path)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting ChartSense API")
    logger.info("=" * 60)

    # 1. Initialize database
    logger.info("📊 Step 1/3: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    # 2. Load catalog
    logger.info("⚙️  Step 2/3: Loading catalog...")
    config_engine = ConfigEngine(_resolve(settings.CATALOG_FILE))
    config_engine.load_all()
    app.state.config_engine = config_engine
    logger.info(f"   ⏱️  Timeframes: {len(config_engine.timeframe_registry.timeframes)}")
    logger.info(f"   📈 Assets: {len(config_engine.assets)}")

    # 3. Build services
    logger.info("🔧 Step 3/3: Initializing services...")
    app.state.chart_storage = ChartStorage(_resolve(settings.CHART_STORAGE_DIR), settings.SECRET_KEY)
    app.state.analysis_service = ChartAnalysisService(
        vision_client=VisionClient.from_settings(settings),
        timeframe_registry=config_engine.timeframe_registry,
        default_display_tz=settings.DISPLAY_TIMEZONE,
    )
    logger.info("✅ Services initialized")

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down ChartSense API...")
    await close_db()
    logger.info("✅ Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="ChartSense API",
    description="Chart screenshot analysis with candle-aligned entry timing",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check"""
    db_status = "disconnected"
    db_error = None
    try:
        from chartsense.infrastructure.db.database import engine
        if engine is None:
            db_status = "not_initialized"
        else:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
    except Exception as exc:
        db_status = "error"
        db_error = str(exc)

    service = getattr(app.state, "analysis_service", None)
    vision_status = "configured" if service and service.vision_client.is_configured else "not_configured"

    return {
        "status": "ok",
        "timestamp": to_iso_z(now_utc()),
        "version": __version__,
        "environment": settings.APP_ENV,
        "services": {
            "api": "running",
            "database": db_status,
            "vision": vision_status,
        },
        "database_error": db_error,
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "ChartSense API",
        "version": __version__,
        "endpoints": {
            "POST /api/v1/analyze": "Analyze a chart image (not stored)",
            "POST /api/v1/analyses": "Store and analyze a chart image",
            "GET /api/v1/analyses/{id}": "Fetch one analysis",
            "GET /api/v1/analyses": "Analysis history",
            "POST /api/v1/feedback": "Rate an analysis",
            "GET /api/v1/feedback/{id}": "Ratings for an analysis",
            "GET /api/v1/catalog/timeframes": "Available timeframes",
            "GET /health": "API status",
        },
        "docs": "/docs"
    }


# Import and include routers
from chartsense.api.routes import analyze, analyses, feedback, catalog, charts  # noqa: E402

app.include_router(analyze.router, prefix="/api/v1/analyze", tags=["Analyze"])
app.include_router(analyses.router, prefix="/api/v1/analyses", tags=["Analyses"])
app.include_router(feedback.router, prefix="/api/v1/feedback", tags=["Feedback"])
app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["Catalog"])
app.include_router(charts.router, prefix="/api/v1/charts", tags=["Charts"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chartsense.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
