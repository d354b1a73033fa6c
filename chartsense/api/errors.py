"""
Analysis error -> HTTP status mapping
"""

from typing import Tuple

from chartsense.infrastructure.llm.vision_client import (
    InvalidChartImageError,
    VisionAnalysisError,
    VisionConfigurationError,
    VisionTimeoutError,
)


def analysis_error_status(exc: Exception) -> Tuple[int, str]:
    """
    Status code and client-facing message for an analysis failure.

    Unknown exceptions are not mapped here; callers let them propagate.
    """
    if isinstance(exc, InvalidChartImageError):
        return 400, str(exc)
    if isinstance(exc, VisionConfigurationError):
        return 503, "Chart analysis is not configured"
    if isinstance(exc, VisionTimeoutError):
        return 504, "Chart analysis timed out. Try again with a smaller image."
    if isinstance(exc, VisionAnalysisError):
        return 502, "Chart analysis failed"
    raise TypeError(f"Not an analysis error: {exc!r}")


ANALYSIS_ERRORS = (InvalidChartImageError, VisionAnalysisError)
