"""
Chart download via signed URL
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
import logging

from chartsense.api.dependencies import get_chart_storage
from chartsense.infrastructure.storage.chart_storage import ChartStorage

logger = logging.getLogger(__name__)
router = APIRouter()

MEDIA_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


@router.get("/{path:path}")
async def download_chart(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    storage: ChartStorage = Depends(get_chart_storage),
):
    """Serve a stored chart if the signature is valid and unexpired"""
    if not storage.verify_signature(path, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    if not storage.exists(path):
        raise HTTPException(status_code=404, detail="Chart not found")

    data = await storage.read(path)
    extension = path.rsplit(".", 1)[-1].lower()
    return Response(content=data, media_type=MEDIA_TYPES.get(extension, "application/octet-stream"))
