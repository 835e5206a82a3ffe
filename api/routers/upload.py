from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.core.config import get_settings
from api.services.image_service import ImageProcessingError, max_size_for, resize_image, store_image

router = APIRouter(prefix="/api", tags=["upload"])
logger = logging.getLogger(__name__)


@router.post("/upload")
async def upload_image(request: Request, file: UploadFile | None = File(None), kind: str = Form("photo", alias="type")):
    settings = getattr(request.app.state, "settings", None) or get_settings()
    if file is None:
        return JSONResponse({"error": "No file provided"}, status_code=400)
    data = await file.read()
    if not data:
        return JSONResponse({"error": "No file provided"}, status_code=400)
    if len(data) > settings.upload_max_bytes:
        return JSONResponse({"error": "File too large"}, status_code=400)
    try:
        payload = resize_image(data, max_size_for(kind), quality=settings.upload_jpeg_quality)
        url = store_image(payload, settings.uploads_dir)
    except ImageProcessingError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception:
        logger.exception("upload.failed")
        return JSONResponse({"error": "Failed to upload image"}, status_code=500)
    logger.info("upload.stored", extra={"original_size": len(data), "optimized_size": len(payload)})
    return {"url": url, "originalSize": len(data), "optimizedSize": len(payload)}
