import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from rankstudy.core.config import Settings, request_settings
from rankstudy.services.thumbnails import PROXY_ROUTE, ThumbnailFetchError, fetch_thumbnail, is_allowed


logger = logging.getLogger(__name__)

router = APIRouter(tags=["thumbnails"])


@router.get(PROXY_ROUTE)
async def proxy_image(url: str | None = None, settings: Settings = Depends(request_settings)):
    if not url:
        raise HTTPException(400, "Missing url parameter")
    if not is_allowed(url, settings.THUMBNAIL_HOSTS):
        raise HTTPException(400, "URL host is not allowed")

    try:
        content, content_type = await fetch_thumbnail(url, hosts=settings.THUMBNAIL_HOSTS)
    except ThumbnailFetchError as e:
        logger.warning("thumbnail fetch failed for %s: %s", url, e)
        raise HTTPException(502, "Failed to fetch image")

    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
