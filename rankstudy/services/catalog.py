from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.video import Video
from rankstudy.services.errors import NotFoundError, PersistenceError, StudyError
from rankstudy.services.thumbnails import drive_url_to_proxy


logger = logging.getLogger(__name__)


class DuplicateVideoError(StudyError):
    status_code = 409
    message = "A video with this title or URL already exists."


async def _check_unique(session: AsyncSession, data: Dict[str, Any], exclude_id: Optional[int] = None):
    # форма админки показывает ошибку у конкретного поля, поэтому проверяем заранее
    for field in ("title", "url"):
        value = data.get(field)
        if value is None:
            continue
        stmt = select(Video.id).where(getattr(Video, field) == value)
        if exclude_id is not None:
            stmt = stmt.where(Video.id != exclude_id)
        if await session.scalar(stmt) is not None:
            raise DuplicateVideoError(f"A video with this {field} already exists.")


def _with_proxy(data: Dict[str, Any]) -> Dict[str, Any]:
    if "thumbnail_url" in data:
        thumb = data["thumbnail_url"] or None
        data["thumbnail_url"] = thumb
        data["thumbnail_proxy_url"] = drive_url_to_proxy(thumb)
    return data


async def _commit(session: AsyncSession, op: str):
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateVideoError() from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("%s failed", op)
        raise PersistenceError() from e


async def list_videos(session: AsyncSession, *, group: Optional[int] = None) -> List[Video]:
    stmt = select(Video).where(Video.is_active.is_(True))
    if group is not None:
        stmt = stmt.where(Video.group == group)
    stmt = stmt.order_by(Video.group, Video.id)
    return list((await session.execute(stmt)).scalars().all())


async def get_active_video(session: AsyncSession, video_id: int) -> Video:
    video = await session.get(Video, video_id)
    if video is None or not video.is_active:
        raise NotFoundError("Video not found")
    return video


async def create_video(session: AsyncSession, data: Dict[str, Any]) -> Video:
    data = _with_proxy(dict(data))
    await _check_unique(session, data)

    video = Video(**data, is_active=True)
    session.add(video)
    await _commit(session, "create video")
    await session.refresh(video)
    logger.info("video %s created (group %s)", video.id, video.group)
    return video


async def update_video(session: AsyncSession, video_id: int, data: Dict[str, Any]) -> Video:
    video = await get_active_video(session, video_id)
    data = _with_proxy(dict(data))
    await _check_unique(session, data, exclude_id=video_id)

    for k, v in data.items():
        setattr(video, k, v)
    await _commit(session, "update video")
    await session.refresh(video)
    return video


async def deactivate_video(session: AsyncSession, video_id: int) -> None:
    # уже собранные плейлисты и ранжирования ссылаются на видео -- не удаляем
    video = await get_active_video(session, video_id)
    video.is_active = False
    await _commit(session, "deactivate video")
    logger.info("video %s deactivated", video_id)
