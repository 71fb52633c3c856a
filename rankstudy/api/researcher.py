from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.core.config import Settings, request_settings
from rankstudy.core.db import get_session
from rankstudy.core.security import get_current_researcher
from rankstudy.schemas.participant import GenerateCodeIn, ParticipantCodeRead
from rankstudy.schemas.video import VideoCreate, VideoRead, VideoUpdate
from rankstudy.services import catalog, codes


router = APIRouter(
    prefix="/researcher",
    tags=["researcher"],
    dependencies=[Depends(get_current_researcher)],
)


# ---------- коды участников ----------

@router.get("/participants", response_model=list[ParticipantCodeRead])
async def list_participants(
    group: Optional[int] = Query(default=None, ge=1, le=2),
    is_used: Optional[bool] = None,
    session: AsyncSession = Depends(get_session),
):
    return await codes.list_participants(session, group=group, is_used=is_used)


@router.post("/participants", response_model=ParticipantCodeRead, status_code=status.HTTP_201_CREATED)
async def generate_participant_code(
    body: GenerateCodeIn,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(request_settings),
):
    return await codes.generate_code(session, group=body.group, length=settings.CODE_LENGTH)


@router.delete("/participants/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_participant_code(participant_id: int, session: AsyncSession = Depends(get_session)):
    if not await codes.deactivate(session, participant_id):
        raise HTTPException(404, "Participant not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- видео ----------

@router.get("/videos", response_model=list[VideoRead])
async def list_videos(
    group: Optional[int] = Query(default=None, ge=1, le=2),
    session: AsyncSession = Depends(get_session),
):
    return await catalog.list_videos(session, group=group)


@router.post("/videos", response_model=VideoRead, status_code=status.HTTP_201_CREATED)
async def create_video(body: VideoCreate, session: AsyncSession = Depends(get_session)):
    return await catalog.create_video(session, body.model_dump(mode="json"))


@router.patch("/videos/{video_id}", response_model=VideoRead)
async def update_video(video_id: int, body: VideoUpdate, session: AsyncSession = Depends(get_session)):
    return await catalog.update_video(session, video_id, body.model_dump(mode="json", exclude_unset=True))


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(video_id: int, session: AsyncSession = Depends(get_session)):
    await catalog.deactivate_video(session, video_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
