from __future__ import annotations

import random

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.core.config import Settings, request_settings
from rankstudy.core.db import get_privileged_session, get_session
from rankstudy.core.session import bind_participant, participant_code_cookie
from rankstudy.schemas.participant import (
    ExperimentOut,
    MessageOut,
    ParticipantOut,
    PlaylistVideoOut,
    ProgressIn,
    ProgressOut,
    RankingsIn,
    SuccessOut,
    VerifyCodeIn,
)
from rankstudy.services import codes, playlist, progress, rankings
from rankstudy.services.errors import CodeNotFoundError


router = APIRouter(tags=["participant"])


def playlist_rng(request: Request) -> random.Random | None:
    """Источник случайности для плейлиста; тесты подставляют свой seed."""
    return getattr(request.app.state, "playlist_rng", None)


@router.post("/verify-code", response_model=MessageOut)
async def verify_code(
    body: VerifyCodeIn,
    response: Response,
    session: AsyncSession = Depends(get_session),
    privileged: AsyncSession = Depends(get_privileged_session),
    settings: Settings = Depends(request_settings),
):
    result, participant = await codes.authenticate(session, body.code)

    if result is codes.AuthResult.NOT_FOUND:
        raise HTTPException(status_code=400, detail="Code doesn't exist.")
    if result is codes.AuthResult.ALREADY_USED:
        raise HTTPException(status_code=400, detail="Code has already been used.")

    assert participant is not None
    await codes.mark_verified(privileged, participant.id)
    bind_participant(response, body.code, settings)
    return MessageOut(message="Code verified successfully")


@router.get("/experiment", response_model=ExperimentOut)
async def get_experiment(
    code: str = Depends(participant_code_cookie),
    session: AsyncSession = Depends(get_session),
    privileged: AsyncSession = Depends(get_privileged_session),
    settings: Settings = Depends(request_settings),
    rng: random.Random | None = Depends(playlist_rng),
):
    participant = await codes.require_participant(session, code)

    orders = await playlist.get_or_build_playlist(
        session,
        privileged,
        participant,
        policy=settings.PLAYLIST_POLICY,
        rng=rng,
        per_stratum=settings.STRATUM_SAMPLE_SIZE,
    )
    view = progress.resume(participant.progress_counter, orders)

    return ExperimentOut(
        status=view.status,
        participant=ParticipantOut.model_validate(participant),
        videos=[
            PlaylistVideoOut(
                id=o.video.id,
                url=o.video.url,
                group=o.video.group,
                thumbnail=o.video.thumbnail,
                order=o.order,
            )
            for o in orders
        ],
        position=view.position,
        current_video_index=view.current_video_index,
        ranking_pool=[o.video_id for o in view.ranking_pool],
    )


@router.post("/experiment", response_model=ProgressOut)
async def update_experiment(
    body: ProgressIn,
    code: str = Depends(participant_code_cookie),
    session: AsyncSession = Depends(get_session),
    privileged: AsyncSession = Depends(get_privileged_session),
):
    participant = await codes.find_active_participant(session, code)
    if participant is None:
        raise CodeNotFoundError("Participant not found")

    orders = await playlist.load_playlist(session, participant.id)
    counter = await progress.advance(
        privileged,
        participant,
        playlist_length=len(orders),
        expected_counter=body.expected_counter,
    )
    return ProgressOut(progress_counter=counter)


@router.post("/experiment/rankings", response_model=SuccessOut)
async def submit_rankings(
    body: RankingsIn,
    code: str = Depends(participant_code_cookie),
    session: AsyncSession = Depends(get_session),
    privileged: AsyncSession = Depends(get_privileged_session),
):
    participant = await codes.find_active_participant(session, code)
    if participant is None:
        raise CodeNotFoundError("Participant not found")

    orders = await playlist.load_playlist(session, participant.id)
    video_ids = rankings.validate_ranking(
        [r.video_id for r in body.rankings],
        [o.video_id for o in orders],
    )
    rankings.require_finished(participant.progress_counter, len(orders))
    await rankings.submit_rankings(privileged, participant.id, video_ids)
    return SuccessOut()
