from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.participant import ParticipantCode
from rankstudy.models.video import VideoOrder
from rankstudy.services.codes import VERIFICATION_STEP
from rankstudy.services.errors import (
    CodeAlreadyUsedError,
    CodeNotFoundError,
    NotFoundError,
    PersistenceError,
    StaleProgressError,
)


logger = logging.getLogger(__name__)


def current_index(progress_counter: Optional[int], playlist_length: int) -> int:
    """Позиция в плейлисте, зажатая в [0, N].

    Подтверждение кода уже съело шаг 0, поэтому вычитаем VERIFICATION_STEP.
    Битые значения (отрицательные, слишком большие) не роняют клиента.
    """
    raw = (progress_counter or 0) - VERIFICATION_STEP
    return max(0, min(raw, playlist_length))


def completion_counter(playlist_length: int) -> int:
    # подтверждение + N подтверждённых видео
    return playlist_length + VERIFICATION_STEP


def is_completed(progress_counter: Optional[int], playlist_length: int) -> bool:
    return (progress_counter or 0) >= completion_counter(playlist_length)


@dataclass
class ProgressView:
    """Что показать участнику после перезагрузки страницы."""

    status: str  # watching | completed
    position: int
    current_video_index: Optional[int]
    ranking_pool: List[VideoOrder]


def resume(progress_counter: Optional[int], playlist: List[VideoOrder]) -> ProgressView:
    n = len(playlist)
    position = current_index(progress_counter, n)

    if n == 0 or is_completed(progress_counter, n):
        return ProgressView(
            status="completed",
            position=position,
            current_video_index=None,
            ranking_pool=list(playlist),
        )

    shown = min(position, n - 1)
    # просмотренные + текущее уже в пуле для drag-and-drop
    return ProgressView(
        status="watching",
        position=position,
        current_video_index=shown,
        ranking_pool=list(playlist[: shown + 1]),
    )


async def _read_counter(session: AsyncSession, participant_id: int) -> Optional[int]:
    return await session.scalar(
        select(ParticipantCode.progress_counter).where(ParticipantCode.id == participant_id)
    )


async def advance(
    privileged: AsyncSession,
    participant: ParticipantCode,
    *,
    playlist_length: int,
    expected_counter: Optional[int] = None,
) -> int:
    """+1 к progress_counter; возвращает новое значение.

    Инкремент делается в SQL (progress_counter + 1), без read-modify-write.
    С expected_counter -- оптимистическая блокировка: если значение в базе
    другое, StaleProgressError. Без него повторный запрос инкрементит дважды.
    Дальше completion_counter(N) счётчик не уходит.
    """
    if playlist_length <= 0:
        raise NotFoundError("Playlist has not been created yet")

    limit = completion_counter(playlist_length)

    stmt = (
        update(ParticipantCode)
        .where(
            ParticipantCode.id == participant.id,
            ParticipantCode.is_active.is_(True),
            ParticipantCode.is_used.is_(False),
            ParticipantCode.progress_counter < limit,
        )
        .values(progress_counter=ParticipantCode.progress_counter + 1)
        .execution_options(synchronize_session=False)
    )
    if expected_counter is not None:
        stmt = stmt.where(ParticipantCode.progress_counter == expected_counter)

    try:
        res = await privileged.execute(stmt)
        await privileged.commit()
        counter = await _read_counter(privileged, participant.id)
    except SQLAlchemyError as e:
        await privileged.rollback()
        logger.exception("updating progress failed for participant %s", participant.id)
        raise PersistenceError("Failed to update progress") from e

    if res.rowcount == 1:
        logger.info("participant %s progress -> %s", participant.id, counter)
        return counter

    # ничего не обновили -- разбираемся почему
    state = await privileged.execute(
        select(ParticipantCode.is_active, ParticipantCode.is_used).where(
            ParticipantCode.id == participant.id
        )
    )
    row = state.one_or_none()
    if row is None or not row.is_active:
        raise CodeNotFoundError("Participant not found")
    if row.is_used:
        raise CodeAlreadyUsedError()
    if expected_counter is not None and counter != expected_counter:
        logger.warning(
            "stale progress for participant %s: expected %s, stored %s",
            participant.id, expected_counter, counter,
        )
        raise StaleProgressError()

    # уже на границе, двигать некуда
    logger.info("participant %s already at the last step (%s)", participant.id, counter)
    return counter
