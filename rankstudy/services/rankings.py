from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.participant import ParticipantCode
from rankstudy.models.ranking import Ranking
from rankstudy.services.errors import (
    CodeAlreadyUsedError,
    CodeNotFoundError,
    PersistenceError,
    ValidationError,
)
from rankstudy.services.progress import completion_counter, is_completed


logger = logging.getLogger(__name__)


def validate_ranking(video_ids: Sequence[int], playlist_video_ids: Iterable[int]) -> List[int]:
    """Проверяет порядок от клиента; позиция в списке станет rank (с 1).

    Ранжируется весь плейлист целиком: каждое видео ровно один раз.
    """
    if not video_ids:
        raise ValidationError("Rankings cannot be empty")

    allowed = set(playlist_video_ids)
    seen: set[int] = set()
    for pos, vid in enumerate(video_ids):
        if vid not in allowed:
            raise ValidationError(f"Unknown video_id for ranking at position {pos}")
        if vid in seen:
            raise ValidationError(f"Duplicate video_id for ranking at position {pos}")
        seen.add(vid)

    if seen != allowed:
        raise ValidationError("Rankings must include every video in the playlist")
    return list(video_ids)


def require_finished(progress_counter: Optional[int], playlist_length: int):
    if not is_completed(progress_counter, playlist_length):
        raise ValidationError("All videos must be watched before ranking")


async def submit_rankings(
    privileged: AsyncSession,
    participant_id: int,
    video_ids: Sequence[int],
) -> List[Ranking]:
    """Сохраняет ранжирование и гасит код -- одной транзакцией.

    Сначала test-and-set: is_used false -> true (+ used_at, +1 к прогрессу,
    но не выше N + 1). Если строка не обновилась, код уже использован (или
    параллельный запрос успел раньше) -- ничего не пишем. Потом пачка
    Ranking. Любая ошибка откатывает оба изменения.
    """
    now = datetime.now(timezone.utc)
    # video_ids покрывает весь плейлист, так что N = len(video_ids)
    limit = completion_counter(len(video_ids))
    counter = ParticipantCode.progress_counter
    rows = [
        Ranking(participant_id=participant_id, video_id=vid, rank=rank)
        for rank, vid in enumerate(video_ids, start=1)
    ]

    try:
        res = await privileged.execute(
            update(ParticipantCode)
            .where(
                ParticipantCode.id == participant_id,
                ParticipantCode.is_used.is_(False),
                ParticipantCode.is_active.is_(True),
            )
            .values(
                is_used=True,
                used_at=now,
                progress_counter=case((counter < limit, counter + 1), else_=counter),
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            await privileged.rollback()
            is_used = await privileged.scalar(
                select(ParticipantCode.is_used).where(
                    ParticipantCode.id == participant_id,
                    ParticipantCode.is_active.is_(True),
                )
            )
            if is_used is None:
                raise CodeNotFoundError("Participant not found")
            logger.warning("duplicate ranking submission for participant %s", participant_id)
            raise CodeAlreadyUsedError()

        privileged.add_all(rows)
        await privileged.commit()
    except SQLAlchemyError as e:
        await privileged.rollback()
        logger.exception("saving rankings failed for participant %s", participant_id)
        raise PersistenceError("Failed to save rankings") from e

    logger.info("participant %s submitted %d rankings, code consumed", participant_id, len(rows))
    return rows


async def load_rankings(session: AsyncSession, participant_id: int) -> List[Ranking]:
    try:
        res = await session.execute(
            select(Ranking)
            .where(Ranking.participant_id == participant_id)
            .order_by(Ranking.rank)
        )
        return list(res.scalars().all())
    except SQLAlchemyError as e:
        logger.exception("fetching rankings failed for participant %s", participant_id)
        raise PersistenceError() from e
