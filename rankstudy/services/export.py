from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.ranking import Ranking
from rankstudy.models.video import Video
from rankstudy.services.codes import find_active_participant
from rankstudy.services.errors import NotFoundError, PersistenceError
from rankstudy.services.rankings import load_rankings


logger = logging.getLogger(__name__)

CSV_HEADER = "title,nar_level,sex,url,rank"


def _esc(value: str | None) -> str:
    return (value or "").replace('"', '""')


def format_results_csv(rankings: List[Ranking], videos: Dict[int, Video]) -> str:
    """CSV в формате, который ждут скрипты анализа.

    Формат строки фиксированный, включая пробелы: "title",nar, sex,"url", rank
    """
    lines = [CSV_HEADER]
    for r in rankings:
        v = videos.get(r.video_id)
        if v is None:
            continue
        lines.append(
            f'"{_esc(v.title)}",{_esc(v.nar_level)}, {_esc(v.sex)},"{_esc(v.url)}", {r.rank}'
        )
    return "\n".join(lines)


async def export_results(session: AsyncSession, code: str) -> str:
    participant = await find_active_participant(session, code)
    if participant is None:
        raise NotFoundError("Participant not found")

    rankings = await load_rankings(session, participant.id)
    if not rankings:
        raise NotFoundError("No rankings found for this participant")

    try:
        res = await session.execute(
            select(Video).where(Video.id.in_([r.video_id for r in rankings]))
        )
        videos = {v.id: v for v in res.scalars().all()}
    except SQLAlchemyError as e:
        logger.exception("fetching video details for export failed, participant %s", participant.id)
        raise PersistenceError("Failed to fetch video details") from e

    return format_results_csv(rankings, videos)
