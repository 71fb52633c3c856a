from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.participant import ParticipantCode
from rankstudy.models.video import Video, VideoOrder
from rankstudy.services.errors import InsufficientDataError, NotFoundError, PersistenceError


logger = logging.getLogger(__name__)

# (nar_level, sex)
STRATA: Tuple[Tuple[str, str], ...] = (
    ("high", "m"),
    ("high", "f"),
    ("low", "m"),
    ("low", "f"),
)


def shuffle_uniform(videos: Sequence[Video], rng: random.Random, per_stratum: int = 2) -> List[Video]:
    """Все видео группы в случайном порядке (Fisher-Yates)."""
    out = list(videos)
    rng.shuffle(out)
    return out


def partition_strata(videos: Sequence[Video]) -> Dict[Tuple[str, str], List[Video]]:
    buckets: Dict[Tuple[str, str], List[Video]] = {s: [] for s in STRATA}
    for v in videos:
        key = (v.nar_level, v.sex)
        # видео без демографии в стратифицированную выборку не попадают
        if key in buckets:
            buckets[key].append(v)
    return buckets


def draw_stratified(videos: Sequence[Video], rng: random.Random, per_stratum: int = 2) -> List[Video]:
    """По per_stratum видео из каждой страты nar_level x sex, потом общий shuffle.

    Если хоть в одной страте видео меньше, чем нужно -- InsufficientDataError,
    ничего не сохраняем.
    """
    buckets = partition_strata(videos)

    short = {
        f"{nar}/{sex}": len(buckets[(nar, sex)])
        for nar, sex in STRATA
        if len(buckets[(nar, sex)]) < per_stratum
    }
    if short:
        raise InsufficientDataError(
            f"Not enough videos: need {per_stratum} per stratum, have {short}"
        )

    picked: List[Video] = []
    for stratum in STRATA:
        # сортируем по id, чтобы при одном seed выборка не зависела от порядка строк из БД
        pool = sorted(buckets[stratum], key=lambda v: v.id)
        picked.extend(rng.sample(pool, per_stratum))

    rng.shuffle(picked)
    return picked


PlaylistPolicy = Callable[[Sequence[Video], random.Random, int], List[Video]]

POLICIES: Dict[str, PlaylistPolicy] = {
    "uniform": shuffle_uniform,
    "stratified": draw_stratified,
}


async def load_playlist(session: AsyncSession, participant_id: int) -> List[VideoOrder]:
    try:
        rows = await session.execute(
            select(VideoOrder)
            .where(VideoOrder.participant_id == participant_id)
            .order_by(VideoOrder.order)
        )
        return list(rows.scalars().all())
    except SQLAlchemyError as e:
        logger.exception("fetching video orders failed for participant %s", participant_id)
        raise PersistenceError("Failed to fetch video orders") from e


async def _candidate_videos(session: AsyncSession, group: int) -> List[Video]:
    try:
        rows = await session.execute(
            select(Video)
            .where(Video.group == group, Video.is_active.is_(True))
            .order_by(Video.id)
        )
        return list(rows.scalars().all())
    except SQLAlchemyError as e:
        logger.exception("fetching videos failed for group %s", group)
        raise PersistenceError("Failed to fetch videos") from e


async def get_or_build_playlist(
    session: AsyncSession,
    privileged: AsyncSession,
    participant: ParticipantCode,
    *,
    policy: str = "uniform",
    rng: random.Random | None = None,
    per_stratum: int = 2,
) -> List[VideoOrder]:
    """Возвращает плейлист участника, при первом обращении -- собирает его.

    Идемпотентно: если порядок уже сохранён, он возвращается как есть.
    Запись идёт через привилегированную сессию (участник ещё не владеет строками).
    """
    existing = await load_playlist(session, participant.id)
    if existing:
        return existing

    try:
        choose = POLICIES[policy]
    except KeyError:
        raise ValueError(f"Unknown playlist policy: {policy}")

    videos = await _candidate_videos(session, participant.group)
    if not videos:
        raise NotFoundError("No videos available for this group")

    rng = rng or random.Random()
    ordered = choose(videos, rng, per_stratum)

    rows = [
        VideoOrder(participant_id=participant.id, video_id=v.id, order=idx)
        for idx, v in enumerate(ordered, start=1)
    ]
    privileged.add_all(rows)
    try:
        await privileged.commit()
    except IntegrityError:
        # параллельный запрос успел сохранить свой порядок -- берём его
        await privileged.rollback()
        logger.info("playlist for participant %s was built concurrently", participant.id)
    except SQLAlchemyError as e:
        await privileged.rollback()
        logger.exception("creating video orders failed for participant %s", participant.id)
        raise PersistenceError("Failed to create video orders") from e
    else:
        logger.info(
            "built playlist for participant %s: policy=%s size=%d",
            participant.id, policy, len(rows),
        )

    playlist = await load_playlist(session, participant.id)
    if not playlist:
        raise PersistenceError("Failed to create video orders")
    return playlist
