from __future__ import annotations

import enum
import logging
import secrets

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.models.participant import ParticipantCode
from rankstudy.services.errors import CodeAlreadyUsedError, CodeNotFoundError, PersistenceError


logger = logging.getLogger(__name__)

# подтверждение кода само по себе считается шагом: счётчик 0 -> 1
VERIFICATION_STEP = 1

_GENERATE_ATTEMPTS = 10


class AuthResult(str, enum.Enum):
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"
    OK = "ok"


async def find_active_participant(session: AsyncSession, code: str) -> ParticipantCode | None:
    try:
        return await session.scalar(
            select(ParticipantCode).where(
                ParticipantCode.code == code,
                ParticipantCode.is_active.is_(True),
            )
        )
    except SQLAlchemyError as e:
        logger.exception("lookup of participant code failed")
        raise PersistenceError() from e


async def authenticate(session: AsyncSession, code: str) -> tuple[AuthResult, ParticipantCode | None]:
    """Классифицирует код: NOT_FOUND / ALREADY_USED / OK."""
    participant = await find_active_participant(session, code)
    if participant is None:
        logger.warning("Participant code doesn't exist")
        return AuthResult.NOT_FOUND, None

    if participant.is_used:
        logger.warning("Participant code %s has been used", participant.id)
        return AuthResult.ALREADY_USED, participant

    logger.info("Welcome participant %s", participant.id)
    return AuthResult.OK, participant


async def require_participant(session: AsyncSession, code: str) -> ParticipantCode:
    """Участник по коду из cookie; бросает ошибку, если код не годится."""
    result, participant = await authenticate(session, code)
    if result is AuthResult.NOT_FOUND:
        raise CodeNotFoundError()
    if result is AuthResult.ALREADY_USED:
        raise CodeAlreadyUsedError()
    assert participant is not None
    return participant


async def mark_verified(privileged: AsyncSession, participant_id: int) -> None:
    """Первый шаг прогресса: 0 -> 1.

    Условный апдейт, поэтому повторный вход тем же кодом (например, с другого
    устройства) не пропускает видео.
    """
    try:
        res = await privileged.execute(
            update(ParticipantCode)
            .where(
                ParticipantCode.id == participant_id,
                ParticipantCode.progress_counter == 0,
            )
            .values(progress_counter=VERIFICATION_STEP)
            .execution_options(synchronize_session=False)
        )
        await privileged.commit()
    except SQLAlchemyError as e:
        await privileged.rollback()
        logger.exception("verification step failed for participant %s", participant_id)
        raise PersistenceError() from e

    if res.rowcount == 0:
        logger.info("participant %s resumed, progress untouched", participant_id)


def _random_code(length: int) -> str:
    # без ведущего нуля, чтобы код не терялся в таблицах/экселе
    first = str(secrets.randbelow(9) + 1)
    return first + "".join(str(secrets.randbelow(10)) for _ in range(length - 1))


async def generate_code(session: AsyncSession, *, group: int, length: int) -> ParticipantCode:
    for _ in range(_GENERATE_ATTEMPTS):
        candidate = _random_code(length)
        exists = await session.scalar(
            select(ParticipantCode.id).where(ParticipantCode.code == candidate)
        )
        if exists is not None:
            continue

        participant = ParticipantCode(code=candidate, group=group)
        session.add(participant)
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("failed to store generated code")
            raise PersistenceError() from e
        await session.refresh(participant)
        logger.info("generated participant code %s (group %s)", participant.id, group)
        return participant

    logger.error("could not find a free participant code after %d attempts", _GENERATE_ATTEMPTS)
    raise PersistenceError()


async def deactivate(session: AsyncSession, participant_id: int) -> bool:
    """Soft delete. Плейлист и ранжирования остаются для истории."""
    try:
        res = await session.execute(
            update(ParticipantCode)
            .where(ParticipantCode.id == participant_id, ParticipantCode.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("deactivate failed for participant %s", participant_id)
        raise PersistenceError() from e
    if res.rowcount:
        logger.info("participant code %s deactivated", participant_id)
    return bool(res.rowcount)


async def list_participants(
    session: AsyncSession,
    *,
    group: int | None = None,
    is_used: bool | None = None,
) -> list[ParticipantCode]:
    stmt = select(ParticipantCode).where(ParticipantCode.is_active.is_(True))
    if group is not None:
        stmt = stmt.where(ParticipantCode.group == group)
    if is_used is not None:
        stmt = stmt.where(ParticipantCode.is_used.is_(is_used))
    stmt = stmt.order_by(ParticipantCode.created_at.desc(), ParticipantCode.id.desc())
    return list((await session.execute(stmt)).scalars().all())
