import uuid

from fastapi import Cookie, Response

from rankstudy.core.config import Settings
from rankstudy.services.errors import AuthError


PARTICIPANT_COOKIE = "participant_code"
SESSION_COOKIE = "session_id"


def bind_participant(response: Response, code: str, settings: Settings) -> str:
    """Привязывает подтверждённый код к браузеру: две HTTP-only cookie на сутки."""
    session_id = str(uuid.uuid4())
    for name, value in ((PARTICIPANT_COOKIE, code), (SESSION_COOKIE, session_id)):
        response.set_cookie(
            name,
            value,
            max_age=settings.PARTICIPANT_COOKIE_MAX_AGE,
            httponly=True,
            secure=settings.secure_cookies,
            samesite="lax",
        )
    return session_id


def participant_code_cookie(participant_code: str | None = Cookie(default=None)) -> str:
    """FastAPI dependency: код участника из cookie или 401."""
    if not participant_code:
        raise AuthError()
    return participant_code
