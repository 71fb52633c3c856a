"""Pytest fixtures: app on a throwaway SQLite file, seeded catalog, researcher token."""

import random

import httpx
import pytest
from sqlalchemy import select

from rankstudy.core.config import Settings
from rankstudy.core.db import Database
from rankstudy.core.security import create_jwt_token, hash_password
from rankstudy.main import create_app
from rankstudy.models.participant import ParticipantCode
from rankstudy.models.researcher import Researcher
from rankstudy.models.video import Video


STRATA = [("high", "m"), ("high", "f"), ("low", "m"), ("low", "f")]


@pytest.fixture
def settings(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'study.db'}"
    return Settings(
        _env_file=None,
        DATABASE_URL=url,
        SERVICE_DATABASE_URL=url,
        ENVIRONMENT="test",
        JWT_SECRET="test-secret",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
async def database(settings):
    db = Database.from_settings(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(settings, database):
    app = create_app(settings, database)
    app.state.playlist_rng = random.Random(1234)
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def make_code(database):
    """Factory: insert a participant code and return it."""

    async def _make(code="123456", group=1, **fields):
        async with database.privileged() as s:
            p = ParticipantCode(code=code, group=group, **fields)
            s.add(p)
            await s.commit()
            await s.refresh(p)
            return p

    return _make


@pytest.fixture
def make_video(database):
    """Factory: insert one video and return it."""
    counter = {"n": 0}

    async def _make(group=1, sex=None, nar_level=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("title", f"Video {n}")
        fields.setdefault("url", f"https://videos.example.org/{n}.mp4")
        async with database.privileged() as s:
            v = Video(group=group, sex=sex, nar_level=nar_level, **fields)
            s.add(v)
            await s.commit()
            await s.refresh(v)
            return v

    return _make


@pytest.fixture
def make_stratified_catalog(make_video):
    """Factory: `per_stratum` videos in each nar_level x sex stratum for a group."""

    async def _make(group=1, per_stratum=3):
        videos = []
        for nar, sex in STRATA:
            for _ in range(per_stratum):
                videos.append(await make_video(group=group, sex=sex, nar_level=nar))
        return videos

    return _make


@pytest.fixture
def fetch_participant(database):
    async def _fetch(code):
        async with database.restricted() as s:
            return await s.scalar(select(ParticipantCode).where(ParticipantCode.code == code))

    return _fetch


@pytest.fixture
async def researcher_headers(database, settings):
    async with database.privileged() as s:
        r = Researcher(email="lab@psy-lab.org", hashed_password=hash_password("correct horse"))
        s.add(r)
        await s.commit()
        await s.refresh(r)
    token = create_jwt_token({"sub": str(r.id)}, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def start_participant(client):
    """Verify a code through the API so the client holds the participant cookies."""

    async def _start(code="123456"):
        r = await client.post("/verify-code", json={"code": code})
        assert r.status_code == 200, r.text
        return r

    return _start
