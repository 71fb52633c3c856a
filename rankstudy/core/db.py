import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from rankstudy.core.config import Settings
from rankstudy.models import participant, ranking, researcher, video  # noqa: F401  регистрируем таблицы
from rankstudy.models.base import Base


logger = logging.getLogger(__name__)


def _to_async_url(dsn: str) -> str:
    # превращаем postgresql://... -> postgresql+asyncpg://...
    return dsn.replace("postgresql://", "postgresql+asyncpg://", 1)


def _make_engine(dsn: str) -> AsyncEngine:
    return create_async_engine(
        _to_async_url(dsn),
        pool_pre_ping=True,
        future=True,
    )


class Database:
    """Два доступа к одной базе.

    restricted  -- роль под RLS, для чтений
    privileged  -- service role, мимо RLS; только для записей, которые
                   делаются до того, как участник "владеет" строками
    """

    def __init__(self, restricted_url: str, privileged_url: str | None = None):
        if privileged_url is None:
            logger.warning("SERVICE_DATABASE_URL not set, privileged access uses DATABASE_URL")
            privileged_url = restricted_url

        self.restricted_engine = _make_engine(restricted_url)
        self.privileged_engine = _make_engine(privileged_url)

        self.restricted: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.restricted_engine, expire_on_commit=False, autoflush=False
        )
        self.privileged: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.privileged_engine, expire_on_commit=False, autoflush=False
        )
        logger.info("SQLAlchemy async engines initialized")

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.DATABASE_URL, settings.SERVICE_DATABASE_URL)

    async def create_all(self):
        async with self.privileged_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.restricted_engine.dispose()
        await self.privileged_engine.dispose()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: сессия с ограниченными правами (чтения)."""
    db: Database = request.app.state.database
    async with db.restricted() as session:
        yield session


async def get_privileged_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: привилегированная сессия (мимо RLS)."""
    db: Database = request.app.state.database
    async with db.privileged() as session:
        yield session
