import os
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

from rankstudy.models.base import Base
from rankstudy.models import participant, ranking, researcher, video  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# порядок важен: DDL делаем под service role, обычной роли это не положено
URL_ENV_VARS = ("ALEMBIC_DATABASE_URL", "SERVICE_DATABASE_URL", "DATABASE_URL")


def get_url() -> str:
    for name in URL_ENV_VARS:
        url = os.getenv(name)
        if url:
            return url
    raise RuntimeError(f"one of {', '.join(URL_ENV_VARS)} must be set")


def _configure(**kwargs):
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline():
    _configure(url=get_url(), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = create_engine(get_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
