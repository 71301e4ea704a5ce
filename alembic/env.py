import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

import app.models  # noqa: F401  registers every table on Base.metadata
from app.config import settings
from app.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    """`alembic -x db_url=...` wins over alembic.ini, which wins over DATABASE_URL."""
    return context.get_x_argument(as_dictionary=True).get("db_url") or (
        config.get_main_option("sqlalchemy.url") or settings.database_url
    )


def configure(connection: Connection | None = None, **kwargs) -> None:
    url = None if connection is not None else database_url()
    dialect = connection.dialect.name if connection is not None else url.split(":", 1)[0]
    context.configure(
        connection=connection,
        url=url,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=dialect.startswith("sqlite"),
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(database_url(), poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(configure)
    await engine.dispose()


if context.is_offline_mode():
    configure(literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(run_migrations_online())
