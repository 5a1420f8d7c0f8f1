"""Alembic migrations for the alert and trigger history tables."""
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context
import asyncio
import sys

from pricewatch.core.database import Base, mask_db_url
from pricewatch.models import *  # noqa  registers AlertRecord and TriggerEventRecord
from pricewatch.core.config import settings

config = context.config

# DATABASE_URL from the environment wins over alembic.ini
database_url = settings.database_url
config.set_main_option("sqlalchemy.url", database_url)

print(f"Migrating pricewatch database: {mask_db_url(database_url)}", file=sys.stderr)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # Batch mode so ALTERs work on the default SQLite store
    context.configure(target_metadata=target_metadata, render_as_batch=True, **kwargs)


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Apply migrations through the async engine."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = database_url

    connectable = async_engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
