"""
AssetDrop - Alembic Migration Environment Configuration

Async SQLAlchemy migrations with model detection for 'autogenerate'.
"""
import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# Add the backend directory to the path so we can import our modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config import settings
from core.database import Base

# Import all models to ensure they are registered with Base.metadata
from models import (  # noqa: F401
    Profile,
    UserToken,
    HealthCheckLog,
    Project,
    FormField,
    Asset,
    ActivityLog,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Not set through set_main_option: the URL may contain '%' which
# ConfigParser would treat as interpolation
DATABASE_URL = settings.DATABASE_URL

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with an async engine."""
    connectable = create_async_engine(
        DATABASE_URL,
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
