"""
Alembic environment for PlateDashboard.

migrate.py builds the Alembic config in memory, so there is no
alembic.ini. The database URL comes from ``sqlalchemy.url`` when the
caller set it, otherwise from DatabaseConfig.
"""

import sys
import os
import logging

from sqlalchemy import create_engine, pool
from alembic import context

# Project root on the path so config can be imported when alembic runs from the CLI
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logger = logging.getLogger("alembic.env")

config = context.config

# Raw SQL migrations, nothing to autogenerate from
target_metadata = None


def get_database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url

    from config import get_config
    return get_config().database.connection_string


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations against the live database, one transaction each."""
    engine = create_engine(get_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                transaction_per_migration=True,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    logger.info("Generating migration SQL (offline mode)")
    run_migrations_offline()
else:
    run_migrations_online()
