"""
Database migration runner for PlateDashboard.

Applies the raw-SQL Alembic migrations under ``alembic/versions``.

Usage:
    # From Python:
    from migrate import run_migrations
    run_migrations()

    # From CLI:
    python migrate.py
    python migrate.py --status
"""

import sys
import argparse
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine

logger = logging.getLogger(__name__)

# Directory where this file lives (project root)
PROJECT_ROOT = Path(__file__).parent.resolve()


def _get_database_url() -> str:
    """Get database URL from application config."""
    from config import get_config
    return get_config().database.connection_string


def _get_alembic_config(db_url: str) -> Config:
    """Create an in-memory Alembic config for the project's migrations."""
    cfg = Config()
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def _get_pending_migrations(db_url: str, alembic_cfg: Config) -> list:
    """Check for pending migrations.

    Returns list of pending revision IDs, empty if database is up to date.
    """
    engine = create_engine(db_url)
    try:
        with engine.connect() as conn:
            context = MigrationContext.configure(conn)
            current_rev = context.get_current_revision()

        script = ScriptDirectory.from_config(alembic_cfg)
        head_rev = script.get_current_head()

        if current_rev == head_rev:
            return []

        pending = []
        for rev in script.walk_revisions():
            if rev.revision == current_rev:
                break
            pending.append(rev.revision)

        return pending
    finally:
        engine.dispose()


def run_migrations() -> bool:
    """Run all pending Alembic migrations.

    Returns:
        True if migrations ran successfully (or no migrations needed),
        False if migrations failed.
    """
    try:
        db_url = _get_database_url()
        alembic_cfg = _get_alembic_config(db_url)

        pending = _get_pending_migrations(db_url, alembic_cfg)
        if not pending:
            logger.info("Database schema is up to date, no migrations needed")
            return True

        logger.info("Found %d pending migration(s): %s", len(pending), pending)
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
        return True

    except Exception as e:
        logger.error("Database migration failed: %s", e)
        return False


def get_migration_status() -> dict:
    """Report the head revision and any revisions not yet applied."""
    db_url = _get_database_url()
    alembic_cfg = _get_alembic_config(db_url)
    script = ScriptDirectory.from_config(alembic_cfg)
    pending = _get_pending_migrations(db_url, alembic_cfg)
    return {
        "head": script.get_current_head(),
        "pending": pending,
        "up_to_date": not pending,
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Apply PlateDashboard database migrations")
    parser.add_argument(
        "--status", action="store_true",
        help="Show pending migrations without applying them",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.status:
        status = get_migration_status()
        print(f"Head revision: {status['head']}")
        print(f"Pending: {', '.join(status['pending']) or 'none'}")
        return 0

    return 0 if run_migrations() else 1


if __name__ == "__main__":
    sys.exit(main())
