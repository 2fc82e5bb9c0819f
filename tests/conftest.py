"""
Pytest configuration and fixtures for PlateDashboard tests.
"""

import json
import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from unittest.mock import patch

import pytest
import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment variables before importing config
# Use a SEPARATE test database to avoid polluting development data
os.environ['ENVIRONMENT'] = 'development'
os.environ['DB_HOST'] = os.environ.get('TEST_DB_HOST', 'localhost')
os.environ['DB_PORT'] = '5432'
os.environ['DB_CONNECT_TIMEOUT'] = '3'
os.environ['POSTGRES_DB'] = 'plate_dashboard_test'
os.environ['POSTGRES_USER'] = 'plate_user'
os.environ['POSTGRES_PASSWORD'] = 'plate_password'
# Tests drive cleanups directly; never start the background loop
os.environ['RETENTION_SCHEDULER_ENABLED'] = 'false'


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Give every test fresh config and runner singletons."""
    import config
    import retention_maintenance

    config._config = None
    retention_maintenance._runner = None
    yield
    config._config = None
    retention_maintenance._runner = None


# ── In-memory stores ──────────────────────────────────────────────────────


class InMemoryStore:
    """Stands in for the system_config and detections tables.

    Applies the same predicates as the SQL (``detected_at < cutoff``,
    upsert by key, JSON round-trip of config values).
    """

    def __init__(self):
        self.now = datetime.now(timezone.utc)
        self.records: Dict[int, datetime] = {}
        self.config: Dict[str, Any] = {}
        self.available = True
        self.fail_deletes = False
        self._next_id = 1
        self._lock = threading.Lock()

    def _check(self):
        from database import StoreUnavailable
        if not self.available:
            raise StoreUnavailable("Database not available")

    # Record store helpers
    def add(self, age_days: float) -> int:
        record_id = self._next_id
        self._next_id += 1
        self.records[record_id] = self.now - timedelta(days=age_days)
        return record_id

    def delete_detections_before(self, cutoff: datetime) -> int:
        self._check()
        if self.fail_deletes:
            from database import StoreUnavailable
            raise StoreUnavailable("Could not delete detections: lock timeout")
        with self._lock:
            expired = [rid for rid, ts in self.records.items() if ts < cutoff]
            for rid in expired:
                del self.records[rid]
        return len(expired)

    def count_detections(self, before: Optional[datetime] = None) -> int:
        self._check()
        with self._lock:
            if before is None:
                return len(self.records)
            return sum(1 for ts in self.records.values() if ts < before)

    def get_oldest_detected_at(self) -> Optional[datetime]:
        self._check()
        return min(self.records.values()) if self.records else None

    def get_newest_detected_at(self) -> Optional[datetime]:
        self._check()
        return max(self.records.values()) if self.records else None

    # Configuration store helpers
    def get_system_config(self, key: str) -> Optional[Dict[str, Any]]:
        self._check()
        if key not in self.config:
            return None
        return {"config_key": key, "config_value": json.loads(self.config[key])}

    def set_system_config(self, key: str, value: Any, description: Optional[str] = None) -> None:
        self._check()
        self.config[key] = json.dumps(value)

    def set_policy(self, retention_days: int, enabled: bool, last_run: Optional[str] = None):
        self.config["data_retention_policy"] = json.dumps({
            "retention_days": retention_days,
            "enabled": enabled,
            "last_run": last_run,
        })

    def stored_policy(self) -> Optional[Dict[str, Any]]:
        raw = self.config.get("data_retention_policy")
        return json.loads(raw) if raw else None


@pytest.fixture
def memory_store():
    """Patch the record and configuration stores with an in-memory store."""
    store = InMemoryStore()
    with patch("system_config.get_system_config", side_effect=store.get_system_config), \
         patch("system_config.set_system_config", side_effect=store.set_system_config), \
         patch("detections.delete_detections_before", side_effect=store.delete_detections_before), \
         patch("detections.count_detections", side_effect=store.count_detections), \
         patch("detections.get_oldest_detected_at", side_effect=store.get_oldest_detected_at), \
         patch("detections.get_newest_detected_at", side_effect=store.get_newest_detected_at):
        yield store


# ── PostgreSQL ────────────────────────────────────────────────────────────


@pytest.fixture(scope='session')
def test_config():
    """Provide test configuration."""
    from config import AppConfig
    return AppConfig.load()


@pytest.fixture(scope='session')
def db_connection_params(test_config):
    """Provide database connection parameters."""
    return {
        'host': test_config.database.host,
        'port': test_config.database.port,
        'dbname': test_config.database.name,
        'user': test_config.database.user,
        'password': test_config.database.password,
        'connect_timeout': 3,
    }


@pytest.fixture(scope='session')
def setup_test_database(db_connection_params):
    """Create the test database and schema, or skip when PostgreSQL is down."""
    conn_params = db_connection_params.copy()
    test_db_name = conn_params.pop('dbname')
    conn_params['dbname'] = 'postgres'

    try:
        conn = psycopg2.connect(**conn_params)
    except psycopg2.OperationalError as e:
        pytest.skip(f"Could not connect to PostgreSQL: {e}")

    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (test_db_name,))
    if not cursor.fetchone():
        cursor.execute(f"CREATE DATABASE {test_db_name}")
    cursor.close()
    conn.close()

    conn_params['dbname'] = test_db_name
    conn = psycopg2.connect(**conn_params)
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS detections (
            id SERIAL PRIMARY KEY,
            plate_text VARCHAR(20) NOT NULL,
            confidence INTEGER NOT NULL,
            bbox JSONB NOT NULL,
            original_image_url TEXT NOT NULL,
            cropped_image_url TEXT,
            status TEXT NOT NULL DEFAULT 'OK',
            camera_id VARCHAR(64),
            user_id INTEGER,
            detected_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS system_config (
            config_key VARCHAR(64) PRIMARY KEY,
            config_value JSONB NOT NULL DEFAULT '{}',
            description TEXT,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    cursor.close()
    conn.close()

    yield test_db_name


@pytest.fixture(scope='function')
def db_manager(setup_test_database):
    """Provide the global database manager with empty tables."""
    import database

    database.close_db_manager()
    manager = database.get_db_manager()
    with manager.get_cursor() as cur:
        cur.execute("TRUNCATE detections RESTART IDENTITY")
        cur.execute("DELETE FROM system_config")
    yield manager
    database.close_db_manager()
