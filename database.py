"""
Database connection and operations module.

Provides connection pooling and cursor context managers shared by the
record store (detections) and the configuration store (system_config).
"""

import logging
from contextlib import contextmanager
from typing import Optional, Dict, Any
from datetime import datetime, timezone

import psycopg2
from psycopg2 import pool

from config import get_config

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class StoreUnavailable(DatabaseError):
    """The backing store could not be reached."""
    pass


class ConnectionPoolError(StoreUnavailable):
    """Exception for connection pool errors."""
    pass


class QueryError(DatabaseError):
    """Exception for query execution errors."""
    pass


class DatabaseManager:
    """
    Manages database connections with connection pooling.

    Uses a ThreadedConnectionPool so that worker threads (the retention
    runner and request handlers) each borrow their own connection.
    """

    def __init__(self):
        """Initialize database manager."""
        self.config = get_config().database
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._initialized = False

    def initialize(self) -> None:
        """Initialize connection pool."""
        if self._initialized:
            logger.warning("Database manager already initialized")
            return

        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self.config.pool_size,
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.name,
                user=self.config.user,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout,
            )
            self._initialized = True
            logger.info(
                "Database connection pool initialized (host=%s, db=%s)",
                self.config.host, self.config.name,
            )
        except Exception as e:
            logger.error("Failed to initialize connection pool: %s", e)
            raise ConnectionPoolError(f"Connection pool initialization failed: {e}")

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()
            self._initialized = False
            logger.info("Database connection pool closed")

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool as a context manager.

        Yields:
            psycopg2.connection: Database connection

        Raises:
            ConnectionPoolError: If pool is not initialized or connection fails
        """
        if not self._initialized:
            self.initialize()

        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
        except DatabaseError:
            if conn:
                conn.rollback()
            raise
        except psycopg2.OperationalError as e:
            if conn:
                conn.rollback()
            logger.error("Database connection error: %s", e)
            raise ConnectionPoolError(f"Connection error: {e}")
        except psycopg2.Error as e:
            if conn:
                conn.rollback()
            logger.error("Database error: %s", e)
            raise QueryError(f"Query execution failed: {e}")
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                self._pool.putconn(conn)

    @contextmanager
    def get_cursor(self):
        """
        Get a cursor from a pooled connection.

        Commits when the block exits cleanly, rolls back otherwise.

        Yields:
            psycopg2.cursor: Database cursor
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except psycopg2.OperationalError as e:
                conn.rollback()
                logger.error("Cursor operation lost the connection: %s", e)
                raise ConnectionPoolError(f"Connection error: {e}")
            except psycopg2.Error as e:
                conn.rollback()
                logger.error("Cursor operation error: %s", e)
                raise QueryError(f"Query execution failed: {e}")
            finally:
                cursor.close()

    def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dict with health status information
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT version();")
                version = cursor.fetchone()[0]

                cursor.execute("SELECT COUNT(*) FROM detections;")
                detection_count = cursor.fetchone()[0]

                return {
                    "status": "healthy",
                    "postgres_version": version,
                    "total_detections": detection_count,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
        except Exception as e:
            logger.error("Health check failed: %s", e)
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create global database manager instance."""
    global _db_manager
    if _db_manager is None:
        manager = DatabaseManager()
        manager.initialize()
        _db_manager = manager
    return _db_manager


def close_db_manager() -> None:
    """Close global database manager."""
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
