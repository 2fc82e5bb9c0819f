"""
System configuration store.

A small key-value table (``system_config``) holding named JSON values such
as the data retention policy. Values are opaque to this module: callers
serialize and interpret them.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from database import DatabaseError, StoreUnavailable, get_db_manager

logger = logging.getLogger(__name__)


def _row_to_dict(row) -> Dict[str, Any]:
    """Convert a system_config row to a dict with ISO timestamps."""
    key, value, description, updated_at = row
    if isinstance(value, str):
        # JSONB arrives decoded; plain TEXT columns do not
        value = json.loads(value)
    return {
        "config_key": key,
        "config_value": value,
        "description": description,
        "updated_at": updated_at.isoformat() if isinstance(updated_at, datetime) else updated_at,
    }


def get_system_config(key: str) -> Optional[Dict[str, Any]]:
    """Fetch a named configuration value.

    Returns:
        Dict with config_key, config_value, description and updated_at,
        or None when the key has never been set.

    Raises:
        StoreUnavailable: If the database cannot be reached.
    """
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(
                """
                SELECT config_key, config_value, description, updated_at
                FROM system_config
                WHERE config_key = %s
                """,
                (key,),
            )
            row = cur.fetchone()
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not read configuration '{key}': {e}") from e
    return _row_to_dict(row) if row else None


def set_system_config(key: str, value: Any, description: Optional[str] = None) -> None:
    """Insert or replace a named configuration value.

    Args:
        key: Configuration key.
        value: JSON-serializable value.
        description: Optional human-readable description.

    Raises:
        StoreUnavailable: If the database cannot be reached or the write fails.
    """
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(
                """
                INSERT INTO system_config (config_key, config_value, description)
                VALUES (%s, %s::jsonb, %s)
                ON CONFLICT (config_key) DO UPDATE
                SET config_value = EXCLUDED.config_value,
                    description = COALESCE(EXCLUDED.description, system_config.description),
                    updated_at = now()
                """,
                (key, json.dumps(value), description),
            )
    except DatabaseError as e:
        logger.warning("Failed to save configuration '%s': %s", key, e)
        raise StoreUnavailable(f"Could not save configuration '{key}': {e}") from e
    logger.debug("Saved configuration '%s'", key)
