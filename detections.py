"""
Detection record store.

License plate detections written by the upload workflow, plus the
range-filtered counts and deletions used by data retention.

All timestamps are timezone-aware (``detected_at`` is TIMESTAMPTZ).
Deletion is predicate-based, so repeating a delete matches zero rows.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from database import DatabaseError, StoreUnavailable, get_db_manager

logger = logging.getLogger(__name__)

DETECTION_STATUSES = ("OK", "LOW_CONFIDENCE", "NO_PLATE_FOUND", "MANUAL_REVIEW")

_COLUMNS = ("id", "plate_text", "confidence", "bbox", "original_image_url",
            "cropped_image_url", "status", "camera_id", "user_id",
            "detected_at", "created_at")


def _row_to_dict(row) -> Dict[str, Any]:
    """Convert a DB row tuple to a dict with ISO timestamps."""
    d = dict(zip(_COLUMNS, row))
    for field in ("detected_at", "created_at"):
        if isinstance(d.get(field), datetime):
            d[field] = d[field].isoformat()
    return d


# ---------------------------------------------------------------------------
# Detection workflow
# ---------------------------------------------------------------------------


def create_detection(
    plate_text: str,
    confidence: int,
    bbox: Dict[str, float],
    original_image_url: str,
    *,
    status: str = "OK",
    cropped_image_url: Optional[str] = None,
    camera_id: Optional[str] = None,
    user_id: Optional[int] = None,
    detected_at: Optional[datetime] = None,
) -> int:
    """Insert a detection record.

    Returns:
        The new record id.
    """
    if status not in DETECTION_STATUSES:
        raise ValueError(f"Unknown detection status: {status}")
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(
                """
                INSERT INTO detections
                    (plate_text, confidence, bbox, original_image_url,
                     cropped_image_url, status, camera_id, user_id, detected_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, now()))
                RETURNING id
                """,
                (plate_text, confidence, json.dumps(bbox), original_image_url,
                 cropped_image_url, status, camera_id, user_id, detected_at),
            )
            detection_id = cur.fetchone()[0]
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not save detection: {e}") from e
    logger.debug("Created detection %s (%s)", detection_id, plate_text)
    return detection_id


def get_detection(detection_id: int) -> Optional[Dict[str, Any]]:
    """Fetch one detection by id, or None."""
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(
                "SELECT {cols} FROM detections WHERE id = %s".format(cols=", ".join(_COLUMNS)),
                (detection_id,),
            )
            row = cur.fetchone()
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not read detection {detection_id}: {e}") from e
    return _row_to_dict(row) if row else None


def delete_detection(detection_id: int) -> int:
    """Delete one detection by id. Returns the number of rows removed (0 or 1)."""
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute("DELETE FROM detections WHERE id = %s", (detection_id,))
            return cur.rowcount
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not delete detection {detection_id}: {e}") from e


# ---------------------------------------------------------------------------
# Retention queries
# ---------------------------------------------------------------------------


def delete_detections_before(cutoff: datetime) -> int:
    """Delete every detection with ``detected_at < cutoff``.

    Returns:
        Number of rows deleted.

    Raises:
        StoreUnavailable: If the database cannot be reached or the delete fails.
    """
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute("DELETE FROM detections WHERE detected_at < %s", (cutoff,))
            deleted = cur.rowcount
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not delete detections: {e}") from e
    logger.debug("Deleted %d detections older than %s", deleted, cutoff.isoformat())
    return deleted


def count_detections(before: Optional[datetime] = None) -> int:
    """Count detections, optionally only those with ``detected_at < before``."""
    sql = "SELECT COUNT(*) FROM detections"
    params: tuple = ()
    if before is not None:
        sql += " WHERE detected_at < %s"
        params = (before,)
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchone()[0]
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not count detections: {e}") from e


def get_oldest_detected_at() -> Optional[datetime]:
    """Return the earliest ``detected_at``, or None when there are no records."""
    return _aggregate_detected_at("MIN")


def get_newest_detected_at() -> Optional[datetime]:
    """Return the latest ``detected_at``, or None when there are no records."""
    return _aggregate_detected_at("MAX")


def _aggregate_detected_at(func: str) -> Optional[datetime]:
    try:
        with get_db_manager().get_cursor() as cur:
            cur.execute(f"SELECT {func}(detected_at) FROM detections")
            row = cur.fetchone()
    except DatabaseError as e:
        raise StoreUnavailable(f"Could not read detection range: {e}") from e
    return row[0] if row else None
