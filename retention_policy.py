"""Data retention policy for detection records.

Holds the singleton retention policy (stored in ``system_config`` under
``data_retention_policy``), the cleanup that enforces it, and the
statistics shown on the dashboard settings page.

Failure model:
    - Dashboard reads never fail; they fall back to the default policy.
    - Strict reads (cleanup, policy edits) raise instead of guessing, so a
      transient failure can never stand in for the stored policy.
    - Policy writes raise ``StoreUnavailable``.
    - ``run_cleanup`` never raises; errors come back in the result dict.
    - ``get_retention_stats`` never raises; it returns zeroed values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from config import get_config

logger = logging.getLogger(__name__)

MIN_RETENTION_DAYS = 1
MAX_RETENTION_DAYS = 365

POLICY_DESCRIPTION = "Data retention policy configuration"


class InvalidPolicy(ValueError):
    """Retention window outside the accepted range."""


@dataclass(frozen=True)
class RetentionPolicy:
    retention_days: int
    enabled: bool = True
    last_run: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.retention_days, bool) or not isinstance(self.retention_days, int):
            raise InvalidPolicy(f"retention_days must be an integer, got {self.retention_days!r}")
        if not MIN_RETENTION_DAYS <= self.retention_days <= MAX_RETENTION_DAYS:
            raise InvalidPolicy(
                f"retention_days must be between {MIN_RETENTION_DAYS} and "
                f"{MAX_RETENTION_DAYS}, got {self.retention_days}"
            )

    @classmethod
    def default(cls) -> "RetentionPolicy":
        return cls(retention_days=get_config().retention.default_days, enabled=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retention_days": self.retention_days,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetentionPolicy":
        last_run = data.get("last_run")
        if isinstance(last_run, str):
            last_run = datetime.fromisoformat(last_run)
        return cls(
            retention_days=data["retention_days"],
            enabled=bool(data.get("enabled", True)),
            last_run=last_run,
        )


def compute_cutoff(retention_days: int, now: Optional[datetime] = None) -> datetime:
    """Return ``now`` minus ``retention_days`` calendar days (UTC)."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=retention_days)


# ---------------------------------------------------------------------------
# Policy storage
# ---------------------------------------------------------------------------


def _config_key() -> str:
    return get_config().retention.config_key


def _load_policy() -> RetentionPolicy:
    """Read the stored policy; the default only when nothing was ever saved.

    Raises:
        StoreUnavailable: If the configuration store could not be read.
        InvalidPolicy: If the stored value cannot be parsed.
    """
    from system_config import get_system_config

    row = get_system_config(_config_key())
    if row is None:
        return RetentionPolicy.default()

    try:
        return RetentionPolicy.from_dict(row["config_value"])
    except InvalidPolicy:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise InvalidPolicy(f"Stored retention policy is unreadable: {e}")


def get_retention_config(strict: bool = False) -> RetentionPolicy:
    """Return the stored retention policy.

    With ``strict=False`` an unreachable store or an unreadable value
    yields the default policy. With ``strict=True`` both raise, see
    ``_load_policy``.
    """
    if strict:
        return _load_policy()

    try:
        return _load_policy()
    except Exception as e:
        logger.warning("Retention policy unavailable, using defaults: %s", e)
        return RetentionPolicy.default()


def update_retention_config(policy: RetentionPolicy) -> None:
    """Save the retention policy.

    Raises:
        StoreUnavailable: If the policy could not be written.
    """
    from system_config import set_system_config

    set_system_config(_config_key(), policy.to_dict(), POLICY_DESCRIPTION)
    logger.info(
        "Retention policy saved (retention_days=%d, enabled=%s)",
        policy.retention_days, policy.enabled,
    )


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


def run_cleanup(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Delete detections older than the retention window.

    Returns:
        ``{"deleted_count": n}`` on success, or
        ``{"deleted_count": 0, "error": "..."}`` on failure.
    """
    from detections import delete_detections_before

    try:
        policy = get_retention_config(strict=True)
        if not policy.enabled:
            logger.info("Retention: cleanup disabled in configuration")
            return {"deleted_count": 0}

        now = now or datetime.now(timezone.utc)
        cutoff = compute_cutoff(policy.retention_days, now)
        logger.info("Retention: deleting detections older than %s", cutoff.isoformat())

        deleted = delete_detections_before(cutoff)
        update_retention_config(replace(policy, last_run=now))

        logger.info(
            "Retention: deleted %d detections older than %d days",
            deleted, policy.retention_days,
        )
        return {"deleted_count": deleted}
    except Exception as e:
        logger.error("Retention: cleanup failed: %s", e)
        return {"deleted_count": 0, "error": str(e)}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def _empty_stats() -> Dict[str, Any]:
    return {
        "total_records": 0,
        "oldest_record": None,
        "newest_record": None,
        "records_to_delete": 0,
    }


def get_retention_stats(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Summarize stored detections against the current retention window.

    ``records_to_delete`` previews what a cleanup would remove now, and is
    computed even while the policy is disabled.
    """
    from detections import (
        count_detections,
        get_newest_detected_at,
        get_oldest_detected_at,
    )

    policy = get_retention_config()
    cutoff = compute_cutoff(policy.retention_days, now)

    try:
        return {
            "total_records": count_detections(),
            "oldest_record": get_oldest_detected_at(),
            "newest_record": get_newest_detected_at(),
            "records_to_delete": count_detections(before=cutoff),
        }
    except Exception as e:
        logger.warning("Failed to get retention stats: %s", e)
        return _empty_stats()
