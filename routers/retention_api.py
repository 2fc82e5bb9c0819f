"""
Data retention routes for PlateDashboard.
"""

import asyncio
import logging

from fastapi import APIRouter

from api_models import (
    CleanupResponse,
    RetentionConfigRequest,
    RetentionConfigResponse,
    RetentionStatsResponse,
)
from database import StoreUnavailable
from errors import ErrorCode, raise_api_error

logger = logging.getLogger(__name__)

retention_router = APIRouter(prefix="/retention", tags=["Retention"])


@retention_router.get("/config", response_model=RetentionConfigResponse)
async def get_retention_config():
    """Return the current retention policy (defaults if never saved)."""
    from retention_policy import get_retention_config as load_policy
    return load_policy().to_dict()


@retention_router.put("/config", response_model=RetentionConfigResponse)
async def update_retention_config(request: RetentionConfigRequest):
    """Save a new retention policy. Does not run a cleanup."""
    from retention_policy import (
        InvalidPolicy,
        RetentionPolicy,
        get_retention_config as load_policy,
        update_retention_config as save_policy,
    )

    try:
        last_run = load_policy(strict=True).last_run
    except StoreUnavailable as e:
        logger.error("Failed to read retention policy before saving: %s", e)
        raise_api_error(ErrorCode.RETENTION_CONFIG_SAVE_FAILED, details={"reason": str(e)})
    except InvalidPolicy as e:
        logger.warning("Replacing unreadable retention policy: %s", e)
        last_run = None

    try:
        policy = RetentionPolicy(
            retention_days=request.retention_days,
            enabled=request.enabled,
            last_run=last_run,
        )
    except InvalidPolicy as e:
        raise_api_error(ErrorCode.INVALID_RETENTION_POLICY, details={"reason": str(e)})

    try:
        save_policy(policy)
    except StoreUnavailable as e:
        logger.error("Failed to save retention policy: %s", e)
        raise_api_error(ErrorCode.RETENTION_CONFIG_SAVE_FAILED, details={"reason": str(e)})
    return policy.to_dict()


@retention_router.get("/stats", response_model=RetentionStatsResponse)
async def get_retention_stats():
    """Detection counts and the number a cleanup would delete right now."""
    from retention_policy import get_retention_stats as compute_stats
    return await asyncio.to_thread(compute_stats)


@retention_router.post("/cleanup", response_model=CleanupResponse)
async def run_retention_cleanup():
    """Run a cleanup immediately and return its result."""
    from retention_maintenance import get_retention_maintenance_runner

    result = await get_retention_maintenance_runner().run_once()
    if result.get("error"):
        raise_api_error(
            ErrorCode.RETENTION_CLEANUP_FAILED,
            message=f"Data cleanup failed: {result['error']}",
            details=result,
        )
    return result


@retention_router.get("/status")
async def get_retention_status():
    """Get retention maintenance runner status."""
    from retention_maintenance import get_retention_maintenance_runner
    return get_retention_maintenance_runner().get_status()
