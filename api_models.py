"""
Pydantic models for the PlateDashboard API.

This module centralizes request and response models shared across
the routers.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field

# API Version Constants
API_VERSION = "1"


class RetentionConfigRequest(BaseModel):
    """Request model for updating the retention policy."""
    retention_days: int = Field(
        ...,
        ge=1,
        le=365,
        validation_alias=AliasChoices("retention_days", "retentionDays"),
        description="Days a detection is kept before cleanup deletes it",
    )
    enabled: bool = Field(..., description="Whether cleanup deletes anything")


class RetentionConfigResponse(BaseModel):
    """Current retention policy."""
    retention_days: int
    enabled: bool
    last_run: Optional[datetime] = None


class RetentionStatsResponse(BaseModel):
    """Detection counts and range against the current retention window."""
    total_records: int
    oldest_record: Optional[datetime] = None
    newest_record: Optional[datetime] = None
    records_to_delete: int


class CleanupResponse(BaseModel):
    """Outcome of a single cleanup run."""
    deleted_count: int
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    timestamp: str
    database: Dict[str, Any]
