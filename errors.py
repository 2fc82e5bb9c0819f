"""
API error codes for PlateDashboard.

Every error body has the same shape: ``error_code``, ``message`` and
``details``.
"""

from enum import Enum
from typing import Optional, Dict, Any
from fastapi import HTTPException, status


class ErrorCode(Enum):
    """
    Registry of API error codes.
    Each code maps to an HTTP status and a default user-facing message.
    """
    # System Errors (1xxx)
    INTERNAL_SERVER_ERROR = ("SYS_1001", status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected internal server error occurred.")

    # Database Errors (5xxx)
    DATABASE_CONNECTION_ERROR = ("DB_5001", status.HTTP_503_SERVICE_UNAVAILABLE, "Failed to connect to the database.")
    DATABASE_QUERY_ERROR = ("DB_5002", status.HTTP_500_INTERNAL_SERVER_ERROR, "A database query error occurred.")

    # Retention Errors (6xxx)
    INVALID_RETENTION_POLICY = ("RET_6001", status.HTTP_400_BAD_REQUEST, "Retention days must be between 1 and 365.")
    RETENTION_CONFIG_SAVE_FAILED = ("RET_6002", status.HTTP_503_SERVICE_UNAVAILABLE, "Could not save configuration.")
    RETENTION_CLEANUP_FAILED = ("RET_6003", status.HTTP_500_INTERNAL_SERVER_ERROR, "Data cleanup failed.")

    def __init__(self, code: str, status_code: int, message: str):
        self.code = code
        self.status_code = status_code
        self.message = message


def error_payload(
    error_code: ErrorCode,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the JSON body for an error response."""
    return {
        "error_code": error_code.code,
        "message": message or error_code.message,
        "details": details,
    }


def raise_api_error(error_code: ErrorCode, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
    """Raise an HTTPException carrying a structured error body."""
    raise HTTPException(
        status_code=error_code.status_code,
        detail=error_payload(error_code, message, details),
    )
