"""
Schemas shared by every router.
"""

from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness status and the configuration gaps worth alerting on."""

    status: str
    version: str
    metaapi_configured: bool
    rate_limiting: bool


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    details: Optional[Any] = None
