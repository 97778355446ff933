"""
Error taxonomy shared by the gateway, the aggregator and the routers.

Write paths raise these; read paths never do (the gateway degrades them to
empty values). ``main.py`` turns each class into a JSON response.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[str] = None
    login_url: Optional[str] = None
    timestamp: datetime


class PortalError(Exception):
    """Base class for portal errors."""

    error_code: str = "PORTAL_ERROR"

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class UnauthorizedError(PortalError):
    """Token missing, expired or rejected by the backend."""

    error_code = "UNAUTHORIZED"


class RemoteFailureError(PortalError):
    """Backend answered with a non-2xx status other than 401."""

    error_code = "REMOTE_FAILURE"

    def __init__(self, message: str, status_code: int, raw_body: str = ""):
        super().__init__(message, details=raw_body or None)
        self.status_code = status_code
        self.raw_body = raw_body


class GatewayNetworkError(PortalError):
    """Transport-level failure: timeout, refused connection, DNS, etc."""

    error_code = "NETWORK_ERROR"


class ValidationError(PortalError):
    error_code = "VALIDATION_ERROR"
