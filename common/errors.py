"""Errors raised by services and mapped to the JSON error envelope."""
from typing import Optional


class HubError(Exception):
    """Base error carrying the HTTP status the handler should answer with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, **self.extra}


class ValidationError(HubError):
    status_code = 400


class Unauthorized(HubError):
    status_code = 401


class Forbidden(HubError):
    status_code = 403


class NotFound(HubError):
    status_code = 404


class ConfigurationError(HubError):
    """A required secret or endpoint is not configured."""
    status_code = 500


class UpstreamError(HubError):
    """A third-party API answered with an error."""
    status_code = 502
