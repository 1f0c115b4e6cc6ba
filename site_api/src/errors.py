"""
Error taxonomy for the site API.

Route and service code raise these; the exception handlers registered in
``site_api.src.main`` turn them into JSON envelopes. ``message`` is always
safe to show to the browser. Diagnostic detail (upstream status codes,
provider names) is carried separately for logging only.
"""

from typing import List, Optional

from fastapi import status

from site_api.src.validation import FieldError


class SiteAPIError(Exception):
    """Base class for errors with a client-safe message and status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An internal server error occurred"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_response_body(self) -> dict:
        return {"success": False, "message": self.message}


class PayloadValidationError(SiteAPIError):
    """Request body failed schema validation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message)

    def to_response_body(self) -> dict:
        body = super().to_response_body()
        body["errors"] = [err.to_dict() for err in self.errors]
        return body


class ConfigurationError(SiteAPIError):
    """Server-side configuration is missing or rejected by an upstream."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server configuration error"

    def __init__(self, reason: str, provider: Optional[str] = None):
        self.reason = reason
        self.provider = provider
        super().__init__()


class UpstreamError(SiteAPIError):
    """Failure talking to an upstream AI provider."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
    ):
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(message, status_code=status_code)


class UpstreamUnreachable(UpstreamError):
    """Connection refused, host not found or timed out."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, provider: str, *, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(f"Unable to connect to {provider} API", provider=provider)


class UpstreamRejected(UpstreamError):
    """Upstream answered with a non-success status, or the exchange broke."""

    status_code = status.HTTP_502_BAD_GATEWAY


class InternalError(SiteAPIError):
    """Unexpected failure; details stay in the server log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
