"""
shared/exceptions.py
Typed errors raised by the marketplace engine. Routers never build
HTTP errors for these; main.py maps each class to a status code.
"""

from typing import Optional


class MarketplaceError(Exception):
    status_code = 400
    code = "marketplace_error"

    def __init__(self, detail: str, *, code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if code:
            self.code = code


class ValidationError(MarketplaceError):
    """Caller input fails a precondition. Raised before any write."""
    status_code = 422
    code = "validation_error"


class NotFound(MarketplaceError):
    status_code = 404
    code = "not_found"


class InvalidTransition(MarketplaceError):
    """Booking state change not allowed from the current state or by this actor."""
    status_code = 409
    code = "invalid_transition"


class PermissionDenied(MarketplaceError):
    """Actor does not own or control the entity (cross-tenant access)."""
    status_code = 403
    code = "permission_denied"


class UpstreamFailure(MarketplaceError):
    """The entity store or identity provider failed; never retried here."""
    status_code = 503
    code = "upstream_failure"
