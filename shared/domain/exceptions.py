"""
Domain Errors

Every failure that leaves the core is one of these classes. Each carries
the HTTP status it maps to and a machine-readable code, so handlers can
turn it into a structured ``{"error": ...}`` body without inspecting it.

- InvalidInput / InvalidRange: caller error, never retried
- NotFound: referenced row does not exist
- Unauthorized / Forbidden: identity missing or not allowed
- InvalidState: operation not allowed in the aggregate's current status
- InsufficientInventory: terminal for the attempt, caller may retry with
  different parameters
- ProviderRejected: the flight provider refused the request (4xx)
- ProviderUnavailable: the flight provider failed or timed out; the
  provider side effect may still have happened
- InternalError: unexpected failure
"""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base class for all structured errors"""

    status_code = 400
    code = 'domain_error'

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {'error': self.message, 'code': self.code}
        body.update(self.details)
        return body


class InvalidInput(DomainError):
    status_code = 400
    code = 'invalid_input'


class InvalidRange(InvalidInput):
    code = 'invalid_range'


class NotFound(DomainError):
    status_code = 404
    code = 'not_found'


class Unauthorized(DomainError):
    status_code = 401
    code = 'unauthorized'


class Forbidden(DomainError):
    status_code = 403
    code = 'forbidden'


class InvalidState(DomainError):
    status_code = 409
    code = 'invalid_state'


class InsufficientInventory(DomainError):
    """Raised when a commit would push any night below zero availability"""

    status_code = 409
    code = 'insufficient_inventory'

    def __init__(self, message: str, *, unavailable_dates: Optional[List] = None):
        self.unavailable_dates = list(unavailable_dates or [])
        details = {}
        if self.unavailable_dates:
            details['unavailableDates'] = [day.isoformat() for day in self.unavailable_dates]
        super().__init__(message, details=details)


class ProviderError(DomainError):
    """Base class for failures reported by the external flight provider"""

    def __init__(
        self,
        message: str,
        *,
        provider_status: Optional[int] = None,
        payload: Any = None,
    ):
        self.provider_status = provider_status
        self.payload = payload
        super().__init__(
            message,
            details={'providerStatus': provider_status, 'providerResponse': payload},
        )


class ProviderRejected(ProviderError):
    """Provider answered 4xx; the status is passed through to the caller"""

    code = 'provider_rejected'

    def __init__(self, message: str, *, provider_status: int, payload: Any = None):
        super().__init__(message, provider_status=provider_status, payload=payload)
        self.status_code = provider_status


class ProviderUnavailable(ProviderError):
    """
    Provider answered 5xx, refused the connection, or timed out.

    Do not retry a bare ``book`` after this error: check with ``verify``
    first, the booking may exist on the provider side.
    """

    status_code = 503
    code = 'provider_unavailable'

    def __init__(
        self,
        message: str,
        *,
        provider_status: Optional[int] = None,
        payload: Any = None,
        timed_out: bool = False,
    ):
        super().__init__(message, provider_status=provider_status, payload=payload)
        self.timed_out = timed_out
        self.details['timedOut'] = timed_out


class InternalError(DomainError):
    status_code = 500
    code = 'internal_error'
