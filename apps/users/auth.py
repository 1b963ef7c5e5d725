"""Authentication collaborator.

Booking handlers ask for an explicit ``AuthResult`` before touching any
inventory instead of relying only on the view's permission classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated  # type: ignore

from shared.domain.exceptions import Unauthorized as UnauthorizedError


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    first_name: str
    last_name: str
    role: str

    @property
    def is_hotel_owner(self) -> bool:
        return self.role == "HOTEL_OWNER"


@dataclass(frozen=True)
class Authorized:
    identity: Identity


@dataclass(frozen=True)
class Unauthorized:
    reason: str


AuthResult = Union[Authorized, Unauthorized]


def identity_for(user) -> Identity:
    return Identity(
        user_id=user.pk,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
    )


def authenticate_request(request) -> AuthResult:
    """Resolve the caller of a DRF request into an AuthResult."""
    try:
        user = request.user
    except (AuthenticationFailed, NotAuthenticated) as exc:
        return Unauthorized(reason=str(exc.detail))

    if user is None or not user.is_authenticated:
        return Unauthorized(reason="Authentication credentials were not provided.")
    if not user.is_active:
        return Unauthorized(reason="User account is disabled.")
    return Authorized(identity=identity_for(user))


def require_identity(request) -> Identity:
    """Return the caller's identity or raise the 401 domain error."""
    result = authenticate_request(request)
    if isinstance(result, Unauthorized):
        raise UnauthorizedError(result.reason)
    return result.identity
