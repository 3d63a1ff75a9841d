"""
Request-scoped dependencies for the HTTP surface.

The services a handler needs (store, reasoning client, params, mailer) live on
``app.state`` and are handed out through FastAPI ``Depends``. Identity comes
from an injected resolver; the default trusts the ``X-User-*`` headers set by
the hosting platform.
"""

from typing import Callable, Optional

from fastapi import Depends, Request
from pydantic import BaseModel

from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.errors import UnauthenticatedError, UnauthorizedError
from educrm.utils.mailer import Mailer
from educrm.utils.reasoning import ReasoningClient

ADMIN_ROLE = "admin"


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


IdentityResolver = Callable[[Request], Optional[CurrentUser]]


def header_identity(request: Request) -> Optional[CurrentUser]:
    """Read the caller from X-User-Id / X-User-Email / X-User-Role."""
    user_id = request.headers.get("X-User-Id")
    if not user_id:
        return None
    return CurrentUser(
        id=user_id,
        email=request.headers.get("X-User-Email"),
        role=request.headers.get("X-User-Role", "user"),
    )


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_reasoner(request: Request) -> ReasoningClient:
    return request.app.state.reasoner


def get_params(request: Request) -> SystemParams:
    return request.app.state.params


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_correlation_id(request: Request) -> str:
    return request.state.correlation_id


def require_user(request: Request) -> CurrentUser:
    """Resolve the caller or fail with 401."""
    user = request.app.state.identity_resolver(request)
    if user is None:
        raise UnauthenticatedError("No authenticated user on request")
    return user


def require_admin(user: CurrentUser = Depends(require_user)) -> CurrentUser:
    """Resolve the caller and require the admin role, else 403."""
    if not user.is_admin:
        raise UnauthorizedError("Admin access required", details={"user_id": user.id})
    return user
