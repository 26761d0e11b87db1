"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Bearer tokens arrive in the Authorization header:
    Authorization: Bearer <jwt>

get_claims() verifies the token and returns Claims; it raises Unauthenticated
(-> 401) when the header is missing or the token fails verification.
require_roles(...) builds a dependency that additionally raises Forbidden
(-> 403) when the role claim is not allowed.

The AccessGuard instance lives on app.state, created once in the lifespan.
The domain exceptions raised here are translated by the AuthError handler in
api/main.py -- no HTTPException is built in this module.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.guard import AccessGuard, normalize_requirement
from auth.models import Claims, Role


def get_bearer_token(request: Request) -> str | None:
    """Return the raw bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_claims(request: Request) -> Claims:
    """Require authentication. Raises Unauthenticated if the token is absent or invalid.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: Claims = Depends(get_claims)): ...
    """
    guard: AccessGuard = request.app.state.guard
    return guard.authenticate(get_bearer_token(request))


def require_roles(*roles: Role | str) -> Callable[[Request], Claims]:
    """Build a dependency that requires one of the given roles.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(claims: Claims = Depends(require_roles(Role.administrator))): ...

    The requirement is validated here, at import time of the route module, so
    a typo in a role name fails at startup instead of on the first request.
    """
    allowed = normalize_requirement(roles)

    def dependency(request: Request) -> Claims:
        guard: AccessGuard = request.app.state.guard
        return guard.authorize(get_bearer_token(request), allowed)

    return dependency
