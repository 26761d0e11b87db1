"""
auth/guard.py -- Role-based authorization on top of verified tokens.

Two denials, deliberately distinct:
  Unauthenticated -- no token, or the token failed verification (any
                     TokenError). The HTTP layer answers 401.
  Forbidden       -- the token is valid but its role is not in the
                     requirement. The HTTP layer answers 403.

The guard trusts the role claim as minted. A role changed on the user record
after login is not seen until the user logs in again; the token horizon
bounds that window.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.errors import Forbidden, TokenError, Unauthenticated
from auth.models import Claims, Role
from auth.tokens import TokenIssuer

RoleRequirement = Role | str | Iterable[Role | str]


def normalize_requirement(required: RoleRequirement) -> frozenset[Role]:
    """Turn a role or collection of roles into a frozenset of Role.

    An unknown role here is a programming error in the calling route, not a
    client error, so it raises ValueError.
    """
    if isinstance(required, (Role, str)):
        required = [required]
    roles = frozenset(Role(r) for r in required)
    if not roles:
        raise ValueError("role requirement must name at least one role")
    return roles


class AccessGuard:
    """Decide whether a bearer token may perform a role-gated action."""

    def __init__(self, issuer: TokenIssuer) -> None:
        self.issuer = issuer

    def authenticate(self, token: str | None) -> Claims:
        """Return verified claims or raise Unauthenticated."""
        if not token:
            raise Unauthenticated()
        try:
            return self.issuer.verify(token)
        except TokenError as exc:
            raise Unauthenticated(exc.message, cause=exc) from exc

    def authorize(self, token: str | None, required: RoleRequirement) -> Claims:
        """Return claims if the token is valid and its role satisfies `required`.

        Raises Unauthenticated or Forbidden.
        """
        roles = normalize_requirement(required)
        claims = self.authenticate(token)
        if claims.role not in roles:
            raise Forbidden(detail=f"requires one of: {', '.join(sorted(r.value for r in roles))}")
        return claims
