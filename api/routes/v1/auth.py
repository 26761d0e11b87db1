"""
api/routes/v1/auth.py -- Registration, login and authorization REST endpoints.

Routes:
  POST /api/v1/auth/register    -- create account; returns bearer token (rate limited)
  POST /api/v1/auth/login       -- password login; returns bearer token (rate limited)
  GET  /api/v1/auth/me          -- current user (any authenticated role)
  GET  /api/v1/auth/authorize   -- check the bearer token against ?role=... (repeatable)
  GET  /api/v1/auth/users       -- list all users (administrator only)

Security:
  Login returns the same 401 body for an unknown email and a wrong password;
  AuthService also equalizes timing between the two.
  Cache-Control: no-store on every response that carries a token.
  Handlers are plain `def` so bcrypt and DB calls run in the threadpool and
  never block the event loop.

Errors are raised as auth.errors exceptions and rendered by the AuthError
handler in api/main.py.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, register_limit
from api.models import ClaimsResponse, LoginRequest, RegisterRequest, TokenResponse, UserResponse
from auth.dependencies import get_bearer_token, get_claims, require_roles
from auth.guard import AccessGuard
from auth.models import Claims, Role
from auth.service import AuthService, parse_role

# Auth policy:
# - POST /api/v1/auth/register:   public
# - POST /api/v1/auth/login:      public
# - GET  /api/v1/auth/me:         requires auth (get_claims)
# - GET  /api/v1/auth/authorize:  requires auth + one of the requested roles
# - GET  /api/v1/auth/users:      requires administrator
router = APIRouter()


def _no_store(content: dict, status_code: int) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
@limiter.limit(register_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user with the given role and return a session token.

    Raises invalid_role (422) for a role outside ceo/supplier/administrator and
    user_exists (409) when the email is already registered.
    """
    service: AuthService = request.app.state.auth_service
    result = service.register(body.email, body.name, body.password, body.role)
    return _no_store(TokenResponse.from_result(result).model_dump(mode="json"), 201)


@router.post("/auth/login", response_model=TokenResponse)
@limiter.limit(login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a fresh session token."""
    service: AuthService = request.app.state.auth_service
    result = service.login(body.email, body.password)
    return _no_store(TokenResponse.from_result(result).model_dump(mode="json"), 200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, claims: Claims = Depends(get_claims)) -> UserResponse:
    """Return the public profile of the token subject."""
    service: AuthService = request.app.state.auth_service
    return UserResponse.from_public(service.get_user(claims.subject))


@router.get("/auth/authorize", response_model=ClaimsResponse)
def authorize(
    request: Request,
    role: list[str] = Query(description="Accepted roles; repeat for several."),
) -> ClaimsResponse:
    """Check the bearer token against one or more roles.

    200 with the verified claims when allowed, 401 when the token is missing
    or invalid, 403 when the role claim is not in the list. Other services use
    this to delegate role checks without sharing the signing secret.
    """
    required = {parse_role(r) for r in role}
    guard: AccessGuard = request.app.state.guard
    claims = guard.authorize(get_bearer_token(request), required)
    return ClaimsResponse.from_claims(claims)


@router.get("/auth/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    claims: Claims = Depends(require_roles(Role.administrator)),
) -> list[UserResponse]:
    """List all user accounts. Administrator only."""
    service: AuthService = request.app.state.auth_service
    return [UserResponse.from_public(u) for u in service.list_users()]
