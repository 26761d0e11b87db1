"""
API request and response models for CredGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request bodies are validated here before they reach AuthService, so malformed
payloads fail uniformly with validation_error. `role` is accepted as a plain
string on purpose: an unknown role is reported as invalid_role by the service,
not as a generic schema error.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import AuthResult, Claims, PublicUser, Role

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(min_length=1, max_length=255)
    # Passwords are never stripped -- leading/trailing spaces are significant.
    password: str = Field(min_length=1, max_length=72, json_schema_extra={"format": "password"})
    role: str = Field(min_length=1, max_length=30, description="One of: ceo, supplier, administrator.")


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255, json_schema_extra={"format": "password"})


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public user view. There is no password or digest field on purpose."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    role: Role

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)


class TokenResponse(BaseModel):
    """Response for successful register and login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse

    @classmethod
    def from_result(cls, result: AuthResult) -> "TokenResponse":
        return cls(
            access_token=result.token,
            expires_in=result.expires_in,
            user=UserResponse.from_public(result.user),
        )


class ClaimsResponse(BaseModel):
    """Verified token claims returned by GET /api/v1/auth/authorize."""

    model_config = ConfigDict(frozen=True)

    subject: str
    role: Role
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: Claims) -> "ClaimsResponse":
        return cls(
            subject=claims.subject,
            role=claims.role,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
