"""
auth/errors.py -- Typed outcomes for the authentication and authorization core.

Every failure the core can produce is one of these exceptions. None of them is
process-fatal: they are expected results that the calling collaborator (the
API layer, the CLI) translates into its own vocabulary. Each class carries a
stable machine-readable `code` so that translation is a table lookup
(see api/main.py) rather than an isinstance ladder.

Hierarchy:

    AuthError
      ValidationError
      InvalidRole
      UserExists
      InvalidCredentials
      StorageUnavailable
      DuplicateEmail          (store -> service only; never reaches callers)
      TokenError
        MalformedToken
        InvalidSignature
        TokenExpired
      AccessDenied
        Unauthenticated       (carries the TokenError cause, if any)
        Forbidden

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all expected auth-core outcomes."""

    code: str = "auth_error"
    message: str = "Authentication error."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


class ValidationError(AuthError):
    code = "validation_error"
    message = "Request validation failed."


class InvalidRole(AuthError):
    code = "invalid_role"
    message = "Role must be one of: ceo, supplier, administrator."


class UserExists(AuthError):
    code = "user_exists"
    message = "A user with that email already exists."


class InvalidCredentials(AuthError):
    """Login failure. Deliberately identical for unknown email and wrong password."""

    code = "invalid_credentials"
    message = "Invalid email or password."


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageUnavailable(AuthError):
    code = "storage_unavailable"
    message = "The user directory is temporarily unavailable."


class DuplicateEmail(AuthError):
    """Raised by UserStore.insert when the UNIQUE(email) constraint fires."""

    code = "duplicate_email"
    message = "Email already present."


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    code = "invalid_token"
    message = "Invalid token."


class MalformedToken(TokenError):
    code = "malformed_token"
    message = "Token is malformed."


class InvalidSignature(TokenError):
    code = "invalid_signature"
    message = "Token signature is invalid."


class TokenExpired(TokenError):
    code = "token_expired"
    message = "Token has expired. Log in again."


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AccessDenied(AuthError):
    code = "access_denied"
    message = "Access denied."


class Unauthenticated(AccessDenied):
    """No token, or a token that failed verification.

    `cause` keeps the underlying TokenError (None when the token was simply
    absent) so callers can tell "log in again" from "tampered".
    """

    code = "unauthenticated"
    message = "Authentication required."

    def __init__(self, message: str | None = None, *, cause: TokenError | None = None) -> None:
        self.cause = cause
        super().__init__(message, detail=cause.code if cause is not None else None)


class Forbidden(AccessDenied):
    code = "forbidden"
    message = "Insufficient role for this action."
