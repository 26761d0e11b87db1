"""
auth/tokens.py -- JWT session tokens: mint and verify.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the configured secret
       and carry sub (user id), role, iat and exp as integer epoch seconds.
       They are stateless: nothing is persisted server-side, and a token lives
       until exp. There is no per-token revocation.

  Verification order is fixed:
       1. structure  -- three base64url segments and a JSON header
       2. signature  -- jws.verify() against our key and algorithm
       3. expiry     -- now < exp
       4. claims     -- sub / role / iat present and well-typed
       The payload is never interpreted before the signature has been checked,
       so a forged token cannot steer which code path runs. HMAC comparison
       inside python-jose uses hmac.compare_digest.

  Each failure raises a distinct TokenError subclass. Expired and tampered
       tokens are both "unauthenticated" to the guard, but the cause is kept
       so the API can say "log in again" rather than "invalid token".

  The secret is handed in at construction (see AccessGuard / AuthService
       wiring in api/main.py). Nothing here reads configuration globals, so
       tests can run issuers with isolated secrets side by side.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import jws, jwt
from jose.exceptions import JOSEError

from auth.errors import InvalidSignature, MalformedToken, TokenExpired
from auth.models import Claims, Role

DEFAULT_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenIssuer:
    """Mints and verifies signed, time-bounded (subject, role) claims.

    Usage:
        issuer = TokenIssuer(secret_key=settings.secret_key, expire_seconds=86400)
        token = issuer.mint(user.id, user.role)
        claims = issuer.verify(token)    # raises TokenError subclasses
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = 24 * 3600,
        algorithm: str = DEFAULT_ALGORITHM,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a non-empty secret key")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._clock = clock
        self.expire_seconds = expire_seconds

    def __repr__(self) -> str:
        return f"TokenIssuer(algorithm={self._algorithm!r}, expire_seconds={self.expire_seconds})"

    # ------------------------------------------------------------------
    # Mint
    # ------------------------------------------------------------------

    def mint(self, subject_id: str, role: Role) -> str:
        """Encode a signed JWT for the subject with iat=now and exp=now+horizon."""
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self.expire_seconds)
        payload = {
            "sub": subject_id,
            "role": Role(role).value,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str) -> Claims:
        """Verify signature, then expiry, then claim shape. Returns Claims.

        Raises:
            MalformedToken:   not a JWT, unreadable payload, or bad claim types.
            InvalidSignature: signature or algorithm does not match our key.
            TokenExpired:     signature is valid but now >= exp.
        """
        if not isinstance(token, str) or not token:
            raise MalformedToken()
        try:
            jws.get_unverified_header(token)
        except JOSEError as exc:
            raise MalformedToken(detail=str(exc)) from exc

        try:
            raw_payload = jws.verify(token, self._secret_key, algorithms=[self._algorithm])
        except JOSEError as exc:
            raise InvalidSignature() from exc

        try:
            payload = json.loads(raw_payload)
        except ValueError as exc:
            raise MalformedToken(detail="payload is not JSON") from exc
        if not isinstance(payload, dict) or not _is_int(payload.get("exp")):
            raise MalformedToken(detail="missing or non-integer exp")

        now = int(self._clock().timestamp())
        if now >= payload["exp"]:
            raise TokenExpired()

        return self._claims_from_payload(payload)

    @staticmethod
    def _claims_from_payload(payload: dict) -> Claims:
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedToken(detail="missing sub")
        if not _is_int(payload.get("iat")):
            raise MalformedToken(detail="missing or non-integer iat")
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise MalformedToken(detail="unknown role") from exc
        return Claims(
            subject=subject,
            role=role,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
