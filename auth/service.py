"""
auth/service.py -- Register / Login orchestration.

AuthService is the only place that combines the hasher, the user store and
the token issuer. Each call is a single logical transaction from the caller's
point of view: it either returns an AuthResult or raises one AuthError
subclass. There are no partial states to roll back -- insert is one atomic
statement and minting is a pure computation.

Anti-enumeration [login]:
  An unknown email and a wrong password both raise InvalidCredentials with
  the same message. The unknown-email path still runs one bcrypt verify
  against _dummy_digest so the two cases cost the same wall-clock time.

Registration conflicts:
  The service never checks "does this email exist?" before inserting. The
  store's UNIQUE constraint is the arbiter; DuplicateEmail becomes UserExists.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.errors import DuplicateEmail, InvalidCredentials, InvalidRole, Unauthenticated, UserExists, ValidationError
from auth.hashing import MAX_PASSWORD_BYTES, PasswordHasher
from auth.models import AuthResult, PublicUser, Role, User
from auth.store import UserStore
from auth.tokens import TokenIssuer

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("credgate.auth")


def parse_role(value: Role | str) -> Role:
    """Convert a role string to Role, raising InvalidRole outside the closed set."""
    try:
        return Role(value)
    except ValueError:
        raise InvalidRole(detail=f"got {value!r}") from None


def to_public(user: User) -> PublicUser:
    return PublicUser(id=user.id, email=user.email, name=user.name, role=user.role)


def _require_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required.", detail=field)
    return value


class AuthService:
    """Register and Login on top of a UserStore, PasswordHasher and TokenIssuer.

    Usage:
        service = AuthService.from_settings(settings, UserStore(settings.database_url))
        result = service.register("ana@example.com", "Ana", "Secret123!", "supplier")
        result.token, result.user
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        # Computed once so the first failed login is not measurably slower.
        self._dummy_digest = hasher.hash("credgate-timing-equalization")

    @classmethod
    def from_settings(cls, settings: Settings, store: UserStore) -> AuthService:
        """Build hasher and issuer from a core.config.Settings instance."""
        return cls(
            store=store,
            hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
            issuer=TokenIssuer(
                secret_key=settings.secret_key,
                expire_seconds=settings.token_expire_seconds,
            ),
        )

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(self, email: str, name: str, password: str, role: Role | str) -> AuthResult:
        """Create a user and return a session for it.

        Raises InvalidRole, ValidationError, UserExists, or StorageUnavailable.
        """
        parsed_role = parse_role(role)
        email = _require_text(email, "email").strip()
        if "@" not in email:
            raise ValidationError("email must be a valid address.", detail="email")
        name = _require_text(name, "name").strip()
        password = _require_text(password, "password")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes.", detail="password")

        digest = self.hasher.hash(password)
        try:
            user = self.store.insert(email, name, digest, parsed_role)
        except DuplicateEmail:
            logger.info("Registration rejected: email already registered")
            raise UserExists() from None

        logger.info("Registered user %s (role=%s)", user.id, user.role.value)
        return self._issue(user)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate by email and password and return a fresh session.

        Raises InvalidCredentials for every credential failure, or
        StorageUnavailable if the directory cannot be read.
        """
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidCredentials()
        user = self.store.find_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify(password, self._dummy_digest)
            logger.info("Login failed")
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_digest):
            logger.info("Login failed")
            raise InvalidCredentials()

        logger.info("Login succeeded for user %s", user.id)
        return self._issue(user)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> PublicUser:
        """Return the public view of a token subject.

        A verified token whose subject no longer exists is treated as
        unauthenticated rather than as a server error.
        """
        user = self.store.find_by_id(user_id)
        if user is None:
            raise Unauthenticated("Token subject no longer exists.")
        return to_public(user)

    def list_users(self) -> list[PublicUser]:
        return [to_public(u) for u in self.store.list_users()]

    def _issue(self, user: User) -> AuthResult:
        token = self.issuer.mint(user.id, user.role)
        return AuthResult(token=token, user=to_public(user), expires_in=self.issuer.expire_seconds)
