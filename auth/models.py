"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, issuer and service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Assigned at registration, copied into every token."""

    ceo = "ceo"
    supplier = "supplier"
    administrator = "administrator"


@dataclass
class User:
    """Full identity record as persisted by UserStore.

    password_digest is excluded from repr so a stray log line or traceback
    never prints it. It must never be serialized into a response either --
    map to PublicUser at every boundary.
    """

    id: str
    email: str  # normalized: stripped, lower case
    name: str
    role: Role
    password_digest: str = field(repr=False)
    created_at: str | None = None


@dataclass(frozen=True)
class PublicUser:
    """The only user shape that leaves the auth core."""

    id: str
    email: str
    name: str
    role: Role


@dataclass(frozen=True)
class Claims:
    """Verified token payload. Timestamps are aware UTC datetimes, whole seconds."""

    subject: str
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthResult:
    """Successful Register / Login outcome."""

    token: str
    user: PublicUser
    expires_in: int  # seconds
