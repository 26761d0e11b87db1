#!/usr/bin/env python3
"""
CredGate admin CLI -- bootstrap users and inspect tokens from a shell.

Usage:
  python manage.py create-user --email ceo@example.com --name "Ada" --role ceo
  python manage.py create-user --email ops@example.com --name "Ops" --role administrator --password '...'
  python manage.py verify-token eyJhbGciOi...

Reads the same environment / .env as the API (SECRET_KEY, DATABASE_URL,
BCRYPT_ROUNDS, TOKEN_EXPIRE_SECONDS). When --password is omitted the password
is prompted for twice without echo.
"""

import argparse
import getpass
import sys

from auth.errors import AuthError
from auth.guard import AccessGuard
from auth.models import Role
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings


def _prompt_password() -> str:
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        raise SystemExit("  [!] Passwords do not match.")
    return first


def cmd_create_user(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        service = AuthService.from_settings(settings, store)
        password = args.password if args.password is not None else _prompt_password()
        result = service.register(args.email, args.name, password, args.role)
    except AuthError as exc:
        print(f"  [!] {exc.code}: {exc.message}")
        return 1
    finally:
        store.close()
    print(f"  Created {result.user.role.value} {result.user.email} (id={result.user.id})")
    return 0


def cmd_verify_token(args: argparse.Namespace) -> int:
    settings = get_settings()
    # Verification needs only the signing configuration, not the database.
    guard = AccessGuard(TokenIssuer(settings.secret_key, settings.token_expire_seconds))
    try:
        claims = guard.authenticate(args.token)
    except AuthError as exc:
        cause = getattr(exc, "cause", None)
        print(f"  [!] {cause.code if cause is not None else exc.code}: {exc.message}")
        return 1
    print(f"  subject:    {claims.subject}")
    print(f"  role:       {claims.role.value}")
    print(f"  issued_at:  {claims.issued_at.isoformat()}")
    print(f"  expires_at: {claims.expires_at.isoformat()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="manage.py", description="CredGate admin commands.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Register a user directly in the user directory.")
    create.add_argument("--email", required=True)
    create.add_argument("--name", required=True)
    create.add_argument("--role", required=True, choices=[r.value for r in Role])
    create.add_argument("--password", help="Omit to be prompted without echo.")
    create.set_defaults(func=cmd_create_user)

    verify = sub.add_parser("verify-token", help="Verify a bearer token and print its claims.")
    verify.add_argument("token")
    verify.set_defaults(func=cmd_verify_token)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
