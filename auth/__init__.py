"""auth/ -- Authentication and authorization core for CredGate.

Components, leaf first:
  hashing.PasswordHasher  -- bcrypt digests
  store.UserStore         -- user directory (SQLAlchemy Core)
  tokens.TokenIssuer      -- HS256 JWT mint / verify
  service.AuthService     -- Register / Login
  guard.AccessGuard       -- role-gated authorization

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/ at runtime (core.config.Settings is
named under TYPE_CHECKING only); configuration values are passed in
by whoever constructs the components. api/ imports from auth/, not the
other way around.
"""
