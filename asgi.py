"""
asgi.py -- ASGI entry point for CredGate.

Run with:  uvicorn asgi:app --reload

Importing api.main reads Settings; a missing or short SECRET_KEY raises here,
before uvicorn binds a socket.
"""

from api.main import app

__all__ = ["app"]
