"""
asgi.py -- ASGI entry point for the authentication API.

Run with:  uvicorn asgi:app --reload
           uvicorn asgi:app --host 0.0.0.0 --port 8000

The app, its lifespan and every router live in api/main.py; this module only
gives process managers a stable import path.
"""

from api.main import app

__all__ = ["app"]
