"""
asgi.py -- ASGI entry point for SiteCMS.

Run with:  uvicorn asgi:app --reload

The content routes (profile, skills) live outside this repository and are
mounted by the deployment; they gate access with auth.dependencies.require_auth.
"""

from api.main import app

__all__ = ["app"]
