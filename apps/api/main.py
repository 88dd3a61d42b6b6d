"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the valentine package.
Run with: uvicorn main:app --reload

Note: The app instance is created here (not in valentine.app) to avoid import-time
side effects. This allows tests to import create_app without requiring all
environment variables to be configured.
"""

from valentine.app import create_app

app = create_app()

__all__ = ["app"]
