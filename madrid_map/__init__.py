"""Expose the FastAPI ASGI app at the package level so
`uvicorn madrid_map:app` works when run from the repository root.
"""
from .app.main import app

__all__ = ["app"]
