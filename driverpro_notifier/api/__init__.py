"""HTTP liveness and diagnostic endpoints."""

from .app import create_app
from .server import HTTPServer

__all__ = ["create_app", "HTTPServer"]
