"""HTTP surface: handlers, middleware and the application factory."""
from .main import create_app

__all__ = ["create_app"]
