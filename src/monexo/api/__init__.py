"""
API module for the monexo mint.

Provides the FastAPI application factory and routes exposing the mint over HTTP.
"""

from monexo.api.server import create_app, mint_from_env

__all__ = [
    "create_app",
    "mint_from_env",
]
