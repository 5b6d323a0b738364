"""
Auth API package.

Contains the phone + verification code authentication routes.
"""

from src.api.auth.routes import router

__all__ = ["router"]
