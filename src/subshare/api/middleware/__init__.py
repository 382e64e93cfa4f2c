"""
FastAPI middleware components.
"""

from .auth_context import AuthContextMiddleware, get_current_user, require_admin
from .error_handler import ErrorHandlerMiddleware, register_exception_handlers

__all__ = [
    "AuthContextMiddleware",
    "get_current_user",
    "require_admin",
    "ErrorHandlerMiddleware",
    "register_exception_handlers",
]
