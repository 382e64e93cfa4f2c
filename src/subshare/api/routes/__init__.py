"""
API route modules.
"""

from . import admin, auth, health, platforms, reports, subscriptions, users, wallet

__all__ = ["admin", "auth", "health", "platforms", "reports", "subscriptions", "users", "wallet"]
