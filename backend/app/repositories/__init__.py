"""
Repository layer for database operations.
Provides typed data access over the relational store.
"""
from app.repositories.result import Found, NotFound, LookupFailed, LookupResult
from app.repositories.user_repository import UserRepository

__all__ = [
    "Found",
    "NotFound",
    "LookupFailed",
    "LookupResult",
    "UserRepository",
]
