"""
Core module - Configuration, database, errors, identity and utilities.
"""

from iskolar.core.config import get_settings, settings
from iskolar.core.database import Base, close_db, get_db, init_db, storage_guard
from iskolar.core.exceptions import (
    ConflictError,
    DuplicateApplicationError,
    EligibilityError,
    NotFoundError,
    ServiceError,
    StorageError,
    UnauthenticatedError,
    ValidationError,
)
from iskolar.core.redis import close_redis, get_redis_client, init_redis

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    "storage_guard",
    # Errors
    "ServiceError",
    "ValidationError",
    "EligibilityError",
    "NotFoundError",
    "ConflictError",
    "DuplicateApplicationError",
    "UnauthenticatedError",
    "StorageError",
    # Redis
    "get_redis_client",
    "init_redis",
    "close_redis",
]
