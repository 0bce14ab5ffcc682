"""Store module - typed read/write access to the key-value store."""

from .base import KeyValueStore
from .redis_client import RedisStore
from .exceptions import (
    StoreException,
    StoreBusyError,
    NetworkError,
    StorePermissionError,
)

__all__ = [
    "KeyValueStore",
    "RedisStore",
    "StoreException",
    "StoreBusyError",
    "NetworkError",
    "StorePermissionError",
]
