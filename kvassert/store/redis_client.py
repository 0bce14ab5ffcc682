"""
Redis implementation of the key-value store.

This module provides a thin abstraction over redis-py with dependency
injection for testability, retry on busy/timeout replies, exception
translation and structured logging.
"""

import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import redis
from redis.exceptions import (
    AuthenticationError,
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
    NoPermissionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from kvassert.domain.values import ValueKind
from kvassert.utils.logger import get_logger, preview
from .base import KeyValueStore
from .exceptions import (
    NetworkError,
    StoreBusyError,
    StoreException,
    StorePermissionError,
)


logger = get_logger(__name__)


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore(KeyValueStore):
    """
    Key-value store backed by a Redis server.

    Every command goes through ``_call`` which times it, retries busy-loading
    replies (and timeouts of reads) with exponential backoff, and translates
    client errors into the store exception hierarchy.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        host: str = "127.0.0.1",
        port: int = 6379,
        database: int = 0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        max_retries: int = 3,
        backoff_base: float = 0.5,
    ):
        """
        Initialize RedisStore.

        Args:
            client: redis-py client (default: creates a new one from the arguments)
            host: Server host
            port: Server port
            database: Database index
            username: ACL user name (Redis >= 6)
            password: Password or ACL secret
            max_retries: Number of attempts for busy/timeout replies
            backoff_base: Base exponential backoff multiplier (seconds)
        """
        self.client = client if client is not None else redis.Redis(
            host=host,
            port=port,
            db=database,
            username=username,
            password=password,
            decode_responses=True,
        )
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "RedisStore":
        """
        Build a store from a ``kvassert.config.settings.Settings``.

        Also installs the settings' password redaction filter on the kvassert
        loggers.
        """
        settings.setup_redaction_filter()
        return cls(
            host=settings.host,
            port=settings.port,
            database=settings.database,
            username=settings.username,
            password=settings.password,
            **kwargs,
        )

    def _call(
        self,
        operation: str,
        key: Optional[str],
        func: Callable[..., Any],
        *args: Any,
        retry_timeouts: bool = True,
        **kwargs: Any,
    ) -> Any:
        """
        Run one client command with retry and exception translation.

        Busy-loading replies are always retried. Timeouts are retried only
        when ``retry_timeouts`` is set: a timed-out write may already have
        been applied.

        Raises:
            StoreBusyError: If busy/timeout persists after max retries
            StorePermissionError: If authentication or ACL check fails
            NetworkError: If the connection fails, or a write times out
            StoreException: For any other client error
        """
        context = {"key": key} if key is not None else None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                reply = func(*args, **kwargs)
                duration_ms = (time.time() - start_time) * 1000

                logger.debug(
                    "Store command completed",
                    operation=operation,
                    context=context,
                    duration_ms=duration_ms,
                )
                return reply

            except (BusyLoadingError, RedisTimeoutError) as e:
                if isinstance(e, RedisTimeoutError) and not retry_timeouts:
                    logger.error(
                        "Store command timed out, it may have been applied",
                        operation=operation,
                        context=context,
                        error=str(e),
                    )
                    raise NetworkError(f"Store command timed out: {e}") from e

                if attempt < self.max_retries - 1:
                    wait_time = self.backoff_base * (2**attempt)
                    logger.warning(
                        f"Store busy, retrying after {wait_time}s",
                        operation=operation,
                        context=context,
                        error=str(e),
                    )
                    time.sleep(wait_time)
                    continue

                logger.error(
                    "Store busy after max retries",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise StoreBusyError(
                    f"Store busy after {self.max_retries} retries: {e}"
                ) from e

            except (AuthenticationError, NoPermissionError) as e:
                logger.error(
                    "Permission denied",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise StorePermissionError(f"Store permission denied: {e}") from e

            except (RedisConnectionError, OSError) as e:
                logger.error(
                    "Network error",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise NetworkError(f"Network error: {e}") from e

            except RedisError as e:
                logger.error(
                    "Store error",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise StoreException(f"Store error: {e}") from e

        raise StoreBusyError(f"Store busy after {self.max_retries} retries")

    # Reads

    def type_of(self, key: str) -> ValueKind:
        return ValueKind.from_tag(self._call("type", key, self.client.type, key))

    def get_scalar(self, key: str) -> Optional[str]:
        return _decode(self._call("get", key, self.client.get, key))

    def get_list_range(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        reply = self._call("lrange", key, self.client.lrange, key, start, stop)
        return [_decode(item) for item in reply]

    def get_list_item(self, key: str, index: int) -> Optional[str]:
        return _decode(self._call("lindex", key, self.client.lindex, key, index))

    def get_set_members(self, key: str) -> Set[str]:
        reply = self._call("smembers", key, self.client.smembers, key)
        return {_decode(member) for member in reply}

    def get_scored_set_range(
        self, key: str, start: int = 0, stop: int = -1
    ) -> List[Tuple[str, float]]:
        reply = self._call(
            "zrange", key, self.client.zrange, key, start, stop, withscores=True
        )
        return [(_decode(member), float(score)) for member, score in reply]

    def get_hash_all(self, key: str) -> Dict[str, str]:
        reply = self._call("hgetall", key, self.client.hgetall, key)
        return {_decode(field): _decode(value) for field, value in reply.items()}

    def get_hash_field(self, key: str, field: str) -> Optional[str]:
        return _decode(self._call("hget", key, self.client.hget, key, field))

    def is_set_member(self, key: str, item: str) -> bool:
        return bool(self._call("sismember", key, self.client.sismember, key, item))

    def get_score(self, key: str, member: str) -> Optional[float]:
        reply = self._call("zscore", key, self.client.zscore, key, member)
        return None if reply is None else float(reply)

    # Writes

    def set_scalar(self, key: str, value: str) -> None:
        logger.debug("Setting string", operation="set", context={"key": key, "value": preview(value)})
        self._call("set", key, self.client.set, key, value, retry_timeouts=False)

    def push_list(self, key: str, values: Iterable[str]) -> int:
        return self._call("rpush", key, self.client.rpush, key, *values, retry_timeouts=False)

    def add_set_members(self, key: str, members: Iterable[str]) -> int:
        return self._call("sadd", key, self.client.sadd, key, *members, retry_timeouts=False)

    def add_scored_members(self, key: str, scores: Mapping[str, float]) -> int:
        return self._call("zadd", key, self.client.zadd, key, dict(scores), retry_timeouts=False)

    def set_hash_fields(self, key: str, fields: Mapping[str, str]) -> int:
        return self._call(
            "hset", key, self.client.hset, key, mapping=dict(fields), retry_timeouts=False
        )

    def flush(self) -> None:
        """Delete all keys of the selected database."""
        self._call("flushdb", None, self.client.flushdb)

    def execute(self, command: str, *args: Any, **kwargs: Any) -> Any:
        """
        Forward a command to the client method of the same name.

        Example:
            >>> store.execute("incr", "counter")
            >>> store.execute("zrangebyscore", "zs", "-inf", "+inf", withscores=True)
        """
        method = getattr(self.client, command.lower(), None)
        if method is None or not callable(method):
            raise StoreException(f'Unknown store command "{command}"')

        key = args[0] if args and isinstance(args[0], str) else None
        return self._call(command.lower(), key, method, *args, retry_timeouts=False, **kwargs)
