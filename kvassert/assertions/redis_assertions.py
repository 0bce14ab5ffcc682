"""
Test assertions over a Redis database.

Wraps the comparison engine with pass/fail semantics: failed checks raise
AssertionError carrying the expected/actual diff. Also provides the read and
write helpers tests use to arrange and inspect data.
"""

from typing import Any, Dict, List, Optional, Set, Tuple, Union

from kvassert.comparison.engine import ComparisonEngine
from kvassert.comparison.exceptions import InvalidArgumentError, KeyNotFoundError
from kvassert.comparison.normalizer import Normalizer
from kvassert.config.settings import CLEANUP_NEVER, CLEANUP_SUITE, CLEANUP_TEST, Settings
from kvassert.domain.values import ValueKind, is_scalar
from kvassert.store.redis_client import RedisStore
from kvassert.utils.logger import get_logger, log_operation

logger = get_logger(__name__)

GrabResult = Union[None, str, List[str], Set[str], List[Tuple[str, float]], Dict[str, str]]


def _describe_item(item: Any, item_value: Any) -> str:
    if item_value is None:
        return f'"{item}"'
    return f'["{item}" => "{item_value}"]'


class RedisAssertions:
    """
    Assertion helpers for tests that exercise a Redis database.

    Example:
        >>> redis_check = RedisAssertions.from_settings(Settings.load())
        >>> redis_check.have_in_redis("list", "example:list", ["riri", "fifi"])
        >>> redis_check.see_in_redis("example:list", ["riri", "fifi"])
        >>> redis_check.see_redis_key_contains("example:list", "fifi")
    """

    def __init__(
        self,
        store: RedisStore,
        engine: Optional[ComparisonEngine] = None,
        cleanup_before: str = CLEANUP_NEVER,
    ):
        self.store = store
        self.engine = engine or ComparisonEngine(store)
        self.cleanup_before = cleanup_before

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisAssertions":
        return cls(RedisStore.from_settings(settings), cleanup_before=settings.cleanup_before)

    # Lifecycle hooks

    def before_suite(self) -> None:
        if self.cleanup_before == CLEANUP_SUITE:
            self.cleanup()

    def before_test(self) -> None:
        if self.cleanup_before == CLEANUP_TEST:
            self.cleanup()

    @log_operation("cleanup")
    def cleanup(self) -> None:
        """Delete all the keys in the database."""
        self.store.flush()

    # Assertions

    def see_in_redis(self, key: str, value: Any = None) -> None:
        """
        Assert that a key exists and, optionally, that it holds value.

        Lists are compared in order, sets ignore order, zsets need a mapping of
        members to scores in ascending score order, hashes ignore field order.
        Booleans are compared as "1" and "0", even inside containers.

        Raises:
            AssertionError: If the key is missing or its value differs
        """
        result = self.engine.check_key_exists(key, value)
        if result:
            return

        if result.mismatch is None:
            raise AssertionError(f'Cannot find key "{key}"')

        raise AssertionError(result.mismatch.describe())

    def dont_see_in_redis(self, key: str, value: Any = None) -> None:
        """
        Assert that a key does not exist or, optionally, does not hold value.

        Raises:
            AssertionError: If the key exists (with value, when given)
        """
        if self.engine.exists(key, value):
            suffix = " and its value matches the one provided" if value is not None else ""
            raise AssertionError(f'The key "{key}" exists{suffix}')

    def see_redis_key_contains(self, key: str, item: Any, item_value: Any = None) -> None:
        """
        Assert that a key contains an item.

        Strings are searched for a substring, lists and sets for a member, zsets
        for a member (with score) and hashes for a field (with value).

        Raises:
            AssertionError: If the item is not there
            KeyNotFoundError: If the key does not exist
        """
        if not self.engine.contains(key, item, item_value):
            raise AssertionError(
                f'The key "{key}" does not contain {_describe_item(item, item_value)}'
            )

    def dont_see_redis_key_contains(self, key: str, item: Any, item_value: Any = None) -> None:
        """
        Assert that a key does not contain an item.

        Raises:
            AssertionError: If the item is there
            KeyNotFoundError: If the key does not exist
        """
        if self.engine.contains(key, item, item_value):
            raise AssertionError(f'The key "{key}" contains {_describe_item(item, item_value)}')

    # Read and write helpers

    def grab_from_redis(
        self,
        key: str,
        index: Optional[int] = None,
        start: Optional[int] = None,
        stop: Optional[int] = None,
        field: Optional[str] = None,
    ) -> GrabResult:
        """
        Return the value of a key.

        Args:
            key: The key name
            index: Lists only, return the single element at this index
            start: Lists and zsets, first index of a range (default 0)
            stop: Lists and zsets, last index of a range (default -1)
            field: Hashes only, return this field's value

        Raises:
            KeyNotFoundError: If the key does not exist
            InvalidArgumentError: If only one zset bound is given
        """
        kind = self.store.type_of(key)

        if kind is ValueKind.ABSENT:
            raise KeyNotFoundError(key, f'Cannot grab key "{key}" as it does not exist')

        if kind is ValueKind.SCALAR_STRING:
            return self.store.get_scalar(key)

        if kind is ValueKind.ORDERED_LIST:
            if index is not None:
                return self.store.get_list_item(key, index)
            return self.store.get_list_range(
                key, 0 if start is None else start, -1 if stop is None else stop
            )

        if kind is ValueKind.UNORDERED_SET:
            return self.store.get_set_members(key)

        if kind is ValueKind.SCORED_SET:
            if (start is None) != (stop is None):
                raise InvalidArgumentError(
                    "grab_from_redis() on a zset expects both start and stop, or neither"
                )
            return self.store.get_scored_set_range(
                key, 0 if start is None else start, -1 if stop is None else stop
            )

        if field is not None:
            return self.store.get_hash_field(key, field)
        return self.store.get_hash_all(key)

    def have_in_redis(self, kind: str, key: str, value: Any) -> None:
        """
        Create or extend a key.

        Strings are overwritten; lists, sets, zsets and hashes get value's items
        appended. Booleans are written as "1" and "0".

        Args:
            kind: "string", "list", "set", "zset" or "hash"
            key: The key name
            value: Scalar for strings; scalar or sequence for lists and sets;
                mapping for zsets (member => score) and hashes (field => value)

        Raises:
            InvalidArgumentError: If kind is unknown or value has the wrong shape
        """
        to_string = Normalizer.to_string
        kind = kind.lower()

        if kind == "string":
            if not is_scalar(value):
                raise InvalidArgumentError(
                    'If kind is "string", value must be a scalar'
                )
            self.store.set_scalar(key, to_string(value))

        elif kind in ("list", "set"):
            items = list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
            items = [to_string(item) for item in items]
            if kind == "list":
                self.store.push_list(key, items)
            else:
                self.store.add_set_members(key, items)

        elif kind == "zset":
            if not isinstance(value, dict):
                raise InvalidArgumentError(
                    'If kind is "zset", value must be a mapping of members to scores'
                )
            self.store.add_scored_members(
                key, {to_string(member): Normalizer.to_float(score) for member, score in value.items()}
            )

        elif kind == "hash":
            if not isinstance(value, dict):
                raise InvalidArgumentError('If kind is "hash", value must be a mapping')
            self.store.set_hash_fields(
                key, {to_string(field): to_string(item) for field, item in value.items()}
            )

        else:
            raise InvalidArgumentError(
                f'Unknown type "{kind}" for key "{key}". Allowed types are '
                '"string", "list", "set", "zset", "hash"'
            )

        logger.debug("Wrote key", operation="have_in_redis", context={"key": key, "kind": kind})

    def send_command_to_redis(self, command: str, *args: Any, **kwargs: Any) -> Any:
        """
        Send a command directly to the client.

        Example:
            >>> redis_check.send_command_to_redis("incr", "example:string")
            >>> redis_check.send_command_to_redis("lpop", "example:list")
        """
        return self.store.execute(command, *args, **kwargs)
