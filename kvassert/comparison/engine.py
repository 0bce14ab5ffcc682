"""
Comparison Engine

Decides whether a stored value equals, or contains, what a test author
expects. The store's reported kind selects the rule:

- string: loose equality; containment is a substring search
- list: strict, order-sensitive equality; containment is membership
- set: strict equality of sorted members; containment uses the store
- zset: strict, order-sensitive (member, float score) equality
- hash: loose field-wise equality, order-insensitive

The kind is looked up fresh on every call. The value may change kind between
the type lookup and the fetch under concurrent writes; that race is accepted.
"""

import time
from typing import Any, Callable, Dict, Optional, Tuple

from kvassert.comparison.diagnostics import ComparisonMismatch, ComparisonResult
from kvassert.comparison.equality import (
    loose_equals,
    loose_mapping_equals,
    sorted_members,
    strict_sequence_equals,
)
from kvassert.comparison.exceptions import (
    InvalidArgumentError,
    KeyNotFoundError,
    UnexpectedKindError,
)
from kvassert.comparison.normalizer import Normalizer
from kvassert.domain.values import (
    ExpectedValue,
    MappingExpectation,
    ScalarExpectation,
    SequenceExpectation,
    StoredValue,
    ValueKind,
    classify_expected,
    is_scalar,
)
from kvassert.store.base import KeyValueStore
from kvassert.utils.logger import get_logger, preview

logger = get_logger(__name__)

# (matched, expected view, actual view)
Outcome = Tuple[bool, Any, Any]

# Expectation shape each container kind accepts; strings accept any shape
_SHAPES: Dict[ValueKind, Tuple[type, str]] = {
    ValueKind.ORDERED_LIST: (SequenceExpectation, "a sequence"),
    ValueKind.UNORDERED_SET: (SequenceExpectation, "a sequence"),
    ValueKind.SCORED_SET: (MappingExpectation, "a mapping of members to scores"),
    ValueKind.FIELD_MAP: (MappingExpectation, "a mapping of fields"),
}


def _view(expectation: ExpectedValue) -> Any:
    if isinstance(expectation, ScalarExpectation):
        return expectation.value
    if isinstance(expectation, SequenceExpectation):
        return list(expectation.items)
    return expectation.as_dict()


class ComparisonEngine:
    """
    Existence and containment checks over a KeyValueStore.

    The engine holds no state besides the store handle, so one instance can
    serve concurrent callers as long as the store client allows it.
    """

    def __init__(self, store: KeyValueStore, normalizer: Optional[Normalizer] = None):
        """
        Initialize ComparisonEngine.

        Args:
            store: Read interface to the store
            normalizer: Expected-value normalizer (default: Normalizer())
        """
        self.store = store
        self.normalizer = normalizer or Normalizer()

        self._readers: Dict[ValueKind, Callable[[str], Any]] = {
            ValueKind.SCALAR_STRING: store.get_scalar,
            ValueKind.ORDERED_LIST: store.get_list_range,
            ValueKind.UNORDERED_SET: store.get_set_members,
            ValueKind.SCORED_SET: store.get_scored_set_range,
            ValueKind.FIELD_MAP: store.get_hash_all,
        }
        self._comparators: Dict[ValueKind, Callable[[StoredValue, ExpectedValue], Outcome]] = {
            ValueKind.SCALAR_STRING: self._compare_scalar,
            ValueKind.ORDERED_LIST: self._compare_list,
            ValueKind.UNORDERED_SET: self._compare_set,
            ValueKind.SCORED_SET: self._compare_scored_set,
            ValueKind.FIELD_MAP: self._compare_hash,
        }
        self._containment: Dict[ValueKind, Callable[[str, Any, Any], bool]] = {
            ValueKind.SCALAR_STRING: self._scalar_contains,
            ValueKind.ORDERED_LIST: self._list_contains,
            ValueKind.UNORDERED_SET: self._set_contains,
            ValueKind.SCORED_SET: self._scored_set_contains,
            ValueKind.FIELD_MAP: self._hash_contains,
        }

    def exists(self, key: str, expected: Any = None) -> bool:
        """True iff key exists and, when expected is given, its value matches."""
        return bool(self.check_key_exists(key, expected))

    def check_key_exists(self, key: str, expected: Any = None) -> ComparisonResult:
        """
        Check that a key exists and optionally that it holds a value.

        Booleans in ``expected`` (top level or inside a container) are
        compared as "1"/"0".

        Args:
            key: The key name
            expected: Optional scalar, sequence or mapping

        Returns:
            ComparisonResult; on mismatch it carries a ComparisonMismatch

        Raises:
            InvalidArgumentError: If expected is not a scalar, sequence or
                mapping (raised before the store is queried), or has a shape
                the key's kind cannot take
            UnexpectedKindError: If the store reports an unsupported kind
        """
        expectation = None
        if expected is not None:
            expectation = self.normalizer.normalize(classify_expected(expected))

        start_time = time.time()
        kind = self.store.type_of(key)
        context = {"key": key, "kind": kind.value}

        if kind is ValueKind.ABSENT:
            logger.debug("Key does not exist", operation="exists", context=context)
            return ComparisonResult(key=key, kind=kind, matched=False)

        if expectation is None:
            return ComparisonResult(key=key, kind=kind, matched=True)

        comparator = self._comparators.get(kind)
        if comparator is None:
            raise UnexpectedKindError(kind.value)

        self._require_shape(kind, key, expectation)
        stored = StoredValue(kind, self._readers[kind](key))

        matched, expected_view, actual_view = comparator(stored, expectation)
        duration_ms = (time.time() - start_time) * 1000

        if matched:
            logger.debug(
                "Value matches", operation="exists", context=context, duration_ms=duration_ms
            )
            return ComparisonResult(key=key, kind=kind, matched=True)

        mismatch = ComparisonMismatch(
            key=key,
            kind=kind,
            expected=expected_view,
            actual=actual_view,
            message=f'Value of key "{key}" does not match expected value',
        )
        logger.info(
            "Value mismatch",
            operation="exists",
            context={
                **context,
                "expected": preview(expected_view),
                "actual": preview(actual_view),
            },
            duration_ms=duration_ms,
        )
        return ComparisonResult(key=key, kind=kind, matched=False, mismatch=mismatch)

    def contains(self, key: str, item: Any, item_value: Any = None) -> bool:
        """
        Check that the value at key contains item.

        Args:
            key: The key name
            item: Substring, list element, set member, zset member or hash field
            item_value: For zsets the expected score, for hashes the field value

        Returns:
            True if the item (and its value, when given) is present

        Raises:
            InvalidArgumentError: If item or item_value is not a scalar
            KeyNotFoundError: If the key does not exist
            UnexpectedKindError: If the store reports an unsupported kind
        """
        if not is_scalar(item) or (item_value is not None and not is_scalar(item_value)):
            raise InvalidArgumentError("All arguments of contains() must be scalars")

        item = self.normalizer.bool_to_string(item)
        item_value = self.normalizer.bool_to_string(item_value)

        start_time = time.time()
        kind = self.store.type_of(key)

        if kind is ValueKind.ABSENT:
            raise KeyNotFoundError(key)

        check = self._containment.get(kind)
        if check is None:
            raise UnexpectedKindError(kind.value)

        result = check(key, item, item_value)
        logger.debug(
            "Containment checked",
            operation="contains",
            context={"key": key, "kind": kind.value, "item": preview(item), "result": result},
            duration_ms=(time.time() - start_time) * 1000,
        )
        return result

    # Equality rules

    @staticmethod
    def _require_shape(kind: ValueKind, key: str, expectation: ExpectedValue) -> None:
        rule = _SHAPES.get(kind)
        if rule is None:
            return
        shape, wanted = rule
        if not isinstance(expectation, shape):
            raise InvalidArgumentError(
                f'Expected value for {kind.value} key "{key}" must be {wanted}'
            )

    def _compare_scalar(self, stored: StoredValue, expectation: ExpectedValue) -> Outcome:
        if not isinstance(expectation, ScalarExpectation):
            return False, _view(expectation), stored.data
        return loose_equals(stored.data, expectation.value), expectation.value, stored.data

    def _compare_list(self, stored: StoredValue, expectation: ExpectedValue) -> Outcome:
        expected = list(expectation.items)
        return strict_sequence_equals(stored.data, expected), expected, stored.data

    def _compare_set(self, stored: StoredValue, expectation: ExpectedValue) -> Outcome:
        actual = sorted_members(stored.data)
        expected = sorted_members(expectation.items)
        return strict_sequence_equals(actual, expected), expected, actual

    def _compare_scored_set(self, stored: StoredValue, expectation: ExpectedValue) -> Outcome:
        actual = self.normalizer.scores_to_float(stored.data)
        expected = self.normalizer.scores_to_float(expectation.pairs)
        return actual == expected, dict(expected), dict(actual)

    def _compare_hash(self, stored: StoredValue, expectation: ExpectedValue) -> Outcome:
        expected = expectation.as_dict()
        return (
            loose_mapping_equals(stored.data, expected),
            dict(sorted(expected.items(), key=lambda pair: str(pair[0]))),
            dict(sorted(stored.data.items())),
        )

    # Containment rules

    def _scalar_contains(self, key: str, item: Any, item_value: Any) -> bool:
        stored = self.store.get_scalar(key) or ""
        return self.normalizer.to_string(item) in stored

    def _list_contains(self, key: str, item: Any, item_value: Any) -> bool:
        return any(loose_equals(item, element) for element in self.store.get_list_range(key, 0, -1))

    def _set_contains(self, key: str, item: Any, item_value: Any) -> bool:
        return self.store.is_set_member(key, self.normalizer.to_string(item))

    def _scored_set_contains(self, key: str, item: Any, item_value: Any) -> bool:
        score = self.store.get_score(key, self.normalizer.to_string(item))
        if score is None:
            return False
        if item_value is None:
            return True
        return float(score) == self.normalizer.to_float(item_value)

    def _hash_contains(self, key: str, item: Any, item_value: Any) -> bool:
        value = self.store.get_hash_field(key, self.normalizer.to_string(item))
        if value is None:
            return False
        if item_value is None:
            return True
        return value == self.normalizer.to_string(item_value)
