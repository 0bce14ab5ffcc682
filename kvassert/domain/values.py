"""
Value model for store assertions.

A key's kind is reported by the store and is authoritative. Expected values
arrive untyped from the test author and are classified into one of three
shapes before any comparison happens.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

from kvassert.comparison.exceptions import InvalidArgumentError, UnexpectedKindError


class ValueKind(Enum):
    """Kinds of stored values, keyed by the store's type tag."""

    ABSENT = "none"
    SCALAR_STRING = "string"
    ORDERED_LIST = "list"
    UNORDERED_SET = "set"
    SCORED_SET = "zset"
    FIELD_MAP = "hash"

    @classmethod
    def from_tag(cls, tag: Union[str, bytes]) -> "ValueKind":
        """
        Parse the type tag returned by the store's TYPE command.

        Raises:
            UnexpectedKindError: If the tag names a kind with no comparison rule
        """
        if isinstance(tag, bytes):
            tag = tag.decode("utf-8")

        try:
            return cls(str(tag).lower())
        except ValueError:
            raise UnexpectedKindError(tag) from None


SCALAR_TYPES = (str, int, float, bool)


def is_scalar(value: Any) -> bool:
    """True for str, int, float and bool. None is not a scalar."""
    return isinstance(value, SCALAR_TYPES)


@dataclass(frozen=True)
class ScalarExpectation:
    value: Any


@dataclass(frozen=True)
class SequenceExpectation:
    items: Tuple[Any, ...]


@dataclass(frozen=True)
class MappingExpectation:
    """Ordered (key, value) pairs, in the order the author wrote them."""

    pairs: Tuple[Tuple[Any, Any], ...]

    def keys(self) -> Tuple[Any, ...]:
        return tuple(key for key, _ in self.pairs)

    def as_dict(self) -> dict:
        return dict(self.pairs)


ExpectedValue = Union[ScalarExpectation, SequenceExpectation, MappingExpectation]


def classify_expected(raw: Any) -> ExpectedValue:
    """
    Classify an author-supplied value into its expectation shape.

    Args:
        raw: A scalar, a list/tuple/set, or a mapping

    Returns:
        The matching ExpectedValue variant

    Raises:
        InvalidArgumentError: If the value is none of the accepted shapes
    """
    if isinstance(raw, (ScalarExpectation, SequenceExpectation, MappingExpectation)):
        return raw

    if is_scalar(raw):
        return ScalarExpectation(raw)

    if isinstance(raw, Mapping):
        return MappingExpectation(tuple(raw.items()))

    if isinstance(raw, (list, tuple)):
        return SequenceExpectation(tuple(raw))

    if isinstance(raw, (set, frozenset)):
        # Iteration order of a set is arbitrary; only set comparison uses it
        return SequenceExpectation(tuple(raw))

    raise InvalidArgumentError(
        f"Expected value must be a scalar, a sequence or a mapping, got {type(raw).__name__}"
    )


@dataclass(frozen=True)
class StoredValue:
    """
    A value read from the store for one comparison.

    Attributes:
        kind: Kind reported by the store
        data: str for strings, list of str for lists, set of str for sets,
            list of (member, score) for scored sets, dict for hashes
    """

    kind: ValueKind
    data: Any
