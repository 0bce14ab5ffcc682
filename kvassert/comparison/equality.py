"""
Equality modes used by the comparison engine.

Loose equality is applied to strings and hash fields only. Lists, sets and
scored sets are compared strictly after normalization.
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from kvassert.comparison.normalizer import Normalizer

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # Beyond float range; compared by string rendering instead
            return None
    if isinstance(value, str) and _NUMERIC_RE.match(value):
        return float(value)
    return None


def loose_equals(a: Any, b: Any) -> bool:
    """
    Numeric-string-aware equality.

    When both sides look numeric they are compared as numbers ("2" equals 2,
    "1.0" equals "1"). Otherwise both sides are compared by their string
    rendering. Containers only ever equal containers that are ``==``.

    Example:
        >>> loose_equals("2", 2)
        True
        >>> loose_equals("abc", 0)
        False
    """
    if isinstance(a, (list, tuple, dict, set)) or isinstance(b, (list, tuple, dict, set)):
        return a == b

    number_a = _as_number(a)
    number_b = _as_number(b)
    if number_a is not None and number_b is not None:
        return number_a == number_b

    return Normalizer.to_string(a) == Normalizer.to_string(b)


def strict_equals(a: Any, b: Any) -> bool:
    """Equal values of the same type. "1" never equals 1."""
    return type(a) is type(b) and a == b


def strict_sequence_equals(a: Sequence[Any], b: Sequence[Any]) -> bool:
    """Same length, and strictly equal elements at every position."""
    if len(a) != len(b):
        return False
    return all(strict_equals(x, y) for x, y in zip(a, b))


def _member_sort_key(value: Any):
    return (Normalizer.to_string(value), type(value).__name__)


def sorted_members(values: Iterable[Any]) -> List[Any]:
    """Sort values of mixed types by string form, then type name."""
    return sorted(values, key=_member_sort_key)


def loose_mapping_equals(a: Mapping[Any, Any], b: Mapping[Any, Any]) -> bool:
    """
    Order-insensitive mapping equality with loose values.

    Keys are matched by their string form, since the store's field names are
    always strings.
    """
    left = {Normalizer.to_string(key): value for key, value in a.items()}
    right = {Normalizer.to_string(key): value for key, value in b.items()}

    if left.keys() != right.keys():
        return False

    return all(loose_equals(left[key], right[key]) for key in left)
