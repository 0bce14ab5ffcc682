"""
kvassert - verify the contents of a key-value store from tests.

Compares stored strings, lists, sets, sorted sets and hashes against the
values a test expects, with per-kind equality and containment rules.
"""

from kvassert.comparison.engine import ComparisonEngine
from kvassert.comparison.exceptions import (
    ComparisonError,
    InvalidArgumentError,
    KeyNotFoundError,
    UnexpectedKindError,
)
from kvassert.domain.values import ValueKind

__version__ = "1.0.0"
__all__ = [
    "ComparisonEngine",
    "ComparisonError",
    "InvalidArgumentError",
    "KeyNotFoundError",
    "UnexpectedKindError",
    "ValueKind",
]
