"""Domain module - stored value kinds and expectation shapes."""

from .values import (
    ValueKind,
    StoredValue,
    ScalarExpectation,
    SequenceExpectation,
    MappingExpectation,
    ExpectedValue,
    classify_expected,
    is_scalar,
)

__all__ = [
    "ValueKind",
    "StoredValue",
    "ScalarExpectation",
    "SequenceExpectation",
    "MappingExpectation",
    "ExpectedValue",
    "classify_expected",
    "is_scalar",
]
