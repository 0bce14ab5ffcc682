"""Unit tests for the value model (kvassert/domain/values.py)."""

import pytest

from kvassert.comparison.exceptions import InvalidArgumentError, UnexpectedKindError
from kvassert.domain.values import (
    MappingExpectation,
    ScalarExpectation,
    SequenceExpectation,
    ValueKind,
    classify_expected,
    is_scalar,
)


class TestValueKind:
    @pytest.mark.parametrize(
        "tag, kind",
        [
            ("none", ValueKind.ABSENT),
            ("string", ValueKind.SCALAR_STRING),
            ("list", ValueKind.ORDERED_LIST),
            ("set", ValueKind.UNORDERED_SET),
            ("zset", ValueKind.SCORED_SET),
            ("hash", ValueKind.FIELD_MAP),
        ],
    )
    def test_from_tag(self, tag, kind):
        assert ValueKind.from_tag(tag) is kind

    def test_from_bytes_tag(self):
        assert ValueKind.from_tag(b"zset") is ValueKind.SCORED_SET

    def test_tag_is_case_insensitive(self):
        assert ValueKind.from_tag("HASH") is ValueKind.FIELD_MAP

    def test_unknown_tag_raises(self):
        with pytest.raises(UnexpectedKindError, match="stream") as exc_info:
            ValueKind.from_tag("stream")
        assert exc_info.value.kind == "stream"


class TestClassifyExpected:
    @pytest.mark.parametrize("raw", ["life", 2, 2.5, True])
    def test_scalars(self, raw):
        assert classify_expected(raw) == ScalarExpectation(raw)

    def test_list_and_tuple(self):
        assert classify_expected(["a", "b"]) == SequenceExpectation(("a", "b"))
        assert classify_expected(("a", "b")) == SequenceExpectation(("a", "b"))

    def test_set(self):
        result = classify_expected({"a", "b"})
        assert isinstance(result, SequenceExpectation)
        assert sorted(result.items) == ["a", "b"]

    def test_mapping_keeps_insertion_order(self):
        result = classify_expected({"riri": 3, "fifi": 1})
        assert result == MappingExpectation((("riri", 3), ("fifi", 1)))
        assert result.keys() == ("riri", "fifi")

    def test_already_classified_passes_through(self):
        expectation = ScalarExpectation("x")
        assert classify_expected(expectation) is expectation

    def test_unsupported_type(self):
        with pytest.raises(InvalidArgumentError):
            classify_expected(object())


class TestIsScalar:
    def test_scalars(self):
        assert is_scalar("a") and is_scalar(1) and is_scalar(1.5) and is_scalar(False)

    def test_none_is_not_scalar(self):
        assert not is_scalar(None)

    def test_containers_are_not_scalars(self):
        assert not is_scalar(["a"])
        assert not is_scalar({"a": 1})
