"""Unit tests for mismatch diagnostics."""

from kvassert.comparison.diagnostics import ComparisonMismatch, ComparisonResult
from kvassert.domain.values import ValueKind


def _mismatch(expected, actual):
    return ComparisonMismatch(
        key="example:list",
        kind=ValueKind.ORDERED_LIST,
        expected=expected,
        actual=actual,
        message='Value of key "example:list" does not match expected value',
    )


class TestComparisonMismatch:
    def test_to_dict_uses_kind_tag(self):
        data = _mismatch(["a"], ["b"]).to_dict()

        assert data["kind"] == "list"
        assert data["expected"] == ["a"]
        assert data["actual"] == ["b"]

    def test_render_diff_shows_both_sides(self):
        diff = _mismatch(["x", "y"], ["y", "x"]).render_diff()

        assert "--- expected" in diff
        assert "+++ actual" in diff
        assert '-  "x",' in diff
        assert '+  "y",' in diff

    def test_render_diff_handles_sets(self):
        diff = _mismatch({"b", "a"}, {"a", "c"}).render_diff()
        assert '-  "b"' in diff
        assert '+  "c"' in diff

    def test_describe_starts_with_message(self):
        description = _mismatch("2", "3").describe()

        assert description.startswith('Value of key "example:list"')
        assert '-"2"' in description
        assert '+"3"' in description

    def test_describe_without_visible_difference(self):
        """Values that render the same produce only the message."""
        description = _mismatch("1", "1").describe()
        assert description == 'Value of key "example:list" does not match expected value'


class TestComparisonResult:
    def test_truthiness_follows_matched(self):
        assert ComparisonResult(key="k", kind=ValueKind.SCALAR_STRING, matched=True)
        assert not ComparisonResult(key="k", kind=ValueKind.ABSENT, matched=False)

    def test_mismatch_defaults_to_none(self):
        result = ComparisonResult(key="k", kind=ValueKind.ABSENT, matched=False)
        assert result.mismatch is None
