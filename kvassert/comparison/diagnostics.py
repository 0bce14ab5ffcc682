"""Diagnostics - structured mismatch payloads and expected/actual diffs."""

from __future__ import annotations

import difflib
import json
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from kvassert.domain.values import ValueKind


def _render(value: Any) -> str:
    if isinstance(value, (set, frozenset)):
        value = sorted(value, key=str)
    if isinstance(value, tuple):
        value = list(value)
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


@dataclass
class ComparisonMismatch:
    """Represents a failed kind-specific comparison."""

    key: str
    kind: ValueKind
    expected: Any
    actual: Any
    message: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    def render_diff(self) -> str:
        expected_lines = _render(self.expected).splitlines()
        actual_lines = _render(self.actual).splitlines()

        diff: List[str] = list(
            difflib.unified_diff(
                expected_lines,
                actual_lines,
                fromfile="expected",
                tofile="actual",
                lineterm="",
            )
        )
        return "\n".join(diff)

    def describe(self) -> str:
        """Message followed by the expected/actual diff."""
        diff = self.render_diff()
        if not diff:
            return self.message
        return f"{self.message}\n{diff}"


@dataclass
class ComparisonResult:
    """Outcome of an existence check. Truthy iff the check passed."""

    key: str
    kind: ValueKind
    matched: bool
    mismatch: Optional[ComparisonMismatch] = None

    def __bool__(self) -> bool:
        return self.matched
