"""
Exception hierarchy for comparison operations.

Mismatches are not exceptions: they come back as a false result carrying a
diagnostic. The exceptions below signal caller errors and defect states.
"""


class ComparisonError(Exception):
    """
    Base exception for all comparison-related errors.
    """

    pass


class KeyNotFoundError(ComparisonError):
    """
    Raised when a containment check targets a key that does not exist.

    Existence checks return False for a missing key instead of raising.
    """

    def __init__(self, key: str, message: str = ""):
        self.key = key
        super().__init__(message or f'Key "{key}" does not exist')


class InvalidArgumentError(ComparisonError):
    """
    Raised when an argument has the wrong shape.

    Covers a non-scalar item passed to a containment check and an expected
    value whose shape cannot be compared against the key's value kind.
    """

    pass


class UnexpectedKindError(ComparisonError):
    """
    Raised when the store reports a value kind the engine has no rule for.
    """

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unexpected value type {kind}")
