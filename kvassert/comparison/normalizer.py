"""
Normalizer - bring author-supplied expectations into store-comparable form.

The store only holds strings, so booleans are coerced to "1"/"0" and scores
are compared as floats.
"""

from typing import Any, Iterable, List, Tuple

from kvassert.comparison.exceptions import InvalidArgumentError
from kvassert.domain.values import (
    ExpectedValue,
    MappingExpectation,
    ScalarExpectation,
    SequenceExpectation,
)

# Integral floats below this magnitude are exact and render without a fraction
EXACT_INT_LIMIT = 2**53


class Normalizer:
    """
    Normalize expected values before comparison.

    Responsibilities:
    - Coerce booleans to "1"/"0" at the top level and one level deep
    - Render scalars the way the store would hold them
    - Convert scored-set scores to float
    """

    @staticmethod
    def bool_to_string(value: Any) -> Any:
        """Return "1"/"0" for a boolean, the value itself otherwise."""
        if isinstance(value, bool):
            return "1" if value else "0"
        return value

    @staticmethod
    def to_string(value: Any) -> str:
        """
        Render a scalar as the store would hold it.

        Integral floats drop their fractional part so that 2.0 and 2 both
        render as "2". Beyond 2**53 floats keep their exponent form ("1e+20").
        """
        if value is None:
            return ""
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, float):
            if value.is_integer() and abs(value) < EXACT_INT_LIMIT:
                return str(int(value))
            return repr(value)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    @staticmethod
    def normalize(expectation: ExpectedValue) -> ExpectedValue:
        """
        Coerce booleans inside an expectation.

        Containers are walked one level deep; nested containers are left as-is.

        Args:
            expectation: Classified expected value

        Returns:
            A new expectation of the same shape
        """
        if isinstance(expectation, ScalarExpectation):
            return ScalarExpectation(Normalizer.bool_to_string(expectation.value))

        if isinstance(expectation, SequenceExpectation):
            return SequenceExpectation(
                tuple(Normalizer.bool_to_string(item) for item in expectation.items)
            )

        if isinstance(expectation, MappingExpectation):
            return MappingExpectation(
                tuple(
                    (Normalizer.bool_to_string(key), Normalizer.bool_to_string(value))
                    for key, value in expectation.pairs
                )
            )

        raise InvalidArgumentError(f"Cannot normalize {type(expectation).__name__}")

    @staticmethod
    def to_float(value: Any) -> float:
        """
        Convert a score to float.

        Raises:
            InvalidArgumentError: If the value is not numeric
        """
        value = Normalizer.bool_to_string(value)
        if isinstance(value, bytes):
            value = value.decode("utf-8")

        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"Score {value!r} is not numeric") from None
        except OverflowError:
            raise InvalidArgumentError(f"Score {value!r} is out of float range") from None

    @staticmethod
    def scores_to_float(pairs: Iterable[Tuple[Any, Any]]) -> List[Tuple[str, float]]:
        """
        Convert (member, score) pairs to (str, float), preserving order.

        Args:
            pairs: Stored range-with-scores reply or expected mapping items

        Returns:
            List of (member, float score) in input order
        """
        return [
            (Normalizer.to_string(member), Normalizer.to_float(score))
            for member, score in pairs
        ]
