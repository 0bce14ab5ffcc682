"""
Read interface the comparison engine relies on.

Any key-value backend that can report a key's kind and read each kind back
can sit behind the engine.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Tuple

from kvassert.domain.values import ValueKind


class KeyValueStore(ABC):
    """
    Typed read queries over a key-value store.

    Implementations must return strings for all stored data and floats for
    scores. A missing key reports ``ValueKind.ABSENT``.
    """

    @abstractmethod
    def type_of(self, key: str) -> ValueKind:
        """Kind of the value stored at key."""

    @abstractmethod
    def get_scalar(self, key: str) -> Optional[str]:
        """Value of a string key."""

    @abstractmethod
    def get_list_range(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        """Elements of a list between two inclusive indexes."""

    @abstractmethod
    def get_set_members(self, key: str) -> Set[str]:
        """All members of a set."""

    @abstractmethod
    def get_scored_set_range(
        self, key: str, start: int = 0, stop: int = -1
    ) -> List[Tuple[str, float]]:
        """(member, score) pairs in ascending score order."""

    @abstractmethod
    def get_hash_all(self, key: str) -> Dict[str, str]:
        """All fields of a hash."""

    @abstractmethod
    def get_hash_field(self, key: str, field: str) -> Optional[str]:
        """One field of a hash, or None if the field is missing."""

    @abstractmethod
    def is_set_member(self, key: str, item: str) -> bool:
        """Whether item is a member of the set."""

    @abstractmethod
    def get_score(self, key: str, member: str) -> Optional[float]:
        """Score of a member, or None if it is not in the scored set."""
