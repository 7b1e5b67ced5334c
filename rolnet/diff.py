"""Order-preserving set arithmetic over membership lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)


def unique(items: Iterable[T]) -> list[T]:
    """Drop repeated items, keeping the first occurrence."""
    return list(dict.fromkeys(items))


def difference(left: Iterable[T], right: Iterable[T]) -> list[T]:
    """Items of ``left`` that are not in ``right``, in ``left`` order."""
    excluded = set(right)
    return [item for item in unique(left) if item not in excluded]


def remove_element(items: Iterable[T], element: T) -> list[T]:
    return [item for item in items if item != element]


@dataclass(frozen=True)
class MembershipDiff(Generic[T]):
    """What to take away from and what to add to a previously applied membership."""

    remove: list[T] = field(default_factory=list)
    add: list[T] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.remove and not self.add


def membership_diff(previous: Iterable[T], new: Iterable[T]) -> MembershipDiff[T]:
    """Compute ``previous \\ new`` and ``new \\ previous``.

    An empty ``new`` removes the whole previous membership.
    """
    previous = unique(previous)
    new = unique(new)
    return MembershipDiff(remove=difference(previous, new), add=difference(new, previous))
