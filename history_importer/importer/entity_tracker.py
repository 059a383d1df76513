"""
Entity tracking

The handler always needs to know what the next version in the stream looks
like to answer questions like "until when is the current version valid" or
"is this the last version of that entity". It sometimes also needs the
previous version, e.g. to tell whether a deleted way used to be an area.
EntityTracker keeps the previous, current and next entity and compares them.
"""

import copy
from typing import Generic, Optional, Protocol, TypeVar


class Identified(Protocol):
    """Anything with a stable integer id shared by all of its versions"""
    id: int


T = TypeVar("T", bound=Identified)


class ProtocolViolationError(RuntimeError):
    """A new entity was fed before the pending one was swapped in"""


class EmptySlotError(LookupError):
    """An accessor was called for a slot that holds no entity"""


class EntityTracker(Generic[T]):
    """
    Tracks the previous, the current and the next entity of one kind.

    Every fed entity is deep-copied, so the tracker keeps valid snapshots
    even if the caller reuses or mutates the object it passed in.

    Usage:
        tracker = EntityTracker()
        for way in ways:
            tracker.feed(way)
            if tracker.has_current():
                handle(tracker)
            tracker.swap()
    """

    def __init__(self):
        self._previous: Optional[T] = None
        self._current: Optional[T] = None
        self._next: Optional[T] = None

    def previous(self) -> T:
        """Get the previous entity"""
        if self._previous is None:
            raise EmptySlotError("tracker holds no previous entity")
        return self._previous

    def current(self) -> T:
        """Get the current entity"""
        if self._current is None:
            raise EmptySlotError("tracker holds no current entity")
        return self._current

    def next(self) -> T:
        """Get the next entity"""
        if self._next is None:
            raise EmptySlotError("tracker holds no next entity")
        return self._next

    def has_previous(self) -> bool:
        return self._previous is not None

    def has_current(self) -> bool:
        return self._current is not None

    def has_next(self) -> bool:
        return self._next is not None

    def previous_is_same_entity(self) -> bool:
        """True if previous and current are both tracked and share their id"""
        return (
            self._previous is not None
            and self._current is not None
            and self._previous.id == self._current.id
        )

    def next_is_same_entity(self) -> bool:
        """True if current and next are both tracked and share their id"""
        return (
            self._current is not None
            and self._next is not None
            and self._current.id == self._next.id
        )

    def feed(self, entity: T) -> None:
        """
        Stage an entity as the next one.

        Raises:
            ProtocolViolationError: if a next entity is still pending; it has
                to be moved along with swap() before feeding a new one
        """
        if self._next is not None:
            raise ProtocolViolationError(
                f"cannot feed entity #{entity.id}: next entity #{self._next.id} "
                f"is still pending, call swap() first"
            )
        self._next = copy.deepcopy(entity)

    def swap(self) -> None:
        """Move current to previous and next to current, leaving next empty"""
        self._previous = self._current
        self._current = self._next
        self._next = None

    def __repr__(self) -> str:
        def _id(entity: Optional[T]) -> str:
            return "-" if entity is None else f"#{entity.id}"

        return (
            f"EntityTracker(previous={_id(self._previous)}, "
            f"current={_id(self._current)}, next={_id(self._next)})"
        )
