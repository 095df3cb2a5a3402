"""Position bookkeeping for ordered collections.

Provider playlist mirrors and unified playlists both keep their items at
integer positions that must stay unique and contiguous (0..N-1) after every
completed mutation. The helpers here work on any objects exposing a mutable
`position` attribute (ORM rows included) and never touch storage; callers are
responsible for persisting the result and for serializing mutations on the
same collection (see app.data.collections).

Every helper validates its arguments before changing a single position.
"""

from typing import Iterable, List, Optional, Protocol, Sequence, TypeVar

from .errors import ValidationError


class Positioned(Protocol):
    position: int


P = TypeVar("P", bound=Positioned)
T = TypeVar("T")


def ordered(items: Iterable[P]) -> List[P]:
    """Return items sorted by position."""
    return sorted(items, key=lambda item: item.position)


def check_contiguous(items: Iterable[Positioned]) -> None:
    """Raise ValueError unless positions are exactly {0, ..., N-1}."""
    positions = sorted(item.position for item in items)
    if positions != list(range(len(positions))):
        raise ValueError(f"Positions are not contiguous: {positions}")


def assign_positions(items: Sequence[P]) -> List[P]:
    """
    Full replace: number `items` 0..len-1 in the order given.
    """
    for index, item in enumerate(items):
        item.position = index
    return list(items)


def resolve_insert_position(length: int, position: Optional[int] = None) -> int:
    """
    Where K new items will start for a collection of `length` items.

    None appends. Negative positions are rejected; positions past the end are
    clamped to `length` so that no gap can open up.
    """
    if position is None:
        return length
    if position < 0:
        raise ValidationError(f"Position must be >= 0, got {position}")
    return min(position, length)


def shift_for_insert(
    items: Sequence[Positioned],
    count: int,
    position: Optional[int] = None,
) -> int:
    """
    Make room for `count` new items at `position`.

    Every existing item at or after the insertion point moves by +count.
    Returns the position the first new item must take; the new items then
    occupy [returned, returned + count).
    """
    if count < 1:
        raise ValidationError("At least one item is required")

    start = resolve_insert_position(len(items), position)
    for item in items:
        if item.position >= start:
            item.position += count
    return start


def collapse_after_remove(items: Iterable[Positioned], removed_position: int) -> None:
    """
    Close the gap left by an item removed from `removed_position`.

    `items` are the remaining items of the collection.
    """
    for item in items:
        if item.position > removed_position:
            item.position -= 1


def move_item(items: Sequence[P], moved: P, new_position: int) -> List[P]:
    """
    Move `moved` (which must be part of `items`) to `new_position`.

    Forward moves pull the items in (old, new] back by one; backward moves
    push the items in [new, old) forward by one. Moving to the current
    position changes nothing. Returns the collection sorted by position.
    """
    if not any(item is moved for item in items):
        raise ValidationError("Item does not belong to this collection")
    if new_position < 0 or new_position >= len(items):
        raise ValidationError(
            f"Position must be between 0 and {len(items) - 1}, got {new_position}"
        )

    old_position = moved.position
    if new_position > old_position:
        for item in items:
            if item is not moved and old_position < item.position <= new_position:
                item.position -= 1
    elif new_position < old_position:
        for item in items:
            if item is not moved and new_position <= item.position < old_position:
                item.position += 1
    moved.position = new_position

    return ordered(items)


def reorder_range(
    sequence: Sequence[T],
    range_start: int,
    insert_before: int,
    range_length: int = 1,
) -> List[T]:
    """
    Provider reorder contract on a plain sequence.

    Removes [range_start, range_start + range_length) and reinserts it before
    the element that was at `insert_before` in the original sequence. Because
    the index is interpreted after removal, an `insert_before` past the range
    is reduced by `range_length`. An `insert_before` inside the range (or at
    either edge) leaves the sequence unchanged.

    A target strictly inside the range is a deliberate no-op rather than
    splicing the range to `insert_before - range_length`, which would move
    it somewhere the caller never pointed at.
    """
    size = len(sequence)
    if range_length < 1:
        raise ValidationError("range_length must be >= 1")
    if range_start < 0 or range_start + range_length > size:
        raise ValidationError(
            f"Range [{range_start}, {range_start + range_length}) is outside 0..{size}"
        )
    if insert_before < 0 or insert_before > size:
        raise ValidationError(f"insert_before must be between 0 and {size}")

    items = list(sequence)
    if range_start <= insert_before <= range_start + range_length:
        return items

    moved = items[range_start : range_start + range_length]
    del items[range_start : range_start + range_length]

    target = insert_before - range_length if insert_before > range_start else insert_before
    items[target:target] = moved
    return items
