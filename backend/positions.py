# positions.py — Sparse total order for lists-in-board and cards-in-list
# Positions are Decimals, unique within their scope, gaps allowed.
# Callers lock the scope row before asking for a position (see usecases).

from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, field_validator

from errors import (
    ConflictError, DuplicatePositionError, InvalidPositionError,
    ScopeMismatchError, ValidationError,
)

BASELINE_POSITION = Decimal("0")
POSITION_STEP = Decimal("1")

# Must match models.POSITION_TYPE: Numeric(20, 6)
POSITION_QUANTUM = Decimal("0.000001")
POSITION_LIMIT = Decimal(10) ** 14


class ScopedRepository(Protocol):
    """What the allocator needs from a repository of ordered siblings"""

    async def max_position(self, scope_id: str) -> Optional[Decimal]: ...

    async def positions_in_scope(self, scope_id: str) -> Dict[str, Decimal]: ...

    async def set_positions(self, positions: Dict[str, Decimal]) -> None: ...


class MovableRepository(ScopedRepository, Protocol):
    async def move_card(self, card, target_list_id: str, position: Decimal): ...


class ReorderItem(BaseModel):
    id: str
    position: Decimal

    @field_validator("position", mode="before")
    @classmethod
    def coerce_position(cls, v):
        # Floats go through str() so 0.1 stays 0.1
        if isinstance(v, float):
            return str(v)
        return v


def to_position(value) -> Decimal:
    """Coerce a caller-supplied position to the stored scale.

    Rejects negative or non-finite values, values past the column range, and
    values with more than six decimal places, so two requested positions
    compare equal here exactly when they would be equal once stored.
    """
    try:
        position = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPositionError(f"Invalid position: {value!r}", field="position")
    if not position.is_finite():
        raise InvalidPositionError("Position must be a finite number", field="position")
    if position < 0:
        raise InvalidPositionError("Position cannot be negative", field="position")
    if position >= POSITION_LIMIT:
        raise InvalidPositionError(
            f"Position must be below {POSITION_LIMIT:,}", field="position",
        )
    normalized = position.quantize(POSITION_QUANTUM)
    if normalized != position:
        raise InvalidPositionError(
            "Position supports at most 6 decimal places", field="position",
        )
    return normalized


class PositionAllocator:
    """Stateless ordering rules over a ScopedRepository"""

    @staticmethod
    async def next_position(repo: ScopedRepository, scope_id: str) -> Decimal:
        current = await repo.max_position(scope_id)
        if current is None:
            return BASELINE_POSITION
        # Integer steps even after fractional inserts
        position = (Decimal(current) + POSITION_STEP).to_integral_value(rounding=ROUND_FLOOR)
        if position >= POSITION_LIMIT:
            raise InvalidPositionError(
                f"Scope '{scope_id}' has no room past position {current}", field="position",
            )
        return position

    @staticmethod
    def validate_reorder_batch(
        items: Iterable[ReorderItem], is_member: Callable[[str], bool],
    ) -> List[ReorderItem]:
        """Check a reorder request without touching storage.

        Returns the batch sorted by position. Same input, same answer.
        """
        batch = list(items)
        if not batch:
            raise ValidationError("Reorder batch is empty", field="items")

        seen_ids = set()
        for item in batch:
            if item.id in seen_ids:
                raise ValidationError(f"Item '{item.id}' listed more than once", field="items")
            seen_ids.add(item.id)
            if not is_member(item.id):
                raise ScopeMismatchError(
                    f"Item '{item.id}' does not belong to this scope", field="items",
                )

        normalized = {item.id: to_position(item.position) for item in batch}
        ordered = sorted(batch, key=lambda i: normalized[i.id])
        for prev, item in zip(ordered, ordered[1:]):
            if normalized[prev.id] == normalized[item.id]:
                raise DuplicatePositionError(
                    f"Position {item.position} requested for '{prev.id}' and '{item.id}'",
                    field="position",
                )
        return ordered

    @staticmethod
    async def apply_reorder(
        repo: ScopedRepository, scope_id: str, items: Iterable[ReorderItem],
    ) -> Dict[str, Decimal]:
        """Write a validated batch. Runs in the caller's transaction: all or nothing."""
        current = await repo.positions_in_scope(scope_id)
        ordered = PositionAllocator.validate_reorder_batch(items, lambda i: i in current)
        requested = {item.id: to_position(item.position) for item in ordered}

        # Siblings left out of the batch keep their slots
        held = {pos: item_id for item_id, pos in current.items() if item_id not in requested}
        for item_id, position in requested.items():
            if position in held:
                raise ConflictError(
                    f"Position {position} is held by '{held[position]}', which is not in the batch",
                    resource="position",
                )

        # Park every moved sibling on a distinct negative slot first so the
        # unique (scope, position) index never sees two rows on one value
        parked = {item_id: Decimal(-(n + 1)) for n, item_id in enumerate(requested)}
        await repo.set_positions(parked)
        await repo.set_positions(requested)
        return requested

    @staticmethod
    async def move_between_scopes(
        repo: MovableRepository,
        item,
        from_scope: str,
        to_scope: str,
        target_position=None,
    ) -> Decimal:
        """Reassign an item's scope and position in one step; siblings keep theirs.

        ``target_position=None`` appends to the end of ``to_scope``.
        """
        if item.list_id != from_scope:
            raise ScopeMismatchError(
                f"Item '{item.id}' is not in scope '{from_scope}'", field="list_id",
            )

        if target_position is None:
            position = await PositionAllocator.next_position(repo, to_scope)
        else:
            position = to_position(target_position)
            taken = await repo.positions_in_scope(to_scope)
            if any(p == position and i != item.id for i, p in taken.items()):
                raise ConflictError(
                    f"Position {position} is already taken in '{to_scope}'", resource="position",
                )

        await repo.move_card(item, to_scope, position)
        return position
