"""Legal status transitions for work items.

Every non-terminal status may move to error.
"""

from __future__ import annotations

from copydesk_schemas.items import ProductItem, UIStringItem
from copydesk_schemas.primitives import ItemStatus, JsonValue

PRODUCT_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset(
        {ItemStatus.OPTIMIZING, ItemStatus.TRANSLATING, ItemStatus.ERROR}
    ),
    ItemStatus.OPTIMIZING: frozenset({ItemStatus.OPTIMIZED, ItemStatus.ERROR}),
    ItemStatus.OPTIMIZED: frozenset(
        {ItemStatus.TRANSLATING, ItemStatus.COMPLETED, ItemStatus.ERROR}
    ),
    ItemStatus.TRANSLATING: frozenset({ItemStatus.COMPLETED, ItemStatus.ERROR}),
    ItemStatus.COMPLETED: frozenset(),
    ItemStatus.ERROR: frozenset(),
}

UI_STRING_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset(
        {ItemStatus.PROCESSING, ItemStatus.COMPLETED, ItemStatus.ERROR}
    ),
    ItemStatus.PROCESSING: frozenset({ItemStatus.COMPLETED, ItemStatus.ERROR}),
    ItemStatus.COMPLETED: frozenset(),
    ItemStatus.ERROR: frozenset(),
}

# States a new run may re-enter from any non-pending status.
PRODUCT_ENTRY_STATES = frozenset({ItemStatus.OPTIMIZING, ItemStatus.TRANSLATING})
UI_STRING_ENTRY_STATES = frozenset({ItemStatus.PROCESSING})

TERMINAL_STATES = frozenset({ItemStatus.COMPLETED, ItemStatus.ERROR})


class TransitionError(ValueError):
    """Raised when a status change is not allowed."""

    def __init__(self, current: ItemStatus, target: ItemStatus, kind: str) -> None:
        """Initialize the transition error.

        Args:
            current: Status the item is in.
            target: Requested status.
            kind: Item variant tag.
        """
        super().__init__(f"Illegal {kind} transition: {current} -> {target}")
        self.current = current
        self.target = target
        self.kind = kind


def _transitions_for(
    item: ProductItem | UIStringItem,
) -> tuple[dict[ItemStatus, frozenset[ItemStatus]], frozenset[ItemStatus]]:
    if isinstance(item, ProductItem):
        return PRODUCT_TRANSITIONS, PRODUCT_ENTRY_STATES
    return UI_STRING_TRANSITIONS, UI_STRING_ENTRY_STATES


def can_transition(
    item: ProductItem | UIStringItem,
    target: ItemStatus,
    *,
    reentry: bool = False,
) -> bool:
    """Return whether an item may move to the target status.

    Args:
        item: Item in its current persisted state.
        target: Requested status.
        reentry: Whether this starts a new run over an already processed item.

    Returns:
        bool: True if the transition is legal.
    """
    transitions, entry_states = _transitions_for(item)
    current = ItemStatus(item.status)
    if target in transitions.get(current, frozenset()):
        return True
    return reentry and current != ItemStatus.PENDING and target in entry_states


def transition_fields(
    item: ProductItem | UIStringItem,
    target: ItemStatus,
    *,
    reentry: bool = False,
    error_message: str | None = None,
    **fields: JsonValue,
) -> dict[str, JsonValue]:
    """Validate a transition and build the single update that applies it.

    The status change and any result fields land in the same update so a
    reader never observes a result under the previous status.

    Args:
        item: Item in its current persisted state.
        target: Requested status.
        reentry: Whether this starts a new run over an already processed item.
        error_message: Failure reason, required when the target is error.
        **fields: Result fields written together with the status.

    Returns:
        dict[str, JsonValue]: Field updates for the record store.

    Raises:
        TransitionError: If the transition is not allowed.
        ValueError: If an error transition has no message.
    """
    if not can_transition(item, target, reentry=reentry):
        raise TransitionError(ItemStatus(item.status), target, item.kind)
    if target == ItemStatus.ERROR:
        if not error_message:
            raise ValueError("error transitions require an error message")
        return {"status": target.value, "error_message": error_message}
    return {"status": target.value, "error_message": None, **fields}


def is_terminal(status: ItemStatus | str) -> bool:
    """Return whether a status ends the current attempt.

    Args:
        status: Item status.

    Returns:
        bool: True for completed and error.
    """
    return ItemStatus(status) in TERMINAL_STATES
