# freshcart/services/order_status.py
"""
Order status state machine.

    pending -> confirmed -> packed -> out_for_delivery -> delivered
    pending -> cancelled

delivered and cancelled are terminal. Nothing else is legal, including
"moving" an order to the status it already has.

Pure functions only; OrderService enforces them at the operation boundary.
"""
from collections.abc import Iterable

from freshcart.core.errors import Forbidden, IllegalTransition

STATUSES: tuple[str, ...] = (
    "pending",
    "confirmed",
    "packed",
    "out_for_delivery",
    "delivered",
    "cancelled",
)

TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})

# from -> to -> roles allowed to apply it
TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    "pending": {
        "confirmed": frozenset({"admin"}),
        "cancelled": frozenset({"admin"}),
    },
    "confirmed": {
        "packed": frozenset({"admin"}),
    },
    "packed": {
        "out_for_delivery": frozenset({"admin"}),
    },
    "out_for_delivery": {
        "delivered": frozenset({"admin", "rider"}),
    },
    "delivered": {},
    "cancelled": {},
}

# Position along the pipeline; the graph is acyclic so this also orders
# history rows that share a timestamp.
STATUS_RANK: dict[str, int] = {s: i for i, s in enumerate(STATUSES)}


def is_legal_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, {})


def allowed_next(current: str) -> list[str]:
    return list(TRANSITIONS.get(current, {}))


def ensure_transition(current: str, new: str, role: str) -> None:
    """
    Raise unless `role` may move an order from `current` to `new`.

    IllegalTransition wins over Forbidden so callers learn the table
    first, the permission second.
    """
    if not is_legal_transition(current, new):
        raise IllegalTransition(f"Invalid status transition: {current} -> {new}")
    if role not in TRANSITIONS[current][new]:
        raise Forbidden(f"Role '{role}' cannot move an order to {new}")


def chronological(entries: Iterable, key_time: str = "created_at") -> list:
    """Sort history rows oldest first, pipeline order breaking ties."""
    return sorted(
        entries,
        key=lambda e: (getattr(e, key_time), STATUS_RANK.get(e.status, 0)),
    )


def reconstruct_status(entries: Iterable) -> str | None:
    """
    Replay a status history and return where the order ends up.

    Always equals Order.status for a consistent order.
    """
    ordered = chronological(entries)
    return ordered[-1].status if ordered else None
