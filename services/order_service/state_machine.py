"""
Order lifecycle.

    pending -> assigned -> writing -> ready_for_delivery -> out_for_delivery -> delivered

``check_transition`` is the single gate for status changes requested through
the status endpoint. Admin edits (full order overwrite) bypass it on purpose.
"""
from enum import Enum

from shared.errors import Forbidden, InvalidRequest
from shared.security.policy import Role


class OrderStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    WRITING = "writing"
    READY_FOR_DELIVERY = "ready_for_delivery"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


# (from, to) -> roles allowed to make that move
TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[Role]] = {
    (OrderStatus.PENDING, OrderStatus.ASSIGNED): frozenset({Role.ADMIN}),
    (OrderStatus.ASSIGNED, OrderStatus.WRITING): frozenset({Role.WRITER, Role.ADMIN}),
    (OrderStatus.WRITING, OrderStatus.READY_FOR_DELIVERY): frozenset({Role.WRITER, Role.ADMIN}),
    (OrderStatus.READY_FOR_DELIVERY, OrderStatus.OUT_FOR_DELIVERY): frozenset({Role.DELIVERY, Role.ADMIN}),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED): frozenset({Role.DELIVERY, Role.ADMIN}),
}

DEFAULT_MESSAGES = {
    OrderStatus.PENDING: "Order placed successfully",
    OrderStatus.ASSIGNED: "Writer and Delivery Agent assigned",
    OrderStatus.WRITING: "Writer has started working on the assignment",
    OrderStatus.READY_FOR_DELIVERY: "Assignment completed and ready for pickup",
    OrderStatus.OUT_FOR_DELIVERY: "Agent has picked up the assignment and is on the way",
    OrderStatus.DELIVERED: "Assignment delivered to student successfully",
}


def is_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    return (current, target) in TRANSITIONS


def next_statuses(current: OrderStatus) -> list[OrderStatus]:
    return [to for (frm, to) in TRANSITIONS if frm == current]


def check_transition(order, target: OrderStatus, actor_id: int, actor_role: Role) -> None:
    """Raises InvalidRequest for an illegal move and Forbidden for an actor not entitled to it."""
    current = OrderStatus(order.status)
    if not is_allowed(current, target):
        allowed = ", ".join(s.value for s in next_statuses(current)) or "none"
        raise InvalidRequest(
            f"Cannot move order from '{current.value}' to '{target.value}' (allowed: {allowed})"
        )
    if actor_role not in TRANSITIONS[(current, target)]:
        raise Forbidden(f"A {actor_role.value} cannot move an order to '{target.value}'")
    if actor_role == Role.WRITER and order.writer_id != actor_id:
        raise Forbidden("Order is not assigned to you")
    # Any agent may pick up unclaimed inventory; an assigned order belongs to its agent.
    if actor_role == Role.DELIVERY and order.delivery_id is not None and order.delivery_id != actor_id:
        raise Forbidden("Order is assigned to another delivery agent")
