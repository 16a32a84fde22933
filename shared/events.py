"""Domain events emitted by mutating operations and consumed by the notifier."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class OrderCreated:
    order_id: int
    title: str


@dataclass(frozen=True)
class OrderAssigned:
    order_id: int
    title: str
    student_id: int
    writer_id: int
    delivery_id: int


@dataclass(frozen=True)
class StatusChanged:
    order_id: int
    student_id: int
    status: str
    message: str


@dataclass(frozen=True)
class CommentAdded:
    order_id: int
    title: str
    author_id: int
    author_is_admin: bool
    student_id: int
    writer_id: Optional[int]
    text: str


@dataclass(frozen=True)
class DeadlineApproaching:
    user_id: int
    order_id: int
    title: str
    due_date: datetime
