from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from services.comment_service.service import UNKNOWN_AUTHOR, CommentService
from services.notification_service.notifier import Notifier
from shared.errors import Conflict, InvalidRequest, NotFound, ValidationError
from shared.events import OrderAssigned, OrderCreated, StatusChanged
from shared.observability import scribe_orders_created_total, scribe_status_transitions_total
from shared.security.dependencies import CurrentUser
from shared.security.policy import Action, Role, can_perform

from .models import Order
from .repository import OrderRepository, TimelineRepository
from .schemas import AdminOrderUpdate, OrderDetail, OrderResponse, StatusUpdateResponse
from .state_machine import DEFAULT_MESSAGES, OrderStatus, check_transition

logger = structlog.get_logger(__name__)

DEFAULT_PRICE_PER_PAGE = 40.0
WRITER_SHARE = 0.7
DELIVERY_FEE = 30


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    """Accepts ``YYYY-MM-DD`` or a full ISO timestamp; blank means no due date."""
    if value is None or not value.strip():
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        raise ValidationError(f"Invalid due date '{value}'")


class OrderService:

    @staticmethod
    async def _get_or_404(db: AsyncSession, order_id: int) -> Order:
        order = await OrderRepository.get(db, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    @staticmethod
    async def create_order(db: AsyncSession, student_id: int, title: str,
                           description: Optional[str] = None,
                           page_count: Optional[int] = None,
                           price_per_page: float = DEFAULT_PRICE_PER_PAGE,
                           due_date: Optional[datetime] = None,
                           file_path: Optional[str] = None) -> Order:
        if not title or not title.strip():
            raise ValidationError("Title is required")
        page_count = 1 if page_count is None else page_count
        if page_count < 1:
            raise ValidationError("Page count must be at least 1")

        order = await OrderRepository.add(db, Order(
            student_id=student_id,
            title=title,
            description=description,
            file_path=file_path,
            page_count=page_count,
            price_per_page=price_per_page,
            price=page_count * price_per_page,
            status=OrderStatus.PENDING.value,
            due_date=to_naive_utc(due_date),
        ))
        await TimelineRepository.append(
            db, order.id, OrderStatus.PENDING.value, DEFAULT_MESSAGES[OrderStatus.PENDING]
        )
        await Notifier.dispatch(db, [OrderCreated(order_id=order.id, title=order.title)])
        await db.commit()

        scribe_orders_created_total.inc()
        logger.info("order_created", order_id=order.id, student_id=student_id, price=order.price)
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, user: CurrentUser) -> list[OrderResponse]:
        if user.role == Role.ADMIN:
            rows = await OrderRepository.list_with_student_names(db)
            return [
                OrderResponse.model_validate(order).model_copy(
                    update={"student_name": name if name is not None else UNKNOWN_AUTHOR}
                )
                for order, name in rows
            ]
        if user.role == Role.WRITER:
            orders = await OrderRepository.list_for_writer(db, user.id)
        elif user.role == Role.DELIVERY:
            orders = await OrderRepository.list_for_delivery(db, user.id)
        else:
            orders = await OrderRepository.list_for_student(db, user.id)
        return [OrderResponse.model_validate(o) for o in orders]

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> OrderDetail:
        order = await OrderService._get_or_404(db, order_id)
        updates = await TimelineRepository.list(db, order_id)
        comments = await CommentService.list_comments(db, order_id)
        return OrderDetail(
            **OrderResponse.model_validate(order).model_dump(),
            updates=[StatusUpdateResponse.model_validate(u) for u in updates],
            comments=comments,
        )

    @staticmethod
    async def transition_status(db: AsyncSession, order_id: int, target: OrderStatus,
                                message: Optional[str], actor: CurrentUser,
                                enforce: bool = True) -> Order:
        """Single entry point for status changes made through the status endpoint.

        With ``enforce`` off any authenticated caller may post any status.
        """
        order = await OrderService._get_or_404(db, order_id)
        if enforce:
            check_transition(order, target, actor.id, actor.role)
        message = message or DEFAULT_MESSAGES[target]
        previous = order.status

        claim = {}
        if (actor.role == Role.DELIVERY and order.delivery_id is None
                and target == OrderStatus.OUT_FOR_DELIVERY):
            # picking up unclaimed inventory makes the agent the order's courier
            claim["delivery_id"] = actor.id

        if not await OrderRepository.compare_and_set_status(db, order_id, previous, target.value, **claim):
            raise Conflict("Order status changed concurrently, reload and retry")
        await TimelineRepository.append(db, order_id, target.value, message)
        await Notifier.dispatch(db, [StatusChanged(
            order_id=order_id, student_id=order.student_id, status=target.value, message=message,
        )])
        await db.commit()
        await db.refresh(order)

        scribe_status_transitions_total.labels(status=target.value).inc()
        logger.info("status_changed", order_id=order_id, previous=previous,
                    status=target.value, actor_id=actor.id)
        return order

    @staticmethod
    async def assign(db: AsyncSession, order_id: int, writer_id: int, delivery_id: int) -> Order:
        order = await OrderService._get_or_404(db, order_id)
        writer = await UserRepository.get_by_id(db, writer_id)
        if not writer or writer.role != Role.WRITER.value:
            raise InvalidRequest(f"User {writer_id} is not a writer")
        delivery = await UserRepository.get_by_id(db, delivery_id)
        if not delivery or delivery.role != Role.DELIVERY.value:
            raise InvalidRequest(f"User {delivery_id} is not a delivery agent")

        order.writer_id = writer_id
        order.delivery_id = delivery_id
        order.status = OrderStatus.ASSIGNED.value
        await TimelineRepository.append(
            db, order.id, OrderStatus.ASSIGNED.value, DEFAULT_MESSAGES[OrderStatus.ASSIGNED]
        )
        await Notifier.dispatch(db, [OrderAssigned(
            order_id=order.id,
            title=order.title,
            student_id=order.student_id,
            writer_id=writer_id,
            delivery_id=delivery_id,
        )])
        await db.commit()

        scribe_status_transitions_total.labels(status=OrderStatus.ASSIGNED.value).inc()
        logger.info("order_assigned", order_id=order.id, writer_id=writer_id, delivery_id=delivery_id)
        return order

    @staticmethod
    async def admin_update_order(db: AsyncSession, order_id: int, data: AdminOrderUpdate) -> Order:
        """Full overwrite by an admin; status may jump anywhere."""
        order = await OrderService._get_or_404(db, order_id)
        order.title = data.title
        order.description = data.description
        order.status = data.status.value
        order.page_count = data.page_count
        order.price_per_page = data.price_per_page
        order.price = data.page_count * data.price_per_page
        order.due_date = to_naive_utc(data.due_date)
        await TimelineRepository.append(db, order.id, data.status.value, "Order updated by Admin")
        await db.commit()

        logger.info("order_updated_by_admin", order_id=order.id, status=order.status)
        return order

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int) -> None:
        await OrderService._get_or_404(db, order_id)
        await OrderRepository.delete(db, order_id)
        await db.commit()
        logger.info("order_deleted", order_id=order_id)

    @staticmethod
    async def earnings(db: AsyncSession, user: CurrentUser) -> float:
        if not can_perform(user.role, Action.VIEW_EARNINGS):
            raise InvalidRequest("Not applicable")
        if user.role == Role.WRITER:
            revenue = await OrderRepository.delivered_revenue(db, writer_id=user.id)
            return round(WRITER_SHARE * revenue, 2)
        delivered = await OrderRepository.count(
            db, status=OrderStatus.DELIVERED.value, delivery_id=user.id
        )
        return float(DELIVERY_FEE * delivered)
