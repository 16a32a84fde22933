from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from services.comment_service.schemas import CommentResponse

from .state_machine import OrderStatus


class OrderResponse(BaseModel):
    id: int
    student_id: int
    writer_id: Optional[int]
    delivery_id: Optional[int]
    title: str
    description: Optional[str]
    file_path: Optional[str]
    page_count: int
    price_per_page: float
    price: float
    status: OrderStatus
    due_date: Optional[datetime]
    created_at: datetime
    student_name: Optional[str] = None  # filled in for the admin listing

    class Config:
        from_attributes = True


class OrderCreatedResponse(BaseModel):
    id: int
    page_count: int
    price: float


class StatusUpdateResponse(BaseModel):
    id: int
    order_id: int
    status: str
    message: Optional[str]
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderDetail(OrderResponse):
    updates: List[StatusUpdateResponse] = []
    comments: List[CommentResponse] = []


class StatusChangeRequest(BaseModel):
    status: OrderStatus
    message: Optional[str] = None


class AssignRequest(BaseModel):
    order_id: int
    writer_id: int
    delivery_id: int


class AdminOrderUpdate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: OrderStatus
    page_count: int = Field(ge=1)
    price_per_page: float = Field(gt=0)
    due_date: Optional[datetime] = None
    # Accepted for compatibility; the stored price is always page_count * price_per_page.
    price: Optional[float] = None


class EarningsResponse(BaseModel):
    total: float


class SuccessResponse(BaseModel):
    success: bool = True
