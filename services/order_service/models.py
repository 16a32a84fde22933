from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text

from shared.config.database import Base

from .state_machine import OrderStatus


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # User references are plain ids: deleting a user leaves them dangling.
    student_id = Column(Integer, nullable=False, index=True)
    writer_id = Column(Integer, nullable=True, index=True)
    delivery_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String(512), nullable=True)
    page_count = Column(Integer, nullable=False, default=1)
    price_per_page = Column(Float, nullable=False, default=40)
    price = Column(Float, nullable=False, default=0)  # page_count * price_per_page
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value, index=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class StatusUpdate(Base):
    __tablename__ = "status_updates"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    message = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
