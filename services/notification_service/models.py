from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, Text, UniqueConstraint

from shared.config.database import Base


class Notification(Base):
    __tablename__ = "notifications"
    # NULL keys never collide, so only keyed notices are unique per user
    __table_args__ = (UniqueConstraint("user_id", "dedup_key", name="uq_notifications_user_dedup"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    message = Column(Text, nullable=False)
    dedup_key = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
