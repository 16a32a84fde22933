from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    order_id: int
    user_id: int
    text: str
    created_at: datetime
    user_name: str
    user_role: Optional[str] = None
