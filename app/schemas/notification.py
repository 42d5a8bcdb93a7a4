from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    type: str
    link: Optional[str]
    notifiable_type: Optional[str]
    notifiable_id: Optional[int]
    is_read: bool
    read_at: Optional[datetime]
    created_at: Optional[datetime]
