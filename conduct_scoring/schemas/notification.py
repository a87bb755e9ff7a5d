# conduct_scoring/schemas/notification.py
from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field

NotificationType = Literal["info", "success", "warning", "error"]
TargetRole = Literal["student", "teacher", "all"]


class NotificationPayload(BaseModel):
    """What gets queued for delivery; fanned out to one row per recipient."""
    title: str
    message: str
    type: NotificationType = "info"
    target_role: TargetRole = "all"
    sender_id: int | None = None
    class_id: str | None = None
    target_user_ids: List[int] = Field(default_factory=list)
    action_url: str | None = None


class NotificationCreate(BaseModel):
    title: str
    message: str
    type: str = "info"
    target_role: str = "all"
    class_id: str | None = None
    target_user_ids: List[int] = Field(default_factory=list)
    action_url: str | None = None


class NotificationPublic(BaseModel):
    id: int
    title: str
    message: str
    type: str
    target_role: str
    sender_id: int | None = None
    class_id: str | None = None
    action_url: str | None = None
    read: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    data: List[NotificationPublic]
    unread_count: int
