"""Pydantic schemas for notification endpoints"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    type: str
    title: str
    message: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    document_submission_id: Optional[UUID] = None
    sender_id: Optional[UUID] = None
    metadata: Optional[dict] = Field(None, validation_alias="metadata_json")
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int = Field(..., description="Notifications matching the filter")
    unread_count: int = Field(..., description="Unread notifications of the user")
    page: int
    per_page: int


class MarkAllReadResponse(BaseModel):
    updated: int = Field(..., description="Number of notifications marked read")
