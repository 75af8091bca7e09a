"""Activity log response bodies"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    actor_id: Optional[UUID] = Field(None, description="None for anonymous events such as failed logins")
    action: str = Field(..., examples=["DOCUMENT_REJECTED"])
    entity_type: Optional[str] = Field(None, examples=["submission_document"])
    entity_id: Optional[UUID] = None
    description: Optional[str] = None
    metadata: Optional[dict] = Field(None, validation_alias="metadata_json")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    entries: list[AuditLogResponse]
    total: int = Field(..., description="Entries matching the filters, across all pages")
    page: int
    per_page: int
