"""
Схемы для заявок на устройства
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .device import DeviceType


class DeviceRequestCreate(BaseModel):
    device_type: DeviceType
    device_model: Optional[str] = Field(default=None, max_length=255)
    reason: Optional[str] = None


class ApproveRequest(BaseModel):
    device_id: Optional[UUID] = None


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class DeviceRequestOut(BaseModel):
    id: UUID
    user_id: UUID
    device_type: str
    device_model: Optional[str] = None
    reason: Optional[str] = None
    status: str
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    assigned_device_id: Optional[UUID] = None
    slack_thread_id: Optional[str] = None
    slack_message_ts: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    # Дополнительные поля из JOIN
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    approver_name: Optional[str] = None
    assigned_device_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
