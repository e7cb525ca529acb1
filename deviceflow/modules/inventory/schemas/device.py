"""Схемы для устройств."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DeviceType = Literal["smartphone", "tablet", "laptop"]
DeviceStatus = Literal["available", "assigned", "maintenance"]


class DeviceBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: DeviceType
    model: str = Field(min_length=1, max_length=255)
    serial_number: str = Field(min_length=1, max_length=255)
    status: DeviceStatus = "available"
    assigned_to: Optional[UUID] = None  # ID пользователя (users.id)
    purchase_date: Optional[datetime] = None


class DeviceCreate(DeviceBase):
    pass


class DeviceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[DeviceType] = None
    model: Optional[str] = Field(default=None, min_length=1, max_length=255)
    serial_number: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[DeviceStatus] = None
    assigned_to: Optional[UUID] = None
    purchase_date: Optional[datetime] = None


class DeviceOut(DeviceBase):
    id: UUID
    last_activity: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Дополнительные поля из JOIN
    assigned_user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
