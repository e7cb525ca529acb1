"""
Схемы для журнала устройств
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class DeviceLogOut(BaseModel):
    id: UUID
    device_id: UUID
    user_id: Optional[UUID] = None
    request_id: Optional[UUID] = None
    action: str  # created, updated, assigned, returned
    notes: Optional[str] = None
    created_at: datetime

    user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
