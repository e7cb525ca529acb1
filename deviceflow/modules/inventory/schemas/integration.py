"""Схемы статуса интеграций."""
from typing import List, Optional

from pydantic import BaseModel


class SlackStatus(BaseModel):
    configured: bool
    status: str  # active, inactive


class IntegrationStatusResponse(BaseModel):
    slack: SlackStatus


class SlackChannelOut(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    is_member: bool = False
    is_private: bool = False


class SlackChannelsResponse(BaseModel):
    channels: List[SlackChannelOut]
