"""Схемы модуля учёта устройств."""
from .device import DeviceCreate, DeviceOut, DeviceUpdate
from .device_log import DeviceLogOut
from .integration import IntegrationStatusResponse, SlackChannelsResponse, SlackStatus
from .request import ApproveRequest, DeviceRequestCreate, DeviceRequestOut, RejectRequest

__all__ = [
    "DeviceCreate",
    "DeviceOut",
    "DeviceUpdate",
    "DeviceLogOut",
    "IntegrationStatusResponse",
    "SlackChannelsResponse",
    "SlackStatus",
    "ApproveRequest",
    "DeviceRequestCreate",
    "DeviceRequestOut",
    "RejectRequest",
]
