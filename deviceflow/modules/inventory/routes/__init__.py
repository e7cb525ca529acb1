"""Роуты модуля учёта устройств."""
from . import devices, integrations, requests

__all__ = ["devices", "integrations", "requests"]
