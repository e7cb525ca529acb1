"""
API роуты модуля учёта устройств.
Префикс: /api. Подроуты: /requests, /devices, /integrations.
"""

from fastapi import APIRouter

from deviceflow.core.config import settings

from .routes import devices, integrations, requests

router = APIRouter(prefix=settings.api_prefix)

router.include_router(requests.router)
router.include_router(devices.router)
router.include_router(integrations.router)
