"""Роуты /devices: устройства, возврат и журнал."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from deviceflow.modules.inventory.dependencies import (
    get_current_user,
    get_db,
    get_lifecycle_service,
    require_admin,
)
from deviceflow.modules.inventory.models import Device, User
from deviceflow.modules.inventory.schemas.device import (
    DeviceCreate,
    DeviceOut,
    DeviceType,
    DeviceUpdate,
)
from deviceflow.modules.inventory.schemas.device_log import DeviceLogOut
from deviceflow.modules.inventory.services.device_log import (
    list_device_logs,
    log_device_action,
)
from deviceflow.modules.inventory.services.device_store import DeviceStore
from deviceflow.modules.inventory.services.request_lifecycle import RequestLifecycleService

router = APIRouter(prefix="/devices", tags=["devices"])


def _device_out(device: Device) -> DeviceOut:
    out = DeviceOut.model_validate(device)
    if device.assigned_user:
        out.assigned_user_name = device.assigned_user.full_name
    return out


@router.get("/", response_model=List[DeviceOut])
def list_devices(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[DeviceOut]:
    """Список всех устройств"""
    return [_device_out(d) for d in DeviceStore(db).list_all()]


@router.get("/available", response_model=List[DeviceOut])
def list_available_devices(
    type: Optional[DeviceType] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[DeviceOut]:
    """Свободные устройства, опционально по типу"""
    return [_device_out(d) for d in DeviceStore(db).list_available(type)]


@router.get("/{device_id}", response_model=DeviceOut)
def get_device(
    device_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DeviceOut:
    """Получить устройство по ID"""
    return _device_out(DeviceStore(db).get_or_404(device_id))


@router.post("/", response_model=DeviceOut, status_code=201)
def create_device(
    payload: DeviceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> DeviceOut:
    """Добавить устройство в учёт (только admin)"""
    device = DeviceStore(db).create(**payload.model_dump())
    log_device_action(
        db,
        device.id,
        "created",
        user_id=user.id,
        notes=f"Устройство {device.name} добавлено в учёт",
    )
    return _device_out(device)


@router.put("/{device_id}", response_model=DeviceOut)
def update_device(
    device_id: UUID,
    payload: DeviceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> DeviceOut:
    """Обновить устройство (только admin)"""
    device = DeviceStore(db).update(device_id, payload.model_dump(exclude_unset=True))
    log_device_action(
        db,
        device.id,
        "updated",
        user_id=user.id,
        notes=f"Устройство {device.name} обновлено",
    )
    return _device_out(device)


@router.delete("/{device_id}", status_code=200)
def delete_device(
    device_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict:
    """Удалить устройство (только admin)"""
    DeviceStore(db).delete(device_id)
    return {"message": "Устройство удалено"}


@router.put("/{device_id}/return", response_model=DeviceOut)
async def return_device(
    device_id: UUID,
    user: User = Depends(get_current_user),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> DeviceOut:
    """Вернуть устройство (admin или текущий владелец)"""
    device = await service.return_device(device_id, acting_user=user)
    return _device_out(device)


@router.get("/{device_id}/logs", response_model=List[DeviceLogOut])
def get_device_logs(
    device_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> List[DeviceLogOut]:
    """Журнал устройства, новые записи первыми (только admin)"""
    DeviceStore(db).get_or_404(device_id)
    result = []
    for entry in list_device_logs(db, device_id):
        out = DeviceLogOut.model_validate(entry)
        if entry.user:
            out.user_name = entry.user.full_name
        result.append(out)
    return result
