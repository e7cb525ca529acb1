"""Журнал действий с устройствами."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from deviceflow.modules.inventory.models import DeviceLog


def log_device_action(
    db: Session,
    device_id: UUID,
    action: str,
    user_id: Optional[UUID] = None,
    request_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> DeviceLog:
    """
    Добавляет запись в журнал устройства и сразу фиксирует её.

    Args:
        db: Сессия базы данных
        device_id: ID устройства
        action: created, updated, assigned, returned
        user_id: Пользователь, к которому относится действие
        request_id: Заявка, по которой выполнено действие
        notes: Комментарий

    Returns:
        Созданная запись журнала
    """
    entry = DeviceLog(
        device_id=device_id,
        user_id=user_id,
        request_id=request_id,
        action=action,
        notes=notes,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def list_device_logs(db: Session, device_id: UUID) -> List[DeviceLog]:
    return (
        db.query(DeviceLog)
        .filter(DeviceLog.device_id == device_id)
        .order_by(DeviceLog.created_at.desc())
        .all()
    )
