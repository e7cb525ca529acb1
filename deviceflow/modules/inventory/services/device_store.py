"""Хранилище устройств."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from deviceflow.core.exceptions import (
    ConcurrentModification,
    DuplicateSerialNumber,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from deviceflow.modules.inventory.models import (
    DEVICE_STATUSES,
    DEVICE_TYPES,
    Device,
    utcnow,
)

REQUIRED_TEXT_FIELDS = ("name", "model", "serial_number")
UPDATABLE_FIELDS = {
    "name",
    "type",
    "model",
    "serial_number",
    "status",
    "assigned_to",
    "purchase_date",
    "last_activity",
}


class DeviceStore:
    """CRUD устройств: уникальность серийного номера и связка status/assigned_to."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, device_id: UUID) -> Optional[Device]:
        return self.db.query(Device).filter(Device.id == device_id).first()

    def get_or_404(self, device_id: UUID) -> Device:
        device = self.get(device_id)
        if not device:
            raise NotFound("Устройство не найдено", entity="device", entity_id=device_id)
        return device

    def list_all(self) -> List[Device]:
        return self.db.query(Device).order_by(Device.created_at.asc(), Device.id.asc()).all()

    def list_available(self, device_type: Optional[str] = None) -> List[Device]:
        q = self.db.query(Device).filter(Device.status == "available")
        if device_type:
            q = q.filter(Device.type == device_type)
        return q.order_by(Device.created_at.asc(), Device.id.asc()).all()

    def create(
        self,
        name: str,
        type: str,
        model: str,
        serial_number: str,
        status: str = "available",
        assigned_to: Optional[UUID] = None,
        purchase_date: Optional[datetime] = None,
    ) -> Device:
        data = self._validated(
            {
                "name": name,
                "type": type,
                "model": model,
                "serial_number": serial_number,
                "status": status,
                "assigned_to": assigned_to,
                "purchase_date": purchase_date,
            }
        )
        self._check_serial_free(data["serial_number"])

        device = Device(**data)
        self.db.add(device)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSerialNumber(data["serial_number"])
        self.db.refresh(device)
        return device

    def update(self, device_id: UUID, changes: Dict[str, Any]) -> Device:
        device = self.get_or_404(device_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Поля нельзя изменять: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        merged = {f: getattr(device, f) for f in UPDATABLE_FIELDS}
        merged.update(changes)
        merged = self._validated(merged)
        if merged["serial_number"] != device.serial_number:
            self._check_serial_free(merged["serial_number"], exclude_id=device.id)

        for k, v in merged.items():
            if getattr(device, k) != v:
                setattr(device, k, v)
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentModification("device", device_id)
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSerialNumber(merged["serial_number"])
        self.db.refresh(device)
        return device

    def assign(self, device_id: UUID, user_id: UUID) -> Device:
        return self.update(
            device_id,
            {"status": "assigned", "assigned_to": user_id, "last_activity": utcnow()},
        )

    def release(self, device_id: UUID) -> Device:
        return self.update(
            device_id,
            {"status": "available", "assigned_to": None, "last_activity": utcnow()},
        )

    def delete(self, device_id: UUID) -> None:
        device = self.get_or_404(device_id)
        if device.status == "assigned":
            raise InvalidTransition(
                "Нельзя удалить выданное устройство, сначала оформите возврат",
                details={"status": device.status},
            )
        self.db.delete(device)
        self.db.commit()

    def _check_serial_free(self, serial_number: str, exclude_id: Optional[UUID] = None) -> None:
        q = self.db.query(Device).filter(Device.serial_number == serial_number)
        if exclude_id is not None:
            q = q.filter(Device.id != exclude_id)
        if q.first():
            raise DuplicateSerialNumber(serial_number)

    @staticmethod
    def _validated(data: Dict[str, Any]) -> Dict[str, Any]:
        for field in REQUIRED_TEXT_FIELDS:
            value = data.get(field)
            value = value.strip() if isinstance(value, str) else value
            if not value:
                raise ValidationError(f"Поле {field} обязательно", field=field)
            data[field] = value

        if data.get("type") not in DEVICE_TYPES:
            raise ValidationError(
                f"Некорректный тип устройства. Допустимые: {', '.join(DEVICE_TYPES)}",
                field="type",
            )
        if data.get("status") not in DEVICE_STATUSES:
            raise ValidationError(
                f"Некорректный статус. Допустимые: {', '.join(DEVICE_STATUSES)}",
                field="status",
            )

        # status=assigned <=> есть владелец
        if (data["status"] == "assigned") != (data.get("assigned_to") is not None):
            raise ValidationError(
                "Выданное устройство должно иметь владельца, а невыданное не должно",
                field="assigned_to",
            )
        return data
