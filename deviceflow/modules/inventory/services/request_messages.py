"""Тексты уведомлений о заявках."""

from deviceflow.modules.inventory.models import Device, DeviceRequest, User
from deviceflow.modules.inventory.services.slack_service import (
    FieldsMessage,
    TextMessage,
)

DEVICE_TYPE_LABELS = {
    "smartphone": "Смартфон",
    "tablet": "Планшет",
    "laptop": "Ноутбук",
}


def _device_label(device_type: str, model: str | None = None) -> str:
    label = DEVICE_TYPE_LABELS.get(device_type, device_type)
    return f"{label} {model}" if model else label


def new_request_message(req: DeviceRequest, requester: User) -> FieldsMessage:
    return FieldsMessage(
        title="Новая заявка на устройство :iphone:",
        fields=(
            ("Сотрудник", requester.full_name),
            ("Устройство", _device_label(req.device_type, req.device_model)),
            ("Обоснование", req.reason or "Не указано"),
            ("Заявка", str(req.id)),
        ),
    )


def approved_message(req: DeviceRequest, requester: User, device: Device | None) -> TextMessage:
    text = f"✅ Заявка одобрена: {requester.full_name}"
    if device:
        text += f"\nВыдано устройство: {device.name} ({device.serial_number})"
    return TextMessage(text)


def rejected_message(req: DeviceRequest, requester: User) -> TextMessage:
    return TextMessage(
        f"❌ Заявка отклонена: {requester.full_name}. "
        f"Причина: {req.rejection_reason or 'Не указана'}"
    )


def device_returned_message(device: Device, returned_by: User) -> TextMessage:
    return TextMessage(
        f"🔄 Устройство возвращено: {returned_by.full_name}\n"
        f"📱 {device.name} ({_device_label(device.type)})"
    )
