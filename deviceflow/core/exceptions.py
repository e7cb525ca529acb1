"""Исключения DeviceFlow.

Сервисный слой бросает только наследников DeviceFlowError; main.py
превращает их в JSON-ответ с кодом из ``status_code``.
"""

from typing import Any, Dict, Optional


class DeviceFlowError(Exception):
    """Базовое исключение DeviceFlow.

    Attributes:
        message: Человекочитаемое сообщение
        code: Машиночитаемый код ошибки
        details: Дополнительный контекст
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "DEVICEFLOW_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Тело ответа API."""
        return {
            "detail": self.message,
            "code": self.code,
            "errors": self.details,
        }


class ValidationError(DeviceFlowError):
    """Некорректные входные данные (с указанием поля)."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: str = "VALIDATION_ERROR",
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code=code, details=details)


class DuplicateSerialNumber(ValidationError):
    """Серийный номер уже занят другим устройством."""

    status_code = 409

    def __init__(self, serial_number: str):
        super().__init__(
            f"Устройство с серийным номером {serial_number} уже существует",
            field="serial_number",
            code="DUPLICATE_SERIAL",
        )


class NotFound(DeviceFlowError):
    """Заявка или устройство не найдены."""

    status_code = 404

    def __init__(self, message: str, entity: str, entity_id: Any):
        super().__init__(
            message,
            code="NOT_FOUND",
            details={"entity": entity, "id": str(entity_id)},
        )


class InvalidTransition(DeviceFlowError):
    """Переход нарушает жизненный цикл заявки или устройства."""

    status_code = 409

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: str = "INVALID_TRANSITION",
    ):
        super().__init__(message, code=code, details=details)


class ConcurrentModification(InvalidTransition):
    """Запись изменена параллельно (не совпала версия)."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"Запись {entity} {entity_id} изменена параллельно, повторите операцию",
            details={"entity": entity, "id": str(entity_id)},
            code="CONCURRENT_MODIFICATION",
        )


class Forbidden(DeviceFlowError):
    """Недостаточно прав (роль или владение)."""

    status_code = 403

    def __init__(self, message: str = "Недостаточно прав доступа"):
        super().__init__(message, code="FORBIDDEN")


class IntegrationError(DeviceFlowError):
    """Ошибка служебных вызовов интеграции (не бизнес-операций)."""

    status_code = 502

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, code="INTEGRATION_ERROR")
        self.status_code = status_code


class NotificationDeliveryFailure(DeviceFlowError):
    """Уведомление не доставлено.

    Никогда не выходит за пределы шлюза уведомлений: перехватывается,
    логируется и превращается в неуспешный DeliveryResult.
    """

    def __init__(self, reason: str):
        super().__init__(f"Уведомление не доставлено: {reason}", code="NOTIFICATION_FAILED")
        self.reason = reason
