"""Хранилище заявок с проверкой жизненного цикла на границе."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from deviceflow.core.exceptions import (
    ConcurrentModification,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from deviceflow.modules.inventory.models import (
    DEVICE_TYPES,
    REQUEST_APPROVED,
    REQUEST_PENDING,
    REQUEST_STATUSES,
    DeviceRequest,
)
from deviceflow.modules.inventory.services.thread_manager import (
    is_valid_thread_id,
    legacy_thread_id,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "status",
    "approved_by",
    "approved_at",
    "rejection_reason",
    "assigned_device_id",
    "slack_thread_id",
    "slack_message_ts",
}

# После рассмотрения заявки можно дописывать только привязку к треду
THREAD_FIELDS = {"slack_thread_id", "slack_message_ts"}


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class RequestStore:
    """CRUD заявок. Все инварианты проверяются здесь, а не у вызывающего."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: UUID) -> Optional[DeviceRequest]:
        return self.db.query(DeviceRequest).filter(DeviceRequest.id == request_id).first()

    def get_or_404(self, request_id: UUID) -> DeviceRequest:
        req = self.get(request_id)
        if not req:
            raise NotFound("Заявка не найдена", entity="request", entity_id=request_id)
        return req

    def create(
        self,
        user_id: UUID,
        device_type: str,
        device_model: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> DeviceRequest:
        """Создать заявку. Статус всегда pending, поля рассмотрения и треда пустые."""
        if device_type not in DEVICE_TYPES:
            raise ValidationError(
                f"Некорректный тип устройства. Допустимые: {', '.join(DEVICE_TYPES)}",
                field="device_type",
            )
        device_model = _clean_text(device_model)
        if device_model and len(device_model) > 255:
            raise ValidationError("Слишком длинное название модели", field="device_model")

        req = DeviceRequest(
            user_id=user_id,
            device_type=device_type,
            device_model=device_model,
            reason=_clean_text(reason),
            status=REQUEST_PENDING,
        )
        self.db.add(req)
        self.db.commit()
        self.db.refresh(req)
        return req

    def update(self, request_id: UUID, changes: Dict[str, Any]) -> DeviceRequest:
        """
        Применить частичное изменение заявки.

        Raises:
            NotFound: заявки нет
            InvalidTransition: выход из approved/rejected, повторное рассмотрение,
                смена уже заданного slack_thread_id
            ValidationError: неизвестные поля или нарушение инвариантов
        """
        req = self.get_or_404(request_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Поля нельзя изменять: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        changed = {k: v for k, v in changes.items() if getattr(req, k) != v}
        if not changed:
            return req

        if req.status != REQUEST_PENDING:
            locked = set(changed) - THREAD_FIELDS
            if locked:
                raise InvalidTransition(
                    f"Заявка уже в статусе {req.status}, изменить можно только привязку к треду",
                    details={"status": req.status, "fields": sorted(locked)},
                )

        if "status" in changed and changed["status"] not in REQUEST_STATUSES:
            raise ValidationError(
                f"Некорректный статус. Допустимые: {', '.join(REQUEST_STATUSES)}",
                field="status",
            )

        if "slack_thread_id" in changed:
            if req.slack_thread_id:
                raise InvalidTransition(
                    "Идентификатор треда уже задан и не может быть изменён",
                    details={"slack_thread_id": req.slack_thread_id},
                )
            if not is_valid_thread_id(changed["slack_thread_id"]):
                raise ValidationError(
                    "Некорректный формат идентификатора треда", field="slack_thread_id"
                )

        # ts исходного сообщения: по нему Slack строит тред, задаётся один раз
        if "slack_message_ts" in changed and req.slack_message_ts:
            raise InvalidTransition(
                "Сообщение Slack для заявки уже задано и не может быть изменено",
                details={"slack_message_ts": req.slack_message_ts},
            )

        merged = {f: changed.get(f, getattr(req, f)) for f in UPDATABLE_FIELDS}
        if merged["status"] != REQUEST_PENDING and (
            merged["approved_by"] is None or merged["approved_at"] is None
        ):
            raise ValidationError(
                "Рассмотренная заявка должна содержать рассмотревшего и дату",
                field="approved_by" if merged["approved_by"] is None else "approved_at",
            )
        if merged["assigned_device_id"] is not None and merged["status"] != REQUEST_APPROVED:
            raise ValidationError(
                "Устройство можно указать только в одобренной заявке",
                field="assigned_device_id",
            )

        for k, v in changed.items():
            setattr(req, k, v)
        self._commit(req)
        return req

    def _commit(self, req: DeviceRequest) -> None:
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentModification("request", req.id)
        self.db.refresh(req)

    def list_all(self) -> List[DeviceRequest]:
        """Все заявки в порядке создания."""
        return (
            self.db.query(DeviceRequest)
            .order_by(DeviceRequest.created_at.asc(), DeviceRequest.id.asc())
            .all()
        )

    def list_by_requester(self, user_id: UUID) -> List[DeviceRequest]:
        return (
            self.db.query(DeviceRequest)
            .filter(DeviceRequest.user_id == user_id)
            .order_by(DeviceRequest.created_at.asc(), DeviceRequest.id.asc())
            .all()
        )

    def find_by_device(self, device_id: UUID) -> List[DeviceRequest]:
        """Заявки, по которым выдавалось устройство (для ответа в тред при возврате)."""
        return (
            self.db.query(DeviceRequest)
            .filter(DeviceRequest.assigned_device_id == device_id)
            .order_by(DeviceRequest.created_at.asc(), DeviceRequest.id.asc())
            .all()
        )

    def ensure_thread_id(self, req: DeviceRequest) -> DeviceRequest:
        """Дописать req_<id> старой заявке, у которой есть только ts сообщения."""
        if req.slack_thread_id or not req.slack_message_ts:
            return req
        thread_id = legacy_thread_id(req.id)
        req = self.update(req.id, {"slack_thread_id": thread_id})
        logger.info(f"[Requests] Заявке {req.id} присвоен thread id {thread_id}")
        return req

    def backfill_thread_ids(self) -> int:
        """Присвоить thread id всем старым заявкам. Возвращает число обновлённых."""
        legacy = (
            self.db.query(DeviceRequest)
            .filter(
                DeviceRequest.slack_message_ts.isnot(None),
                DeviceRequest.slack_thread_id.is_(None),
            )
            .all()
        )
        for req in legacy:
            req.slack_thread_id = legacy_thread_id(req.id)
        if legacy:
            self.db.commit()
        return len(legacy)
