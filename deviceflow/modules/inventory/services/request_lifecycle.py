"""
Жизненный цикл заявки на устройство.

pending -> approved | rejected; approved и rejected конечные. Возврат устройства
статус заявки не меняет: он освобождает устройство и пишет в тред той заявки,
по которой устройство выдавалось последним.

Порядок всегда один: сначала запись в БД, потом уведомление. Ошибка Slack
не откатывает и не блокирует операцию.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deviceflow.core.exceptions import (
    DeviceFlowError,
    Forbidden,
    InvalidTransition,
    ValidationError,
)
from deviceflow.modules.inventory.models import (
    REQUEST_APPROVED,
    REQUEST_PENDING,
    REQUEST_REJECTED,
    Device,
    DeviceRequest,
    User,
    utcnow,
)
from deviceflow.modules.inventory.services.device_log import log_device_action
from deviceflow.modules.inventory.services.device_store import DeviceStore
from deviceflow.modules.inventory.services.request_messages import (
    approved_message,
    device_returned_message,
    new_request_message,
    rejected_message,
)
from deviceflow.modules.inventory.services.request_store import RequestStore
from deviceflow.modules.inventory.services.slack_service import (
    DeliveryResult,
    NotificationGateway,
    SlackMessage,
)
from deviceflow.modules.inventory.services.thread_manager import (
    generate_thread_id,
    resolve_return_thread,
)

logger = logging.getLogger(__name__)


class RequestLifecycleService:
    """Оркестрация заявок: хранилища заявок и устройств плюс уведомления."""

    def __init__(self, db: Session, gateway: NotificationGateway):
        self.db = db
        self.gateway = gateway
        self.requests = RequestStore(db)
        self.devices = DeviceStore(db)

    async def submit_request(
        self,
        requester: User,
        device_type: str,
        device_model: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> DeviceRequest:
        """Создать заявку и открыть для неё тред в Slack (если получится)."""
        req = self.requests.create(
            user_id=requester.id,
            device_type=device_type,
            device_model=device_model,
            reason=reason,
        )

        result = await self.gateway.post_message(new_request_message(req, requester))
        if result.ok:
            req = self.requests.update(
                req.id,
                {
                    "slack_message_ts": result.message_ref,
                    "slack_thread_id": generate_thread_id("req"),
                },
            )
        else:
            logger.info(f"[Requests] Заявка {req.id} создана без треда ({result.error})")
        return req

    async def approve_request(
        self,
        request_id: UUID,
        approver: User,
        device_id: Optional[UUID] = None,
    ) -> DeviceRequest:
        """
        Одобрить заявку и, если передан device_id, выдать устройство заявителю.

        Raises:
            NotFound: нет заявки или устройства
            InvalidTransition: заявка уже рассмотрена или устройство на обслуживании
        """
        req = self._get_pending(request_id)
        device = self.devices.get_or_404(device_id) if device_id else None
        if device and device.status == "maintenance":
            raise InvalidTransition(
                "Устройство на обслуживании и не может быть выдано",
                details={"device_id": str(device.id), "status": device.status},
            )

        req = self.requests.update(
            req.id,
            {
                "status": REQUEST_APPROVED,
                "approved_by": approver.id,
                "approved_at": utcnow(),
                "assigned_device_id": device.id if device else None,
            },
        )

        if device:
            device = self._assign_device(req, device)

        await self._reply(req, approved_message(req, req.requester, device))
        return req

    async def reject_request(
        self,
        request_id: UUID,
        approver: User,
        reason: str,
    ) -> DeviceRequest:
        """Отклонить заявку с причиной. Устройства не затрагиваются."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Укажите причину отклонения", field="reason")

        req = self._get_pending(request_id)
        req = self.requests.update(
            req.id,
            {
                "status": REQUEST_REJECTED,
                "approved_by": approver.id,
                "approved_at": utcnow(),
                "rejection_reason": reason,
            },
        )

        await self._reply(req, rejected_message(req, req.requester))
        return req

    async def return_device(self, device_id: UUID, acting_user: User) -> Device:
        """
        Вернуть устройство на склад и сообщить об этом в тред последней заявки.

        Raises:
            NotFound: устройства нет
            Forbidden: не админ и не текущий владелец
            InvalidTransition: устройство не выдано
        """
        device = self.devices.get_or_404(device_id)
        if not acting_user.is_admin and device.assigned_to != acting_user.id:
            raise Forbidden("Нет прав на возврат этого устройства")
        if device.status != "assigned":
            raise InvalidTransition(
                "Вернуть можно только выданное устройство",
                details={"status": device.status},
            )

        device = self.devices.release(device.id)
        log_device_action(
            self.db,
            device.id,
            "returned",
            user_id=acting_user.id,
            notes=f"Устройство возвращено: {acting_user.full_name}",
        )

        thread_ref = None
        original = resolve_return_thread(self.requests.find_by_device(device.id), device.id)
        if original:
            original = self.requests.ensure_thread_id(original)
            thread_ref = original.thread_link.reply_anchor
            logger.info(
                f"[Devices] Возврат {device.id}: ответ в тред заявки {original.id} "
                f"({original.slack_thread_id})"
            )
        else:
            logger.info(f"[Devices] Возврат {device.id}: заявка с тредом не найдена")

        await self._notify(device_returned_message(device, acting_user), thread_ref)
        return device

    # ── helpers ──────────────────────────────────────────────

    def _get_pending(self, request_id: UUID) -> DeviceRequest:
        req = self.requests.get_or_404(request_id)
        if req.status != REQUEST_PENDING:
            raise InvalidTransition(
                f"Можно рассматривать только заявки в статусе pending (сейчас {req.status})",
                details={"status": req.status},
            )
        return req

    def _assign_device(self, req: DeviceRequest, device: Device) -> Optional[Device]:
        # Заявка уже одобрена; откатывать её при сбое выдачи не договаривались
        previous_holder = device.assigned_to
        try:
            device = self.devices.assign(device.id, req.user_id)
            if previous_holder is not None and previous_holder != req.user_id:
                self._log_takeover(req, device, previous_holder)
            log_device_action(
                self.db,
                device.id,
                "assigned",
                user_id=req.user_id,
                request_id=req.id,
                notes=f"Устройство выдано по заявке {req.id}",
            )
        except (DeviceFlowError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.error(
                f"[Requests] PartialAssignmentFailure: заявка {req.id} одобрена, "
                f"но устройство {device.id} не выдано: {e}"
            )
            return None
        return device

    def _log_takeover(self, req: DeviceRequest, device: Device, previous_holder: UUID) -> None:
        """Устройство ушло к новому владельцу без оформленного возврата."""
        logger.warning(
            f"[Devices] Устройство {device.id} передано по заявке {req.id} "
            f"без возврата от предыдущего владельца {previous_holder}"
        )
        log_device_action(
            self.db,
            device.id,
            "returned",
            user_id=previous_holder,
            request_id=req.id,
            notes=f"Передано по заявке {req.id} без оформленного возврата",
        )

    async def _reply(self, req: DeviceRequest, message: SlackMessage) -> DeliveryResult:
        req = self.requests.ensure_thread_id(req)
        return await self._notify(message, req.thread_link.reply_anchor)

    async def _notify(self, message: SlackMessage, thread_ref: Optional[str]) -> DeliveryResult:
        # Ошибку доставки логирует сам шлюз
        return await self.gateway.post_message(message, thread_ref=thread_ref)
