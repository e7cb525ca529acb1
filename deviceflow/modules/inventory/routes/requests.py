"""Роуты /requests: заявки на устройства."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from deviceflow.core.exceptions import Forbidden
from deviceflow.modules.inventory.dependencies import (
    get_current_user,
    get_lifecycle_service,
    require_admin,
)
from deviceflow.modules.inventory.models import DeviceRequest, User
from deviceflow.modules.inventory.schemas.request import (
    ApproveRequest,
    DeviceRequestCreate,
    DeviceRequestOut,
    RejectRequest,
)
from deviceflow.modules.inventory.services.request_lifecycle import RequestLifecycleService

router = APIRouter(prefix="/requests", tags=["requests"])


def _request_out(req: DeviceRequest) -> DeviceRequestOut:
    out = DeviceRequestOut.model_validate(req)
    if req.requester:
        out.requester_name = req.requester.full_name
        out.requester_email = req.requester.email
    if req.approver:
        out.approver_name = req.approver.full_name
    if req.assigned_device:
        out.assigned_device_name = req.assigned_device.name
    return out


@router.get("/", response_model=List[DeviceRequestOut])
def list_requests(
    user: User = Depends(get_current_user),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> List[DeviceRequestOut]:
    """Список заявок: админ видит все, сотрудник только свои"""
    if user.is_admin:
        requests = service.requests.list_all()
    else:
        requests = service.requests.list_by_requester(user.id)
    return [_request_out(r) for r in requests]


@router.get("/{request_id}", response_model=DeviceRequestOut)
def get_request(
    request_id: UUID,
    user: User = Depends(get_current_user),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> DeviceRequestOut:
    """Получить заявку по ID"""
    req = service.requests.get_or_404(request_id)
    if not user.is_admin and req.user_id != user.id:
        raise Forbidden()
    return _request_out(req)


@router.post("/", response_model=DeviceRequestOut, status_code=201)
async def create_request(
    payload: DeviceRequestCreate,
    user: User = Depends(get_current_user),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> DeviceRequestOut:
    """Создать заявку на устройство"""
    req = await service.submit_request(
        requester=user,
        device_type=payload.device_type,
        device_model=payload.device_model,
        reason=payload.reason,
    )
    return _request_out(req)


@router.put("/{request_id}/approve", response_model=DeviceRequestOut)
async def approve_request(
    request_id: UUID,
    payload: Optional[ApproveRequest] = None,
    user: User = Depends(require_admin),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> DeviceRequestOut:
    """Одобрить заявку, при необходимости сразу выдав устройство"""
    device_id = payload.device_id if payload else None
    req = await service.approve_request(request_id, approver=user, device_id=device_id)
    return _request_out(req)


@router.put("/{request_id}/reject", response_model=DeviceRequestOut)
async def reject_request(
    request_id: UUID,
    payload: RejectRequest,
    user: User = Depends(require_admin),
    service: RequestLifecycleService = Depends(get_lifecycle_service),
) -> DeviceRequestOut:
    """Отклонить заявку с указанием причины"""
    req = await service.reject_request(request_id, approver=user, reason=payload.reason)
    return _request_out(req)
