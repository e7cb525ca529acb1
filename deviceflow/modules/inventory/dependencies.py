"""
Dependencies модуля учёта устройств.
get_db общий с core, пользователь берётся из JWT, шлюз уведомлений из app.state.
"""
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from deviceflow.core.auth import get_token_payload
from deviceflow.core.database import get_db as core_get_db
from deviceflow.modules.inventory.models import User
from deviceflow.modules.inventory.services.request_lifecycle import RequestLifecycleService
from deviceflow.modules.inventory.services.slack_service import NotificationGateway

get_db = core_get_db


def get_current_user(
    db: Session = Depends(get_db),
    payload: dict = Depends(get_token_payload),
) -> User:
    """Текущий пользователь из JWT."""
    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный формат токена",
        )
    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный формат user_id",
        )
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Пользователь не найден",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Пользователь деактивирован",
        )
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Требуются права администратора",
        )
    return user


def get_notification_gateway(request: Request) -> NotificationGateway:
    """Шлюз создаётся один раз при старте приложения (main.py)."""
    return request.app.state.notification_gateway


def get_lifecycle_service(
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> RequestLifecycleService:
    return RequestLifecycleService(db, gateway)
