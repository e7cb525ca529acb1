"""
Проверка JWT для API DeviceFlow.

Логин и хранение паролей живут во внешнем сервисе авторизации; здесь только
разбор bearer-токена и выпуск токенов для служебных скриптов и тестов.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from .config import settings

ALGORITHM = settings.algorithm

# OAuth2 схема для получения токена из заголовка Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login",
    auto_error=False,
)


def create_access_token(
    user_id: UUID | str,
    email: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Создаёт JWT токен.

    Payload структура:
        {
            "sub": "user_id",
            "email": "user@company.com",
            "role": "admin",
            "exp": 1234567890,
            "iat": 1234567890
        }
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": now + expires_delta,
        "iat": now,
    }
    if role:
        to_encode["role"] = role

    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """Декодирует JWT токен. Возвращает payload или None при ошибке."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_token_payload(token: str = Depends(oauth2_scheme)) -> Dict:
    """
    Получает payload из JWT токена.
    Используется как dependency в FastAPI.

    Raises:
        HTTPException: Если токен невалиден или отсутствует
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Не удалось проверить учетные данные",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    payload = decode_token(token)
    if payload is None:
        raise credentials_exception

    return payload
