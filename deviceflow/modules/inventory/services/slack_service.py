"""
Slack Service
Уведомления о заявках в канал Slack через Web API (chat.postMessage).

Отправка best-effort: любая ошибка логируется и возвращается как неуспешный
DeliveryResult, исключения наружу не выходят. Бизнес-операция к этому моменту
уже зафиксирована в БД.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, Union

import httpx

from deviceflow.core.config import SLACK_PLACEHOLDERS, Settings
from deviceflow.core.exceptions import IntegrationError, NotificationDeliveryFailure

logger = logging.getLogger(__name__)


# ── Сообщения ────────────────────────────────────────────


@dataclass(frozen=True)
class TextMessage:
    """Простое текстовое сообщение."""

    text: str


@dataclass(frozen=True)
class FieldsMessage:
    """Заголовок и список полей «название: значение»."""

    title: str
    fields: Tuple[Tuple[str, str], ...] = ()


SlackMessage = Union[TextMessage, FieldsMessage]


@dataclass(frozen=True)
class DeliveryResult:
    """Результат отправки: ts сообщения либо причина, по которой его нет."""

    message_ref: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.message_ref is not None

    @classmethod
    def delivered(cls, message_ref: str) -> "DeliveryResult":
        return cls(message_ref=message_ref)

    @classmethod
    def failed(cls, reason: str) -> "DeliveryResult":
        return cls(error=reason)

    @classmethod
    def not_configured(cls) -> "DeliveryResult":
        return cls(error="not_configured", skipped=True)


class NotificationGateway(Protocol):
    """То, что нужно движку заявок от системы уведомлений."""

    def is_configured(self) -> bool: ...

    async def post_message(
        self,
        message: SlackMessage,
        thread_ref: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> DeliveryResult: ...

    async def list_channels(self) -> List[dict]: ...


def render_message(message: SlackMessage) -> dict:
    """Преобразовать сообщение в поля text/blocks для chat.postMessage."""
    if isinstance(message, TextMessage):
        return {"text": message.text}

    blocks = [
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*{message.title}*"}},
    ]
    if message.fields:
        blocks.append(
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*{label}:* {value}"}
                    for label, value in message.fields
                ],
            }
        )
    return {"text": message.title, "blocks": blocks}


# ── Клиент ───────────────────────────────────────────────


class SlackService:
    """Сервис для работы со Slack Web API"""

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        api_url: str = "https://slack.com/api",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._bot_token = (bot_token or "").strip()
        self._channel_id = (channel_id or "").strip()
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SlackService":
        return cls(
            bot_token=cfg.slack_bot_token,
            channel_id=cfg.slack_channel_id,
            api_url=cfg.slack_api_url,
            timeout=cfg.notification_timeout_seconds,
        )

    # ── helpers ──────────────────────────────────────────────

    def is_configured(self) -> bool:
        if not self._bot_token or not self._channel_id:
            return False
        return (
            self._bot_token not in SLACK_PLACEHOLDERS
            and self._channel_id not in SLACK_PLACEHOLDERS
        )

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._bot_token}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    @staticmethod
    def _parse(response: httpx.Response) -> dict:
        """Ответ Slack: HTTP 200 и {"ok": true, ...}, иначе NotificationDeliveryFailure."""
        if response.status_code != 200:
            raise NotificationDeliveryFailure(f"http_{response.status_code}")
        try:
            data = response.json()
        except ValueError:
            raise NotificationDeliveryFailure("invalid_json")
        if not isinstance(data, dict):
            raise NotificationDeliveryFailure("invalid_json")
        if not data.get("ok"):
            raise NotificationDeliveryFailure(data.get("error") or "unknown_error")
        return data

    # ── Slack API ────────────────────────────────────────────

    async def _send(self, payload: dict) -> str:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._api_url}/chat.postMessage",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.TimeoutException:
            raise NotificationDeliveryFailure("timeout")
        except httpx.InvalidURL:
            raise NotificationDeliveryFailure("invalid_url")
        except httpx.HTTPError as e:
            raise NotificationDeliveryFailure(f"network_error: {e}")

        data = self._parse(response)
        ts = data.get("ts")
        if not ts:
            raise NotificationDeliveryFailure("missing_ts")
        return ts

    async def post_message(
        self,
        message: SlackMessage,
        thread_ref: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> DeliveryResult:
        """
        Отправить сообщение в канал (или ответом в тред, если задан thread_ref).

        Returns:
            DeliveryResult с ts сообщения; ts годится как thread_ref для ответов.
        """
        if not self.is_configured():
            logger.warning("[Slack] Интеграция не настроена, сообщение не отправлено")
            return DeliveryResult.not_configured()

        payload = {"channel": channel or self._channel_id, **render_message(message)}
        if thread_ref:
            payload["thread_ts"] = thread_ref

        try:
            ts = await self._send(payload)
        except NotificationDeliveryFailure as e:
            if e.reason == "missing_scope":
                logger.error(
                    "[Slack] Боту не хватает прав: добавьте scope chat:write"
                )
            else:
                logger.error(
                    f"[Slack] Ошибка отправки сообщения (thread_ts={thread_ref}): {e.reason}"
                )
            return DeliveryResult.failed(e.reason)
        except Exception as e:
            logger.error(f"[Slack] Непредвиденная ошибка отправки сообщения: {e!r}")
            return DeliveryResult.failed("unexpected_error")

        return DeliveryResult.delivered(ts)

    async def list_channels(self) -> List[dict]:
        """Список каналов, доступных боту (для отладки настройки channel id)."""
        if not self.is_configured():
            raise IntegrationError("Slack не настроен", status_code=400)

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._api_url}/conversations.list",
                    headers=self._headers(),
                    params={"types": "public_channel,private_channel", "limit": 100},
                )
            data = self._parse(response)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"[Slack] Ошибка получения списка каналов: {e}")
            raise IntegrationError("Не удалось получить список каналов Slack")
        except NotificationDeliveryFailure as e:
            logger.error(f"[Slack] Ошибка получения списка каналов: {e.reason}")
            raise IntegrationError(f"Не удалось получить список каналов Slack: {e.reason}")

        return [
            {
                "id": ch.get("id"),
                "name": ch.get("name"),
                "is_member": bool(ch.get("is_member")),
                "is_private": bool(ch.get("is_private")),
            }
            for ch in data.get("channels") or []
        ]
