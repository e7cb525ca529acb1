"""Идентификаторы тредов Slack и выбор заявки для ответа в тред.

Заявка хранит два поля: ``slack_thread_id`` (наш идентификатор вида
``req_<uuid>``) и ``slack_message_ts`` (ts исходного сообщения в Slack, по нему
Slack и строит тред). Старые заявки имеют только ``slack_message_ts``.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence

DEFAULT_PREFIX = "req"

THREAD_ID_PATTERN = re.compile(
    r"^[a-zA-Z]+_[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
_PREFIX_PATTERN = re.compile(r"^[a-zA-Z]+$")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ThreadKind(str, Enum):
    THREAD = "thread"
    LEGACY = "legacy"
    NONE = "none"


@dataclass(frozen=True)
class ThreadLink:
    """Привязка заявки к переписке: thread / legacy (только ts) / none."""

    kind: ThreadKind
    thread_id: Optional[str] = None
    message_ref: Optional[str] = None

    @classmethod
    def of(cls, thread_id: Optional[str], message_ref: Optional[str]) -> "ThreadLink":
        if thread_id:
            return cls(ThreadKind.THREAD, thread_id, message_ref or None)
        if message_ref:
            return cls(ThreadKind.LEGACY, None, message_ref)
        return cls(ThreadKind.NONE)

    @property
    def is_linked(self) -> bool:
        return self.kind is not ThreadKind.NONE

    @property
    def reply_anchor(self) -> Optional[str]:
        """ts родительского сообщения для thread_ts (None: писать в канал)."""
        return self.message_ref


def generate_thread_id(prefix: str = DEFAULT_PREFIX) -> str:
    """Новый идентификатор треда ``<prefix>_<uuid4>``."""
    if not prefix or not _PREFIX_PATTERN.match(prefix):
        raise ValueError(f"Префикс треда должен состоять из латинских букв: {prefix!r}")
    return f"{prefix}_{uuid.uuid4()}"


def is_valid_thread_id(value: Any) -> bool:
    if not value or not isinstance(value, str):
        return False
    return THREAD_ID_PATTERN.match(value) is not None


def get_thread_prefix(thread_id: str) -> Optional[str]:
    if not is_valid_thread_id(thread_id):
        return None
    return thread_id.split("_", 1)[0]


def legacy_thread_id(request_id: Any) -> str:
    """Детерминированный идентификатор для заявок, созданных до появления thread id."""
    return f"{DEFAULT_PREFIX}_{request_id}"


def _as_utc(value: Optional[datetime]) -> datetime:
    # SQLite возвращает naive datetime, PostgreSQL aware
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _recency_key(request: Any) -> tuple:
    approved_at = getattr(request, "approved_at", None)
    created_at = getattr(request, "created_at", None)
    return (
        _as_utc(approved_at or created_at),
        _as_utc(created_at),
        str(getattr(request, "id", "")),
    )


def resolve_return_thread(requests: Sequence[Any], device_id: Any) -> Optional[Any]:
    """
    Выбрать заявку, в тред которой писать о возврате устройства.

    Одно устройство выдаётся много раз, поэтому кандидатов может быть несколько.
    Берём одобренную заявку на это устройство с привязкой к треду и самой
    поздней датой одобрения (или создания, если одобрение без даты).
    При равенстве дат побеждает более поздняя по created_at, затем по id.

    Returns:
        Заявка или None, если отвечать некуда (тогда пишем новым сообщением)
    """
    if device_id is None:
        return None
    target = str(device_id)

    candidates = [
        r
        for r in requests
        if r.assigned_device_id is not None
        and str(r.assigned_device_id) == target
        and r.status == "approved"
        and ThreadLink.of(r.slack_thread_id, r.slack_message_ts).is_linked
    ]
    if not candidates:
        return None

    return max(candidates, key=_recency_key)
