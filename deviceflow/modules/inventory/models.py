"""
Модели учёта устройств и заявок
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from deviceflow.core.database import Base
from deviceflow.modules.inventory.services.thread_manager import ThreadLink

DEVICE_TYPES = ("smartphone", "tablet", "laptop")
DEVICE_STATUSES = ("available", "assigned", "maintenance")

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"
REQUEST_STATUSES = (REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED)

USER_ROLES = ("admin", "employee")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Сотрудник (учётные данные хранит внешний сервис авторизации)"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    role = Column(String(50), default="employee", nullable=False)  # admin, employee
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def full_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Device(Base):
    """Устройство (смартфон, планшет, ноутбук)"""

    __tablename__ = "devices"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # smartphone, tablet, laptop
    model = Column(String(255), nullable=False)
    serial_number = Column(String(255), unique=True, nullable=False)
    status = Column(
        String(50), default="available", nullable=False
    )  # available, assigned, maintenance
    assigned_to = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    purchase_date = Column(DateTime(timezone=True), nullable=True)
    last_activity = Column(DateTime(timezone=True), default=utcnow)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    assigned_user = relationship("User", foreign_keys=[assigned_to])


class DeviceRequest(Base):
    """Заявка сотрудника на устройство"""

    __tablename__ = "requests"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    device_type = Column(String(50), nullable=False)  # smartphone, tablet, laptop
    device_model = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    status = Column(
        String(50), default=REQUEST_PENDING, nullable=False
    )  # pending, approved, rejected

    # Рассмотрение (одобрение и отклонение пишут одни и те же поля)
    approved_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    assigned_device_id = Column(
        Uuid, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True
    )

    # Slack: наш thread id и ts исходного сообщения (у старых заявок только ts)
    slack_thread_id = Column(String(255), nullable=True, index=True)
    slack_message_ts = Column(String(64), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    requester = relationship("User", foreign_keys=[user_id])
    approver = relationship("User", foreign_keys=[approved_by])
    assigned_device = relationship("Device", foreign_keys=[assigned_device_id])

    @property
    def thread_link(self) -> ThreadLink:
        return ThreadLink.of(self.slack_thread_id, self.slack_message_ts)


class DeviceLog(Base):
    """Журнал действий с устройством (только добавление)"""

    __tablename__ = "device_logs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    device_id = Column(
        Uuid, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    request_id = Column(
        Uuid, ForeignKey("requests.id", ondelete="SET NULL"), nullable=True
    )
    action = Column(String(50), nullable=False)  # created, updated, assigned, returned
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    device = relationship("Device", foreign_keys=[device_id])
    user = relationship("User", foreign_keys=[user_id])
