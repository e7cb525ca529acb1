"""
Общие фикстуры: SQLite в памяти, фейковый шлюз уведомлений, пользователи и клиент API.
"""
import os

# Настройки читаются при импорте deviceflow.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-deviceflow-tests-0123456789"
os.environ["SLACK_BOT_TOKEN"] = ""
os.environ["SLACK_CHANNEL_ID"] = ""

from dataclasses import dataclass
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from deviceflow.core.auth import create_access_token
from deviceflow.core.database import Base
from deviceflow.main import app
from deviceflow.modules.inventory.dependencies import get_db, get_notification_gateway
from deviceflow.modules.inventory.models import User
from deviceflow.modules.inventory.services.device_store import DeviceStore
from deviceflow.modules.inventory.services.request_lifecycle import RequestLifecycleService
from deviceflow.modules.inventory.services.slack_service import DeliveryResult, SlackMessage


@dataclass
class Post:
    message: SlackMessage
    thread_ref: Optional[str]
    channel: Optional[str]
    ts: Optional[str]


class FakeGateway:
    """Шлюз в памяти: запоминает отправки и выдаёт ts по порядку."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.fail_with: Optional[str] = None
        self.posts: List[Post] = []
        self._counter = 0

    def is_configured(self) -> bool:
        return self.configured

    async def post_message(self, message, thread_ref=None, channel=None) -> DeliveryResult:
        if not self.configured:
            self.posts.append(Post(message, thread_ref, channel, None))
            return DeliveryResult.not_configured()
        if self.fail_with:
            self.posts.append(Post(message, thread_ref, channel, None))
            return DeliveryResult.failed(self.fail_with)
        self._counter += 1
        ts = f"1700000000.{self._counter:06d}"
        self.posts.append(Post(message, thread_ref, channel, ts))
        return DeliveryResult.delivered(ts)

    async def list_channels(self) -> List[dict]:
        return [{"id": "C0DEVICES", "name": "devices", "is_member": True, "is_private": False}]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lifecycle(db, gateway):
    return RequestLifecycleService(db, gateway)


def make_user(db, email: str, role: str = "employee", first_name=None, last_name=None, is_active=True):
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return make_user(db, "admin@deviceflow.local", role="admin", first_name="Анна", last_name="Админ")


@pytest.fixture
def jane(db):
    return make_user(db, "jane@company.com", first_name="Jane", last_name="Doe")


@pytest.fixture
def bob(db):
    return make_user(db, "bob@company.com", first_name="Bob", last_name="Smith")


@pytest.fixture
def laptop(db):
    return DeviceStore(db).create(
        name="MacBook Pro 14",
        type="laptop",
        model="MacBook Pro M3",
        serial_number="C02XL0AAJGH5",
    )


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def _bearer(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """auth_headers(user) -> заголовок Authorization с JWT пользователя."""
    return _bearer
