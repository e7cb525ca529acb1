"""
Скрипт для создания таблиц и seed данных
"""

import sys
from pathlib import Path

# Добавляем корень проекта в путь
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from deviceflow.core.config import settings
from deviceflow.core.database import Base, SessionLocal, engine

# Модели регистрируются в Base при импорте
from deviceflow.modules.inventory.models import Device, DeviceLog, DeviceRequest, User  # noqa: F401


def create_tables():
    print("Создание таблиц...")
    Base.metadata.create_all(bind=engine)
    print("✅ Таблицы созданы")


def seed_admin():
    """Создаёт администратора, если его ещё нет"""
    if not settings.seed_admin_enabled:
        print("⚠️  Seed администратора отключён (SEED_ADMIN_ENABLED=false)")
        return

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == settings.seed_admin_email).first()
        if existing:
            print(f"✅ Администратор {existing.email} уже существует")
            return

        admin = User(
            email=settings.seed_admin_email,
            first_name="Администратор",
            role="admin",
            is_active=True,
        )
        db.add(admin)
        db.commit()
        print(f"✅ Создан администратор {admin.email}")
    except Exception as e:
        db.rollback()
        print(f"❌ Ошибка создания администратора: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("=" * 60)
    print("Инициализация базы данных DeviceFlow")
    print("=" * 60)
    create_tables()
    seed_admin()
