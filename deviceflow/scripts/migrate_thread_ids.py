"""
Скрипт миграции: thread id для заявок, созданных до его появления.

Заявкам, у которых есть только slack_message_ts, присваивается
slack_thread_id вида req_<id заявки>. Повторный запуск ничего не меняет.
"""
import sys
from pathlib import Path

# Добавляем корень проекта в путь
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from deviceflow.core.database import SessionLocal
from deviceflow.modules.inventory.services.request_store import RequestStore


def migrate_thread_ids():
    print("=" * 60)
    print("Миграция: slack_thread_id для старых заявок")
    print("=" * 60)

    db = SessionLocal()
    try:
        count = RequestStore(db).backfill_thread_ids()
        if count:
            print(f"✅ Обновлено заявок: {count}")
        else:
            print("✅ Старых заявок без thread id нет, миграция не требуется")
    except Exception as e:
        db.rollback()
        print(f"❌ Ошибка миграции: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    migrate_thread_ids()
